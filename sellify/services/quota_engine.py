"""Quota and anti-ban counter engine for a single tenant.

The engine itself is not thread-safe; ``quota_service.QuotaRegistry`` owns the
per-tenant lock and is the only thing that should touch an engine from
concurrent decision cycles.
"""

import random
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from sellify.logging_config import get_logger

logger = get_logger("quota_engine")

BASE_DELAY_MIN_SECONDS = 2
BASE_DELAY_MAX_SECONDS = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class QuotaLimits:
    messages_per_day: int = 200
    messages_per_week: int = 1000
    images_per_day: int = 50
    videos_per_week: int = 20


@dataclass
class QuotaUsage:
    messages_today: int = 0
    messages_this_week: int = 0
    images_today: int = 0
    videos_this_week: int = 0
    last_reset: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class QuotaSnapshot:
    messages_today: int
    messages_this_week: int
    images_today: int
    videos_this_week: int

    def to_dict(self) -> dict:
        return asdict(self)


class QuotaEngine:
    def __init__(
        self,
        limits: Optional[QuotaLimits] = None,
        usage: Optional[QuotaUsage] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.limits = limits or QuotaLimits()
        self.clock = clock
        self.usage = usage or QuotaUsage(last_reset=clock())

    def can_send_message(self) -> bool:
        return (
            self.usage.messages_today < self.limits.messages_per_day
            and self.usage.messages_this_week < self.limits.messages_per_week
        )

    def can_send_media(self, is_video: bool) -> bool:
        if is_video:
            return self.usage.videos_this_week < self.limits.videos_per_week
        return self.usage.images_today < self.limits.images_per_day

    def record_message(self) -> None:
        """Count one sent message. Admission must have been checked by the caller."""
        if not self.can_send_message():
            logger.warning(
                "Message recorded past quota limit",
                extra={"context": {"usage": self.snapshot().to_dict()}},
            )
        self.usage.messages_today += 1
        self.usage.messages_this_week += 1

    def record_media(self, is_video: bool) -> None:
        if not self.can_send_media(is_video):
            logger.warning(
                "Media recorded past quota limit",
                extra={"context": {"is_video": is_video, "usage": self.snapshot().to_dict()}},
            )
        if is_video:
            self.usage.videos_this_week += 1
        else:
            self.usage.images_today += 1

    def usage_ratio(self) -> float:
        if self.limits.messages_per_day <= 0:
            return 1.0
        return self.usage.messages_today / self.limits.messages_per_day

    def calculate_delay(self) -> int:
        """Human-like pause in seconds, longer as the day's budget runs out."""
        base_delay = random.randint(BASE_DELAY_MIN_SECONDS, BASE_DELAY_MAX_SECONDS)

        ratio = self.usage_ratio()
        if ratio > 0.8:
            factor = 3
        elif ratio > 0.5:
            factor = 2
        else:
            factor = 1

        return base_delay * factor

    def get_usage(self) -> QuotaUsage:
        return self.usage

    def snapshot(self) -> QuotaSnapshot:
        return QuotaSnapshot(
            messages_today=self.usage.messages_today,
            messages_this_week=self.usage.messages_this_week,
            images_today=self.usage.images_today,
            videos_this_week=self.usage.videos_this_week,
        )

    def reset_daily(self) -> None:
        self.usage.messages_today = 0
        self.usage.images_today = 0
        self.usage.last_reset = self.clock()

    def reset_weekly(self) -> None:
        self.usage.messages_this_week = 0
        self.usage.videos_this_week = 0
        self.usage.last_reset = self.clock()

    def needs_daily_reset(self) -> bool:
        today = self.clock().astimezone(timezone.utc).date()
        last_reset_date = self.usage.last_reset.astimezone(timezone.utc).date()
        return today > last_reset_date

    def needs_weekly_reset(self) -> bool:
        now_year, now_week, _ = self.clock().astimezone(timezone.utc).isocalendar()
        last_year, last_week, _ = self.usage.last_reset.astimezone(timezone.utc).isocalendar()
        return (now_year, now_week) > (last_year, last_week)
