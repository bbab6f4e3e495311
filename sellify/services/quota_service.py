"""Per-tenant quota registry: one lock per tenant around its engine.

Every operation that reads and then mutates counters runs inside a single
critical section, so two concurrent cycles can never both pass admission and
together exceed a limit. Resets take the same lock as sends.
"""

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from sellify.logging_config import get_logger
from sellify.services.quota_engine import (
    QuotaEngine,
    QuotaLimits,
    QuotaSnapshot,
    QuotaUsage,
    utcnow,
)

logger = get_logger("quota_service")


@dataclass(frozen=True)
class Admission:
    allowed: bool
    before: QuotaSnapshot
    after: QuotaSnapshot
    delay_seconds: Optional[int] = None


class _TenantSlot:
    def __init__(self, engine: QuotaEngine):
        self.engine = engine
        self.lock = threading.Lock()


class QuotaRegistry:
    def __init__(
        self,
        default_limits: Optional[QuotaLimits] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.default_limits = default_limits or QuotaLimits()
        self.clock = clock
        self._slots: dict[str, _TenantSlot] = {}
        self._slots_lock = threading.Lock()

    def _slot(self, tenant_id: str) -> _TenantSlot:
        with self._slots_lock:
            slot = self._slots.get(tenant_id)
            if slot is None:
                slot = _TenantSlot(QuotaEngine(self.default_limits, clock=self.clock))
                self._slots[tenant_id] = slot
            return slot

    def tenants(self) -> list[str]:
        with self._slots_lock:
            return list(self._slots)

    def configure(self, tenant_id: str, limits: QuotaLimits) -> None:
        """Explicit reconfiguration of a tenant's ceilings; usage is kept."""
        slot = self._slot(tenant_id)
        with slot.lock:
            slot.engine.limits = limits
        logger.info(f"Quota limits reconfigured for tenant {tenant_id}")

    def restore(self, tenant_id: str, usage: QuotaUsage) -> None:
        """Resume a tenant from its last persisted usage snapshot."""
        slot = self._slot(tenant_id)
        with slot.lock:
            slot.engine.usage = replace(usage)

    def limits(self, tenant_id: str) -> QuotaLimits:
        return self._slot(tenant_id).engine.limits

    def usage(self, tenant_id: str) -> QuotaUsage:
        """Copy of the tenant's counters; never the live object."""
        slot = self._slot(tenant_id)
        with slot.lock:
            return replace(slot.engine.usage)

    def snapshot(self, tenant_id: str) -> QuotaSnapshot:
        slot = self._slot(tenant_id)
        with slot.lock:
            return slot.engine.snapshot()

    def check_message(self, tenant_id: str) -> bool:
        """Read-only admission peek used to build a decision context."""
        slot = self._slot(tenant_id)
        with slot.lock:
            return slot.engine.can_send_message()

    def check_media(self, tenant_id: str, is_video: bool) -> bool:
        slot = self._slot(tenant_id)
        with slot.lock:
            return slot.engine.can_send_media(is_video)

    def calculate_delay(self, tenant_id: str) -> int:
        slot = self._slot(tenant_id)
        with slot.lock:
            return slot.engine.calculate_delay()

    def try_record_message(self, tenant_id: str) -> Admission:
        """Admission check and record as one atomic step."""
        slot = self._slot(tenant_id)
        with slot.lock:
            engine = slot.engine
            before = engine.snapshot()
            if not engine.can_send_message():
                logger.info(
                    "Message admission refused",
                    extra={"context": {"tenant_id": tenant_id, "usage": before.to_dict()}},
                )
                return Admission(allowed=False, before=before, after=before)
            delay = engine.calculate_delay()
            engine.record_message()
            return Admission(allowed=True, before=before, after=engine.snapshot(), delay_seconds=delay)

    def try_record_media(self, tenant_id: str, is_video: bool) -> Admission:
        slot = self._slot(tenant_id)
        with slot.lock:
            engine = slot.engine
            before = engine.snapshot()
            if not engine.can_send_media(is_video):
                logger.info(
                    "Media admission refused",
                    extra={"context": {"tenant_id": tenant_id, "is_video": is_video}},
                )
                return Admission(allowed=False, before=before, after=before)
            delay = engine.calculate_delay()
            engine.record_media(is_video)
            return Admission(allowed=True, before=before, after=engine.snapshot(), delay_seconds=delay)

    def reset_daily(self, tenant_id: str) -> QuotaUsage:
        slot = self._slot(tenant_id)
        with slot.lock:
            slot.engine.reset_daily()
            usage = replace(slot.engine.usage)
        logger.info(f"Daily quota reset for tenant {tenant_id}")
        return usage

    def reset_weekly(self, tenant_id: str) -> QuotaUsage:
        slot = self._slot(tenant_id)
        with slot.lock:
            slot.engine.reset_weekly()
            usage = replace(slot.engine.usage)
        logger.info(f"Weekly quota reset for tenant {tenant_id}")
        return usage

    def needs_resets(self, tenant_id: str) -> tuple[bool, bool]:
        slot = self._slot(tenant_id)
        with slot.lock:
            return slot.engine.needs_daily_reset(), slot.engine.needs_weekly_reset()

    def apply_due_resets(self, tenant_id: str) -> list[str]:
        """Run every reset whose window has passed since ``last_reset``.

        Both checks are taken before either reset runs because each reset
        re-stamps ``last_reset``.
        """
        slot = self._slot(tenant_id)
        applied = []
        with slot.lock:
            daily_due = slot.engine.needs_daily_reset()
            weekly_due = slot.engine.needs_weekly_reset()
            if daily_due:
                slot.engine.reset_daily()
                applied.append("daily")
            if weekly_due:
                slot.engine.reset_weekly()
                applied.append("weekly")
        if applied:
            logger.info(
                "Applied due quota resets",
                extra={"context": {"tenant_id": tenant_id, "resets": applied}},
            )
        return applied
