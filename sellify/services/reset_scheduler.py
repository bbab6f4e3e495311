"""Daily (00:00 UTC) and weekly (Monday 00:00 UTC) quota resets.

Cron jobs only wake the reset pass; what gets reset is decided per tenant by
``QuotaRegistry.apply_due_resets`` from ``last_reset``, so a job that fires
late (suspend, stalled loop, restart) still applies every reset it missed.
Resets take the same per-tenant lock as sends.
"""

from typing import Callable, Iterable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sellify.logging_config import get_logger
from sellify.services.quota_service import QuotaRegistry

logger = get_logger("reset_scheduler")

DAILY_JOB_ID = "quota_reset_daily"
WEEKLY_JOB_ID = "quota_reset_weekly"
MISFIRE_GRACE_SECONDS = 6 * 3600


def run_due_resets(quotas: QuotaRegistry, tenants: Optional[Iterable[str]] = None) -> dict[str, list[str]]:
    """Apply due resets to every tenant. Returns ``{tenant_id: ["daily", ...]}`` for tenants touched."""
    applied = {}
    for tenant_id in tenants if tenants is not None else quotas.tenants():
        resets = quotas.apply_due_resets(tenant_id)
        if resets:
            applied[tenant_id] = resets
    return applied


class QuotaResetScheduler:
    def __init__(
        self,
        quotas: QuotaRegistry,
        on_reset: Optional[Callable[[str], None]] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.quotas = quotas
        self.on_reset = on_reset
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

    def fire(self) -> dict[str, list[str]]:
        applied = run_due_resets(self.quotas)
        if self.on_reset:
            for tenant_id in applied:
                self.on_reset(tenant_id)
        if applied:
            logger.info("Quota resets applied", extra={"context": {"tenants": applied}})
        return applied

    def start(self) -> None:
        if self.scheduler.running:
            return

        self.scheduler.add_job(
            self.fire,
            "cron",
            hour=0,
            minute=0,
            timezone="UTC",
            id=DAILY_JOB_ID,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.fire,
            "cron",
            day_of_week="mon",
            hour=0,
            minute=0,
            timezone="UTC",
            id=WEEKLY_JOB_ID,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("Quota reset scheduler started: daily 00:00 UTC, weekly Monday 00:00 UTC")

    async def stop(self) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=False)
        logger.info("Quota reset scheduler stopped")
