"""Durable snapshots of quota usage and conversation state.

Recovery resumes from the last snapshot; history is never replayed.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from sellify.logging_config import get_logger
from sellify.models import ConversationStateRecord, QuotaUsageRecord
from sellify.services.conversation_service import ConversationRegistry
from sellify.services.quota_engine import QuotaUsage
from sellify.services.quota_service import QuotaRegistry
from sellify.services.result import Result
from sellify.services.state_machine import parse_state

logger = get_logger("storage_service")


def _aware(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def save_quota_usage(db: Session, tenant_id: str, usage: QuotaUsage) -> Result[bool]:
    try:
        record = db.query(QuotaUsageRecord).filter(QuotaUsageRecord.tenant_id == tenant_id).first()
        if record is None:
            record = QuotaUsageRecord(tenant_id=tenant_id)
            db.add(record)

        record.messages_today = usage.messages_today
        record.messages_this_week = usage.messages_this_week
        record.images_today = usage.images_today
        record.videos_this_week = usage.videos_this_week
        record.last_reset = usage.last_reset
        record.updated_at = datetime.now(timezone.utc)

        db.commit()
        return Result.success(True)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to save quota usage for tenant {tenant_id}: {e}")
        return Result.failure(str(e), "db_error")


def _usage_from_record(record: QuotaUsageRecord) -> QuotaUsage:
    return QuotaUsage(
        messages_today=record.messages_today or 0,
        messages_this_week=record.messages_this_week or 0,
        images_today=record.images_today or 0,
        videos_this_week=record.videos_this_week or 0,
        last_reset=_aware(record.last_reset),
    )


def load_quota_usage(db: Session, tenant_id: str) -> Optional[QuotaUsage]:
    record = db.query(QuotaUsageRecord).filter(QuotaUsageRecord.tenant_id == tenant_id).first()
    if record is None:
        return None
    return _usage_from_record(record)


def save_conversation_state(
    db: Session,
    conversation_id: str,
    tenant_id: str,
    state: str,
    automation_stopped: bool,
) -> Result[bool]:
    try:
        record = (
            db.query(ConversationStateRecord)
            .filter(ConversationStateRecord.conversation_id == conversation_id)
            .first()
        )
        if record is None:
            record = ConversationStateRecord(conversation_id=conversation_id, tenant_id=tenant_id)
            db.add(record)

        record.state = state
        record.automation_stopped = automation_stopped
        record.updated_at = datetime.now(timezone.utc)

        db.commit()
        return Result.success(True)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to save conversation {conversation_id}: {e}")
        return Result.failure(str(e), "db_error")


def restore_snapshots(
    db: Session,
    quotas: QuotaRegistry,
    conversations: ConversationRegistry,
) -> dict:
    """Load every persisted snapshot into the in-memory registries."""
    tenants = 0
    for record in db.query(QuotaUsageRecord).all():
        quotas.restore(record.tenant_id, _usage_from_record(record))
        tenants += 1

    restored = 0
    for record in db.query(ConversationStateRecord).all():
        state = parse_state(record.state)
        if state is None:
            logger.warning(f"Skipping conversation {record.conversation_id} with unknown state {record.state}")
            continue
        conversations.restore(record.conversation_id, state, bool(record.automation_stopped))
        restored += 1

    logger.info(
        "Snapshots restored",
        extra={"context": {"tenants": tenants, "conversations": restored}},
    )
    return {"tenants": tenants, "conversations": restored}
