"""Append-only audit trail, one record per decision cycle.

Writing is best effort: a failed write is reported back as a ``Result`` and
logged, but it never blocks or reverses an action already taken.
"""

import threading
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from sqlalchemy.orm import Session

from sellify.logging_config import get_logger
from sellify.models import AuditLog
from sellify.services.quota_engine import QuotaSnapshot
from sellify.services.result import Result

logger = get_logger("audit_service")


@dataclass(frozen=True)
class AuditRecord:
    id: str
    timestamp: datetime
    conversation_id: str
    incoming_message: str
    state: str
    chosen_action: str
    quotas_before: QuotaSnapshot
    quotas_after: QuotaSnapshot
    action_details: Optional[str] = None
    ai_prompt: Optional[str] = None
    ai_response: Optional[str] = None
    sent_message: Optional[str] = None


@dataclass
class AuditReport:
    start: datetime
    end: datetime
    total: int = 0
    by_action: dict = field(default_factory=dict)
    by_state: dict = field(default_factory=dict)
    fallback_sent: int = 0
    conversations: int = 0


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_audit_record(
    conversation_id: str,
    incoming_message: str,
    state: str,
    chosen_action: str,
    quotas_before: QuotaSnapshot,
    quotas_after: QuotaSnapshot,
    action_details: Optional[str] = None,
    ai_prompt: Optional[str] = None,
    ai_response: Optional[str] = None,
    sent_message: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> AuditRecord:
    return AuditRecord(
        id=str(uuid.uuid4()),
        timestamp=as_utc(timestamp) if timestamp else datetime.now(timezone.utc),
        conversation_id=conversation_id,
        incoming_message=incoming_message,
        state=state,
        chosen_action=chosen_action,
        quotas_before=quotas_before,
        quotas_after=quotas_after,
        action_details=action_details,
        ai_prompt=ai_prompt,
        ai_response=ai_response,
        sent_message=sent_message,
    )


class AuditStore(Protocol):
    def append(self, record: AuditRecord) -> None: ...

    def for_conversation(self, conversation_id: str) -> List[AuditRecord]: ...

    def between(self, start: datetime, end: datetime) -> List[AuditRecord]: ...


class InMemoryAuditStore:
    def __init__(self):
        self._records: List[AuditRecord] = []
        self._lock = threading.Lock()

    def append(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)

    def for_conversation(self, conversation_id: str) -> List[AuditRecord]:
        with self._lock:
            return [r for r in self._records if r.conversation_id == conversation_id]

    def between(self, start: datetime, end: datetime) -> List[AuditRecord]:
        with self._lock:
            return [r for r in self._records if start <= r.timestamp <= end]


def _snapshot_from_json(data: dict) -> QuotaSnapshot:
    return QuotaSnapshot(
        messages_today=int(data.get("messages_today", 0)),
        messages_this_week=int(data.get("messages_this_week", 0)),
        images_today=int(data.get("images_today", 0)),
        videos_this_week=int(data.get("videos_this_week", 0)),
    )


def _record_from_row(row: AuditLog) -> AuditRecord:
    timestamp = as_utc(row.timestamp) if row.timestamp is not None else None
    return AuditRecord(
        id=row.id,
        timestamp=timestamp,
        conversation_id=row.conversation_id,
        incoming_message=row.incoming_message,
        state=row.state,
        chosen_action=row.chosen_action,
        quotas_before=_snapshot_from_json(row.quotas_before or {}),
        quotas_after=_snapshot_from_json(row.quotas_after or {}),
        action_details=row.action_details,
        ai_prompt=row.ai_prompt,
        ai_response=row.ai_response,
        sent_message=row.sent_message,
    )


class SqlAuditStore:
    """Insert-only store over the ``audit_logs`` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def append(self, record: AuditRecord) -> None:
        db = self.session_factory()
        try:
            db.add(
                AuditLog(
                    id=record.id,
                    timestamp=record.timestamp,
                    conversation_id=record.conversation_id,
                    incoming_message=record.incoming_message,
                    state=record.state,
                    chosen_action=record.chosen_action,
                    action_details=record.action_details,
                    ai_prompt=record.ai_prompt,
                    ai_response=record.ai_response,
                    sent_message=record.sent_message,
                    quotas_before=record.quotas_before.to_dict(),
                    quotas_after=record.quotas_after.to_dict(),
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def for_conversation(self, conversation_id: str) -> List[AuditRecord]:
        db = self.session_factory()
        try:
            rows = (
                db.query(AuditLog)
                .filter(AuditLog.conversation_id == conversation_id)
                .order_by(AuditLog.timestamp)
                .all()
            )
            return [_record_from_row(row) for row in rows]
        finally:
            db.close()

    def between(self, start: datetime, end: datetime) -> List[AuditRecord]:
        db = self.session_factory()
        try:
            rows = (
                db.query(AuditLog)
                .filter(AuditLog.timestamp >= start, AuditLog.timestamp <= end)
                .order_by(AuditLog.timestamp)
                .all()
            )
            return [_record_from_row(row) for row in rows]
        finally:
            db.close()


class AuditRecorder:
    def __init__(self, store: AuditStore, fallback_message: Optional[str] = None):
        self.store = store
        self.fallback_message = fallback_message

    def log_message_flow(self, record: AuditRecord) -> Result[AuditRecord]:
        try:
            self.store.append(record)
        except Exception as e:
            logger.error(
                "Audit write failed",
                extra={"context": {"audit_id": record.id, "conversation_id": record.conversation_id, "error": str(e)}},
            )
            return Result.failure(str(e), "audit_write_error")

        logger.info(
            "Audit record written",
            extra={
                "context": {
                    "audit_id": record.id,
                    "conversation_id": record.conversation_id,
                    "action": record.chosen_action,
                    "state": record.state,
                }
            },
        )
        return Result.success(record)

    def get_logs(self, conversation_id: str) -> List[AuditRecord]:
        return self.store.for_conversation(conversation_id)

    def generate_report(self, start: datetime, end: datetime) -> AuditReport:
        start, end = as_utc(start), as_utc(end)
        records = self.store.between(start, end)
        report = AuditReport(start=start, end=end, total=len(records))
        report.by_action = dict(Counter(r.chosen_action for r in records))
        report.by_state = dict(Counter(r.state for r in records))
        report.conversations = len({r.conversation_id for r in records})
        if self.fallback_message:
            report.fallback_sent = sum(1 for r in records if r.sent_message == self.fallback_message)
        return report
