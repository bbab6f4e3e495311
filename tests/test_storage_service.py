from datetime import datetime, timezone
from unittest.mock import Mock

from sellify.models import ConversationStateRecord, QuotaUsageRecord
from sellify.services.conversation_service import ConversationRegistry
from sellify.services.quota_engine import QuotaUsage
from sellify.services.quota_service import QuotaRegistry
from sellify.services.state_machine import ConversationState
from sellify.services.storage_service import (
    load_quota_usage,
    restore_snapshots,
    save_conversation_state,
    save_quota_usage,
)

LAST_RESET = datetime(2026, 10, 14, 0, 0, tzinfo=timezone.utc)


class TestSaveQuotaUsage:
    def test_creates_record_when_missing(self, db_session):
        db_session.query.return_value.filter.return_value.first.return_value = None
        usage = QuotaUsage(messages_today=3, messages_this_week=9, last_reset=LAST_RESET)

        result = save_quota_usage(db_session, "t1", usage)

        assert result.ok is True
        record = db_session.add.call_args[0][0]
        assert isinstance(record, QuotaUsageRecord)
        assert record.tenant_id == "t1"
        assert record.messages_today == 3
        assert record.messages_this_week == 9
        db_session.commit.assert_called_once()

    def test_updates_existing_record(self, db_session):
        existing = Mock()
        db_session.query.return_value.filter.return_value.first.return_value = existing

        save_quota_usage(db_session, "t1", QuotaUsage(images_today=4, last_reset=LAST_RESET))

        assert existing.images_today == 4
        assert existing.last_reset == LAST_RESET
        db_session.add.assert_not_called()

    def test_db_error_rolls_back(self, db_session):
        db_session.commit.side_effect = Exception("connection lost")

        result = save_quota_usage(db_session, "t1", QuotaUsage())

        assert result.ok is False
        assert result.error_code == "db_error"
        db_session.rollback.assert_called_once()


class TestLoadQuotaUsage:
    def test_missing_tenant(self, db_session):
        db_session.query.return_value.filter.return_value.first.return_value = None
        assert load_quota_usage(db_session, "t1") is None

    def test_naive_timestamp_is_read_as_utc(self, db_session):
        db_session.query.return_value.filter.return_value.first.return_value = Mock(
            messages_today=5,
            messages_this_week=20,
            images_today=None,
            videos_this_week=1,
            last_reset=datetime(2026, 10, 14, 0, 0),
        )

        usage = load_quota_usage(db_session, "t1")

        assert usage.messages_today == 5
        assert usage.images_today == 0
        assert usage.last_reset == LAST_RESET


class TestSaveConversationState:
    def test_creates_record(self, db_session):
        db_session.query.return_value.filter.return_value.first.return_value = None

        result = save_conversation_state(db_session, "conv-1", "t1", "Escalated", True)

        assert result.ok is True
        record = db_session.add.call_args[0][0]
        assert isinstance(record, ConversationStateRecord)
        assert record.state == "Escalated"
        assert record.automation_stopped is True


class TestRestoreSnapshots:
    def test_loads_registries_and_skips_unknown_states(self, db_session):
        rows = {
            QuotaUsageRecord: [
                Mock(
                    tenant_id="t1",
                    messages_today=7,
                    messages_this_week=30,
                    images_today=1,
                    videos_this_week=0,
                    last_reset=LAST_RESET,
                )
            ],
            ConversationStateRecord: [
                Mock(conversation_id="conv-1", state="Objection", automation_stopped=True),
                Mock(conversation_id="conv-2", state="Lost", automation_stopped=False),
            ],
        }

        def query(model):
            q = Mock()
            q.all.return_value = rows[model]
            return q

        db_session.query.side_effect = query
        quotas = QuotaRegistry()
        conversations = ConversationRegistry()

        counts = restore_snapshots(db_session, quotas, conversations)

        assert counts == {"tenants": 1, "conversations": 1}
        assert quotas.usage("t1").messages_today == 7
        assert conversations.get_state("conv-1") == ConversationState.OBJECTION
        assert conversations.is_automation_stopped("conv-1") is True
