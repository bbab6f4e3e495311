from sellify.models.audit_log import AuditLog
from sellify.models.conversation_state import ConversationStateRecord
from sellify.models.quota_usage import QuotaUsageRecord

__all__ = [
    "AuditLog",
    "ConversationStateRecord",
    "QuotaUsageRecord",
]
