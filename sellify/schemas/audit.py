from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel


class QuotaSnapshotSchema(BaseModel):
    messages_today: int = 0
    messages_this_week: int = 0
    images_today: int = 0
    videos_this_week: int = 0


class AuditRecordSchema(BaseModel):
    id: Optional[str] = None
    timestamp: Optional[datetime] = None
    conversation_id: str
    incoming_message: str
    state: str
    chosen_action: str
    action_details: Optional[str] = None
    ai_prompt: Optional[str] = None
    ai_response: Optional[str] = None
    sent_message: Optional[str] = None
    quotas_before: QuotaSnapshotSchema
    quotas_after: QuotaSnapshotSchema


class AuditReportResponse(BaseModel):
    start: datetime
    end: datetime
    total: int
    by_action: Dict[str, int]
    by_state: Dict[str, int]
    fallback_sent: int
    conversations: int
