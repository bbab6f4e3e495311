from typing import Optional

from pydantic import BaseModel


class QuotaCheckRequest(BaseModel):
    message_type: str  # text, image, video
    tenant_id: Optional[str] = None


class QuotaCheckResponse(BaseModel):
    can_send: bool
    delay_seconds: Optional[int] = None


class QuotaRecordRequest(BaseModel):
    message_type: str = "text"
    tenant_id: Optional[str] = None


class QuotaRecordResponse(BaseModel):
    recorded: bool
    delay_seconds: Optional[int] = None
    messages_today: int
    messages_this_week: int


class QuotaResetResponse(BaseModel):
    reset_type: str
    timestamp: str


class QuotaStatusResponse(BaseModel):
    messages_today: int
    messages_this_week: int
    images_today: int
    videos_this_week: int
    last_reset: str
    needs_daily_reset: bool
    needs_weekly_reset: bool
