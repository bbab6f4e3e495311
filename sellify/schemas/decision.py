from typing import Optional

from pydantic import BaseModel, Field


class DecisionRequest(BaseModel):
    incoming_message: str
    conversation_state: str = "Discovery"
    quotas_available: bool
    is_active_hours: bool
    sentiment_detected: Optional[str] = None


class DecisionResponse(BaseModel):
    action: str
    details: Optional[str] = None


class ValidationRequest(BaseModel):
    text: str


class ValidationResponse(BaseModel):
    valid: bool
    validated_text: Optional[str] = None
    fallback_text: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class CycleRequest(BaseModel):
    tenant_id: Optional[str] = None
    conversation_id: str
    message: str
    event: Optional[str] = None
    sentiment: Optional[str] = None
    product_id: Optional[str] = None
    prompt: Optional[str] = None
    misunderstanding_count: int = Field(default=0, ge=0)


class CycleResponse(BaseModel):
    action: str
    details: Optional[str] = None
    outbound_text: Optional[str] = None
    delay_seconds: Optional[int] = None
    state_before: str
    state_after: str
    audit_written: bool
