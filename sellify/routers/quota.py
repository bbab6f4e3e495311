from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from sellify.runtime import Runtime, get_runtime
from sellify.schemas.quota import (
    QuotaCheckRequest,
    QuotaCheckResponse,
    QuotaRecordRequest,
    QuotaRecordResponse,
    QuotaResetResponse,
    QuotaStatusResponse,
)

router = APIRouter(prefix="/api/v1/quota")

MESSAGE_TYPES = {"text", "image", "video"}


def _require_message_type(message_type: str) -> str:
    if message_type not in MESSAGE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid message type")
    return message_type


@router.post("/check", response_model=QuotaCheckResponse)
def check_quota(request: QuotaCheckRequest, runtime: Runtime = Depends(get_runtime)):
    tenant_id = request.tenant_id or runtime.config.default_tenant_id
    message_type = _require_message_type(request.message_type)

    if message_type == "text":
        can_send = runtime.quotas.check_message(tenant_id)
    else:
        can_send = runtime.quotas.check_media(tenant_id, is_video=message_type == "video")

    delay = runtime.quotas.calculate_delay(tenant_id) if can_send else None
    return QuotaCheckResponse(can_send=can_send, delay_seconds=delay)


@router.post("/record", response_model=QuotaRecordResponse)
def record_send(request: QuotaRecordRequest, runtime: Runtime = Depends(get_runtime)):
    """Atomic admission + record; refused sends are not counted."""
    tenant_id = request.tenant_id or runtime.config.default_tenant_id
    message_type = _require_message_type(request.message_type)

    if message_type == "text":
        admission = runtime.quotas.try_record_message(tenant_id)
    else:
        admission = runtime.quotas.try_record_media(tenant_id, is_video=message_type == "video")

    if admission.allowed:
        runtime.persist_tenant(tenant_id)

    return QuotaRecordResponse(
        recorded=admission.allowed,
        delay_seconds=admission.delay_seconds,
        messages_today=admission.after.messages_today,
        messages_this_week=admission.after.messages_this_week,
    )


@router.post("/reset/daily", response_model=QuotaResetResponse)
def reset_daily_quota(tenant_id: Optional[str] = None, runtime: Runtime = Depends(get_runtime)):
    tenant_id = tenant_id or runtime.config.default_tenant_id
    runtime.quotas.reset_daily(tenant_id)
    runtime.persist_tenant(tenant_id)
    return QuotaResetResponse(reset_type="daily", timestamp=datetime.now(timezone.utc).isoformat())


@router.post("/reset/weekly", response_model=QuotaResetResponse)
def reset_weekly_quota(tenant_id: Optional[str] = None, runtime: Runtime = Depends(get_runtime)):
    tenant_id = tenant_id or runtime.config.default_tenant_id
    runtime.quotas.reset_weekly(tenant_id)
    runtime.persist_tenant(tenant_id)
    return QuotaResetResponse(reset_type="weekly", timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/status", response_model=QuotaStatusResponse)
def quota_status(tenant_id: Optional[str] = None, runtime: Runtime = Depends(get_runtime)):
    tenant_id = tenant_id or runtime.config.default_tenant_id
    usage = runtime.quotas.usage(tenant_id)
    needs_daily, needs_weekly = runtime.quotas.needs_resets(tenant_id)
    return QuotaStatusResponse(
        messages_today=usage.messages_today,
        messages_this_week=usage.messages_this_week,
        images_today=usage.images_today,
        videos_this_week=usage.videos_this_week,
        last_reset=usage.last_reset.isoformat(),
        needs_daily_reset=needs_daily,
        needs_weekly_reset=needs_weekly,
    )
