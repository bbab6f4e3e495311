from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from sellify.runtime import Runtime, get_runtime
from sellify.schemas.audit import AuditRecordSchema, AuditReportResponse
from sellify.services.audit_service import AuditRecord, build_audit_record
from sellify.services.quota_engine import QuotaSnapshot

router = APIRouter(prefix="/api/v1/audit")


def _to_schema(record: AuditRecord) -> AuditRecordSchema:
    return AuditRecordSchema(
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


@router.post("", response_model=AuditRecordSchema, status_code=status.HTTP_201_CREATED)
def log_audit(request: AuditRecordSchema, runtime: Runtime = Depends(get_runtime)):
    record = build_audit_record(
        conversation_id=request.conversation_id,
        incoming_message=request.incoming_message,
        state=request.state,
        chosen_action=request.chosen_action,
        action_details=request.action_details,
        quotas_before=QuotaSnapshot(**request.quotas_before.model_dump()),
        quotas_after=QuotaSnapshot(**request.quotas_after.model_dump()),
        ai_prompt=request.ai_prompt,
        ai_response=request.ai_response,
        sent_message=request.sent_message,
        timestamp=request.timestamp,
    )
    result = runtime.recorder.log_message_flow(record)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Audit write failed")
    return _to_schema(result.value)


@router.get("/report", response_model=AuditReportResponse)
def audit_report(start: datetime, end: datetime, runtime: Runtime = Depends(get_runtime)):
    report = runtime.recorder.generate_report(start, end)
    return AuditReportResponse(
        start=report.start,
        end=report.end,
        total=report.total,
        by_action=report.by_action,
        by_state=report.by_state,
        fallback_sent=report.fallback_sent,
        conversations=report.conversations,
    )


@router.get("/{conversation_id}", response_model=List[AuditRecordSchema])
def get_audit_logs(conversation_id: str, runtime: Runtime = Depends(get_runtime)):
    return [_to_schema(record) for record in runtime.recorder.get_logs(conversation_id)]
