from fastapi import APIRouter, Depends, HTTPException, status

from sellify.logging_config import get_logger
from sellify.runtime import Runtime, get_runtime
from sellify.schemas.conversation import OverrideRequest, TransitionRequest, TransitionResponse
from sellify.schemas.decision import (
    CycleRequest,
    CycleResponse,
    DecisionRequest,
    DecisionResponse,
    ValidationRequest,
    ValidationResponse,
)
from sellify.services.decision_engine import DecisionContext, action_details, action_name, decide
from sellify.services.state_machine import is_terminal_state, parse_event, parse_state, transition_by_name

logger = get_logger("routers.decision")

router = APIRouter(prefix="/api/v1")


def _require_state(name: str):
    state = parse_state(name)
    if state is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid state")
    return state


def _require_event(name: str):
    event = parse_event(name)
    if event is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid event")
    return event


@router.post("/decision", response_model=DecisionResponse)
def make_decision(request: DecisionRequest):
    context = DecisionContext(
        incoming_message=request.incoming_message,
        conversation_state=_require_state(request.conversation_state),
        quotas_available=request.quotas_available,
        is_active_hours=request.is_active_hours,
        sentiment_detected=request.sentiment_detected,
    )
    action = decide(context)
    return DecisionResponse(action=action_name(action), details=action_details(action))


@router.post("/validate", response_model=ValidationResponse)
def validate_text(request: ValidationRequest, runtime: Runtime = Depends(get_runtime)):
    result = runtime.validator.validate_after_ai(request.text)
    if result.ok:
        return ValidationResponse(valid=True, validated_text=result.value)
    return ValidationResponse(
        valid=False,
        fallback_text=runtime.validator.fallback_message(),
        error=result.error,
        error_code=result.error_code,
    )


@router.post("/conversation/transition", response_model=TransitionResponse)
def transition_state(request: TransitionRequest):
    # unknown names leave the state unchanged instead of failing the request
    new_name = transition_by_name(request.current_state, request.event)
    new_state = parse_state(new_name)
    return TransitionResponse(new_state=new_name, is_terminal=new_state is not None and is_terminal_state(new_state))


@router.post("/conversation/{conversation_id}/override", response_model=TransitionResponse)
def human_override(conversation_id: str, request: OverrideRequest, runtime: Runtime = Depends(get_runtime)):
    state = _require_state(request.state) if request.state else None
    new_state = runtime.conversations.human_override(conversation_id, state)
    return TransitionResponse(new_state=new_state.value, is_terminal=is_terminal_state(new_state))


@router.post("/cycle", response_model=CycleResponse)
def run_cycle(request: CycleRequest, runtime: Runtime = Depends(get_runtime)):
    tenant_id = request.tenant_id or runtime.config.default_tenant_id
    event = _require_event(request.event) if request.event else None

    outcome = runtime.cycle.run(
        tenant_id=tenant_id,
        conversation_id=request.conversation_id,
        message=request.message,
        event=event,
        sentiment=request.sentiment,
        product_id=request.product_id,
        prompt=request.prompt,
        misunderstanding_count=request.misunderstanding_count,
    )

    if not runtime.persist_tenant(tenant_id):
        logger.warning(f"Quota snapshot not persisted for tenant {tenant_id}")
    if not runtime.persist_conversation(tenant_id, request.conversation_id):
        logger.warning(f"Conversation {request.conversation_id} state not persisted")

    return CycleResponse(
        action=action_name(outcome.action),
        details=action_details(outcome.action),
        outbound_text=outcome.outbound_text,
        delay_seconds=outcome.delay_seconds,
        state_before=outcome.state_before.value,
        state_after=outcome.state_after.value,
        audit_written=bool(outcome.audit and outcome.audit.ok),
    )
