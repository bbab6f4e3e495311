"""One decision cycle per inbound message.

detect trigger -> decide -> (pre-check -> generate -> post-check) ->
atomic quota check-and-record -> alert -> audit -> state transition.
No lock is held while the generator runs.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from sellify.config import Settings, is_active_hours
from sellify.logging_config import LoggerAdapter, get_logger
from sellify.services.alert_service import AlertDetector, AlertSender, Trigger, TriggerKind, sentiment_for_trigger
from sellify.services.audit_service import AuditRecorder, build_audit_record
from sellify.services.conversation_service import ConversationRegistry
from sellify.services.decision_engine import (
    QUOTA_EXHAUSTED_DELAY_SECONDS,
    SENDING_ACTIONS,
    Action,
    AlertHuman,
    DecisionContext,
    Delay,
    RespondText,
    StopAutomation,
    action_details,
    action_name,
    decide,
    validate_action,
)
from sellify.services.generation_guard import GenerationValidator
from sellify.services.generation_service import GenerationOutcome, generate_reply
from sellify.services.llm.base import LLMProvider
from sellify.services.quota_engine import utcnow
from sellify.services.quota_service import QuotaRegistry
from sellify.services.result import Result
from sellify.services.state_machine import ConversationEvent, ConversationState, is_terminal_state

logger = get_logger("decision_cycle")

ESCALATING_TRIGGERS = {TriggerKind.THREAT, TriggerKind.LEGAL_SITUATION}


@dataclass(frozen=True)
class CycleOutcome:
    action: Action
    state_before: ConversationState
    state_after: ConversationState
    delay_seconds: Optional[int] = None
    trigger: Optional[Trigger] = None
    alert_sent: bool = False
    generation: Optional[GenerationOutcome] = None
    audit: Optional[Result] = None

    @property
    def outbound_text(self) -> Optional[str]:
        if isinstance(self.action, SENDING_ACTIONS):
            return self.action.text
        return None


class DecisionCycle:
    def __init__(
        self,
        config: Settings,
        quotas: QuotaRegistry,
        conversations: ConversationRegistry,
        detector: AlertDetector,
        validator: GenerationValidator,
        recorder: AuditRecorder,
        alert_sender: AlertSender,
        provider: Optional[LLMProvider] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.quotas = quotas
        self.conversations = conversations
        self.detector = detector
        self.validator = validator
        self.recorder = recorder
        self.alert_sender = alert_sender
        self.provider = provider
        self.clock = clock

    def run(
        self,
        tenant_id: str,
        conversation_id: str,
        message: str,
        event: Optional[ConversationEvent] = None,
        sentiment: Optional[str] = None,
        product_id: Optional[str] = None,
        prompt: Optional[str] = None,
        misunderstanding_count: int = 0,
    ) -> CycleOutcome:
        log = LoggerAdapter(logger, {"tenant_id": tenant_id, "conversation_id": conversation_id})

        state = self.conversations.get_state(conversation_id)
        quotas_before = self.quotas.snapshot(tenant_id)

        trigger = self.detector.detect_trigger(message, misunderstanding_count)
        sentiment = sentiment or sentiment_for_trigger(trigger)

        context = DecisionContext(
            incoming_message=message,
            conversation_state=state,
            quotas_available=self.quotas.check_message(tenant_id),
            is_active_hours=is_active_hours(self.config, self.clock()),
            sentiment_detected=sentiment,
        )

        if self.conversations.is_automation_stopped(conversation_id):
            action: Action = StopAutomation()
        else:
            action = decide(context)

        if isinstance(action, SENDING_ACTIONS) and is_terminal_state(state):
            action = StopAutomation()

        generation = None
        delay_seconds = None
        alert_sent = False

        if isinstance(action, RespondText):
            generation = generate_reply(
                self.provider,
                self.validator,
                product_id,
                action_name(action),
                prompt or message,
                self.config.generation_timeout_seconds,
            )
            admission = self.quotas.try_record_message(tenant_id)
            if admission.allowed:
                action = RespondText(text=generation.text)
                delay_seconds = admission.delay_seconds
            elif not validate_action(action, replace(context, quotas_available=False)):
                log.info("Quota exhausted between decision and send", context={"usage": admission.before.to_dict()})
                action = Delay(seconds=QUOTA_EXHAUSTED_DELAY_SECONDS)

        if trigger is not None:
            alert_sent = self.alert_sender.send_trigger(trigger, conversation_id, {"tenant_id": tenant_id})
        elif isinstance(action, AlertHuman):
            alert_sent = self.alert_sender.send_alert(action.reason, conversation_id, {"tenant_id": tenant_id})

        if isinstance(action, StopAutomation):
            self.conversations.stop_automation(conversation_id)

        record = build_audit_record(
            conversation_id=conversation_id,
            incoming_message=message,
            state=state.value,
            chosen_action=action_name(action),
            action_details=action_details(action),
            quotas_before=quotas_before,
            quotas_after=self.quotas.snapshot(tenant_id),
            ai_prompt=generation.prompt if generation else None,
            ai_response=generation.raw_response if generation else None,
            sent_message=action.text if isinstance(action, SENDING_ACTIONS) else None,
            timestamp=self.clock(),
        )
        audit = self.recorder.log_message_flow(record)
        if not audit.ok:
            log.warning("Decision cycle continued without audit record", context={"error": audit.error})

        if event is None and trigger is not None and trigger.kind in ESCALATING_TRIGGERS:
            event = ConversationEvent.THREAT_DETECTED

        state_after = state
        if event is not None:
            _, state_after = self.conversations.apply_event(conversation_id, event)

        log.info(
            "Decision cycle completed",
            context={
                "action": action_name(action),
                "state_before": state.value,
                "state_after": state_after.value,
                "trigger": trigger.describe() if trigger else None,
            },
        )

        return CycleOutcome(
            action=action,
            state_before=state,
            state_after=state_after,
            delay_seconds=delay_seconds,
            trigger=trigger,
            alert_sent=alert_sent,
            generation=generation,
            audit=audit,
        )
