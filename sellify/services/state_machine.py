"""Conversation state machine.

State changes are decided by this table alone, never by generated text. The
table is the single auditable source: every (state, event) pair missing from
``TRANSITIONS`` leaves the state unchanged.
"""

from enum import Enum
from typing import Optional

from sellify.logging_config import get_logger

logger = get_logger("state_machine")


class ConversationState(str, Enum):
    DISCOVERY = "Discovery"
    INTEREST = "Interest"
    INTENT = "Intent"
    OBJECTION = "Objection"
    NEGATIVE = "Negative"
    ESCALATED = "Escalated"
    FROZEN = "Frozen"


class ConversationEvent(str, Enum):
    PRODUCT_QUESTION = "ProductQuestion"
    PRICE_INTEREST = "PriceInterest"
    PURCHASE_INTENT = "PurchaseIntent"
    OBJECTION_RAISED = "ObjectionRaised"
    NEGATIVE_RESPONSE = "NegativeResponse"
    THREAT_DETECTED = "ThreatDetected"
    FREEZE = "Freeze"


S = ConversationState
E = ConversationEvent

TRANSITIONS: dict[tuple[ConversationState, ConversationEvent], ConversationState] = {
    (S.DISCOVERY, E.PRODUCT_QUESTION): S.INTEREST,
    (S.DISCOVERY, E.NEGATIVE_RESPONSE): S.NEGATIVE,
    (S.DISCOVERY, E.THREAT_DETECTED): S.ESCALATED,
    (S.INTEREST, E.PRICE_INTEREST): S.INTENT,
    (S.INTEREST, E.OBJECTION_RAISED): S.OBJECTION,
    (S.INTEREST, E.NEGATIVE_RESPONSE): S.NEGATIVE,
    (S.INTEREST, E.THREAT_DETECTED): S.ESCALATED,
    (S.INTENT, E.PURCHASE_INTENT): S.INTENT,
    (S.INTENT, E.OBJECTION_RAISED): S.OBJECTION,
    (S.INTENT, E.NEGATIVE_RESPONSE): S.NEGATIVE,
    (S.INTENT, E.THREAT_DETECTED): S.ESCALATED,
    (S.OBJECTION, E.PRODUCT_QUESTION): S.INTEREST,
    (S.OBJECTION, E.NEGATIVE_RESPONSE): S.NEGATIVE,
    (S.OBJECTION, E.THREAT_DETECTED): S.ESCALATED,
    # Negative and Escalated only leave through an explicit freeze
    (S.NEGATIVE, E.FREEZE): S.FROZEN,
    (S.ESCALATED, E.FREEZE): S.FROZEN,
}

TERMINAL_STATES = frozenset({S.ESCALATED, S.FROZEN})


def initial_state() -> ConversationState:
    return ConversationState.DISCOVERY


def transition(current: ConversationState, event: ConversationEvent) -> ConversationState:
    """Return the next state. Total: unknown pairs keep the current state."""
    return TRANSITIONS.get((current, event), current)


def is_terminal_state(state: ConversationState) -> bool:
    """Escalated and Frozen conversations must not be automated any more."""
    return state in TERMINAL_STATES


def parse_state(name: Optional[str]) -> Optional[ConversationState]:
    try:
        return ConversationState(name)
    except ValueError:
        return None


def parse_event(name: Optional[str]) -> Optional[ConversationEvent]:
    try:
        return ConversationEvent(name)
    except ValueError:
        return None


def transition_by_name(state_name: str, event_name: str) -> str:
    """Transition on wire names, degrading to "no change" on malformed input."""
    state = parse_state(state_name)
    if state is None:
        logger.warning(
            "Unknown conversation state, leaving unchanged",
            extra={"context": {"state": state_name, "event": event_name}},
        )
        return state_name

    event = parse_event(event_name)
    if event is None:
        logger.warning(
            "Unknown conversation event, leaving state unchanged",
            extra={"context": {"state": state_name, "event": event_name}},
        )
        return state.value

    return transition(state, event).value
