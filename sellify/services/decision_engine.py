"""Decision function: picks exactly one action from a closed set.

The engine decides *whether* something may happen, never *what words* are
said. ``RespondText`` comes back with an empty body; the caller fills it
through the guarded generation path.
"""

from dataclasses import dataclass
from typing import Optional, Union

from sellify.services.state_machine import ConversationState

QUOTA_EXHAUSTED_DELAY_SECONDS = 3600
ALERT_SENTIMENTS = frozenset({"anger", "threat"})


@dataclass(frozen=True)
class RespondText:
    text: str = ""


@dataclass(frozen=True)
class RespondWithMedia:
    text: str
    media_id: str


@dataclass(frozen=True)
class Ignore:
    pass


@dataclass(frozen=True)
class Delay:
    seconds: int


@dataclass(frozen=True)
class AlertHuman:
    reason: str


@dataclass(frozen=True)
class StopAutomation:
    pass


Action = Union[RespondText, RespondWithMedia, Ignore, Delay, AlertHuman, StopAutomation]

ACTION_TYPES = (RespondText, RespondWithMedia, Ignore, Delay, AlertHuman, StopAutomation)
SENDING_ACTIONS = (RespondText, RespondWithMedia)


@dataclass(frozen=True)
class DecisionContext:
    incoming_message: str
    conversation_state: ConversationState
    quotas_available: bool
    is_active_hours: bool
    sentiment_detected: Optional[str] = None


def decide(context: DecisionContext) -> Action:
    """First matching rule wins; the order below is the policy."""
    if not context.is_active_hours:
        return Ignore()

    if not context.quotas_available:
        return Delay(seconds=QUOTA_EXHAUSTED_DELAY_SECONDS)

    sentiment = (context.sentiment_detected or "").strip().lower()
    if sentiment in ALERT_SENTIMENTS:
        return AlertHuman(reason=f"Sentiment detected: {sentiment}")

    return RespondText(text="")


def validate_action(action: Action, context: DecisionContext) -> bool:
    """Re-check that an already chosen action is still legal for ``context``."""
    if isinstance(action, (RespondText, RespondWithMedia)):
        return context.is_active_hours and context.quotas_available
    if isinstance(action, (Ignore, Delay, AlertHuman, StopAutomation)):
        return True
    raise TypeError(f"Unknown action: {action!r}")


def action_name(action: Action) -> str:
    if not isinstance(action, ACTION_TYPES):
        raise TypeError(f"Unknown action: {action!r}")
    return type(action).__name__


def action_details(action: Action) -> Optional[str]:
    if isinstance(action, RespondText):
        return action.text
    if isinstance(action, RespondWithMedia):
        return f"{action.text} (media: {action.media_id})"
    if isinstance(action, Delay):
        return f"{action.seconds} seconds"
    if isinstance(action, AlertHuman):
        return action.reason
    if isinstance(action, (Ignore, StopAutomation)):
        return None
    raise TypeError(f"Unknown action: {action!r}")
