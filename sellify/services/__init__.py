from sellify.services.decision_engine import (
    Action,
    AlertHuman,
    DecisionContext,
    Delay,
    Ignore,
    RespondText,
    RespondWithMedia,
    StopAutomation,
    decide,
    validate_action,
)
from sellify.services.state_machine import (
    ConversationEvent,
    ConversationState,
    is_terminal_state,
    transition,
)
