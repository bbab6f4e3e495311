"""Stored conversation state, updated read-compute-write under one lock per conversation."""

import threading
from dataclasses import dataclass
from typing import Optional

from sellify.logging_config import get_logger
from sellify.services.state_machine import (
    ConversationEvent,
    ConversationState,
    initial_state,
    transition,
)

logger = get_logger("conversation_service")


@dataclass
class _ConversationSlot:
    state: ConversationState
    automation_stopped: bool
    lock: threading.Lock


class ConversationRegistry:
    def __init__(self):
        self._slots: dict[str, _ConversationSlot] = {}
        self._slots_lock = threading.Lock()

    def _slot(self, conversation_id: str) -> _ConversationSlot:
        with self._slots_lock:
            slot = self._slots.get(conversation_id)
            if slot is None:
                slot = _ConversationSlot(initial_state(), False, threading.Lock())
                self._slots[conversation_id] = slot
            return slot

    def restore(
        self,
        conversation_id: str,
        state: ConversationState,
        automation_stopped: bool = False,
    ) -> None:
        slot = self._slot(conversation_id)
        with slot.lock:
            slot.state = state
            slot.automation_stopped = automation_stopped

    def get_state(self, conversation_id: str) -> ConversationState:
        slot = self._slot(conversation_id)
        with slot.lock:
            return slot.state

    def apply_event(
        self, conversation_id: str, event: ConversationEvent
    ) -> tuple[ConversationState, ConversationState]:
        """Returns (before, after)."""
        slot = self._slot(conversation_id)
        with slot.lock:
            before = slot.state
            slot.state = transition(before, event)
            after = slot.state
        if before != after:
            logger.info(
                f"Conversation {conversation_id}: {before.value} -> {after.value}",
                extra={"context": {"event": event.value}},
            )
        return before, after

    def stop_automation(self, conversation_id: str) -> None:
        """Disable automated cycles until a human override."""
        slot = self._slot(conversation_id)
        with slot.lock:
            slot.automation_stopped = True
        logger.info(f"Automation stopped for conversation {conversation_id}")

    def is_automation_stopped(self, conversation_id: str) -> bool:
        slot = self._slot(conversation_id)
        with slot.lock:
            return slot.automation_stopped

    def human_override(self, conversation_id: str, state: Optional[ConversationState] = None) -> ConversationState:
        """A human hands the conversation back to automation."""
        slot = self._slot(conversation_id)
        with slot.lock:
            slot.automation_stopped = False
            slot.state = state or initial_state()
            new_state = slot.state
        logger.info(f"Human override for conversation {conversation_id}, state={new_state.value}")
        return new_state
