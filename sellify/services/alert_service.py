"""Alert triggers and silent escalation to a human-monitored Telegram chat.

The client conversation is never told that an alert was raised: dispatch
happens out of band and its failure only shows up in our logs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

import httpx

from sellify.logging_config import get_logger

logger = get_logger("alert_service")


class TriggerKind(str, Enum):
    ANGER = "Anger"
    THREAT = "Threat"
    REPEATED_MISUNDERSTANDING = "RepeatedMisunderstanding"
    SENSITIVE_WORD = "SensitiveWord"
    LEGAL_SITUATION = "LegalSituation"


@dataclass(frozen=True)
class Trigger:
    kind: TriggerKind
    word: Optional[str] = None

    def describe(self) -> str:
        if self.word:
            return f"{self.kind.value}({self.word})"
        return self.kind.value


TRIGGER_SENTIMENTS = {
    TriggerKind.THREAT: "threat",
    TriggerKind.LEGAL_SITUATION: "threat",
    TriggerKind.ANGER: "anger",
}


def sentiment_for_trigger(trigger: Optional[Trigger]) -> Optional[str]:
    if trigger is None:
        return None
    return TRIGGER_SENTIMENTS.get(trigger.kind)


class AlertDetector:
    def __init__(
        self,
        legal_keywords: Iterable[str] = ("avocat", "tribunal", "police", "procès"),
        threat_keywords: Iterable[str] = ("tuer", "frapper", "détruire"),
        anger_keywords: Iterable[str] = ("arnaque", "escroc", "honteux", "inadmissible"),
        sensitive_words: Iterable[str] = (),
        max_misunderstandings: int = 3,
    ):
        self.legal_keywords = [k.lower() for k in legal_keywords]
        self.threat_keywords = [k.lower() for k in threat_keywords]
        self.anger_keywords = [k.lower() for k in anger_keywords]
        self.sensitive_words = [k.lower() for k in sensitive_words]
        self.max_misunderstandings = max_misunderstandings

    def detect_trigger(self, message: str, misunderstanding_count: int = 0) -> Optional[Trigger]:
        """Case-insensitive keyword scan. Legal wins over threat when both appear."""
        text = (message or "").lower()

        if any(keyword in text for keyword in self.legal_keywords):
            return Trigger(TriggerKind.LEGAL_SITUATION)

        if any(keyword in text for keyword in self.threat_keywords):
            return Trigger(TriggerKind.THREAT)

        if any(keyword in text for keyword in self.anger_keywords):
            return Trigger(TriggerKind.ANGER)

        for word in self.sensitive_words:
            if word in text:
                return Trigger(TriggerKind.SENSITIVE_WORD, word=word)

        if self.max_misunderstandings > 0 and misunderstanding_count >= self.max_misunderstandings:
            return Trigger(TriggerKind.REPEATED_MISUNDERSTANDING)

        return None


class AlertSender:
    """Delivers ``(trigger, conversation_id)`` pairs to the Telegram alert chat."""

    def __init__(self, bot_token: Optional[str], chat_id: Optional[str]):
        self.bot_token = bot_token
        self.chat_id = chat_id

    def send_alert(self, reason: str, conversation_id: str, context: Optional[dict] = None) -> bool:
        text = f"🚨 *ALERT* - Conversation: {conversation_id}\nTrigger: {reason}\nRequires human intervention"
        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            text += f"\n\n```\n{context_str}\n```"

        if not self.bot_token or not self.chat_id:
            logger.warning(f"Alert not configured: {reason} - {conversation_id}")
            return False

        try:
            with httpx.Client(timeout=10) as client:
                response = client.post(
                    f"https://api.telegram.org/bot{self.bot_token}/sendMessage",
                    json={"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"},
                )
                return response.status_code == 200
        except Exception as e:
            logger.error(f"Failed to send alert: {e}")
            return False

    def send_trigger(self, trigger: Trigger, conversation_id: str, context: Optional[dict] = None) -> bool:
        return self.send_alert(trigger.describe(), conversation_id, context)
