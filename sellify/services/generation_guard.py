"""Double lock around text generation.

``validate_before_ai`` bounds what the generator may be asked about;
``validate_after_ai`` decides whether what it produced may be sent. A
rejected text is replaced by ``fallback_message()``, never retried.
"""

import re
from typing import Iterable, Optional

from sellify.config import FALLBACK_MESSAGE
from sellify.logging_config import get_logger
from sellify.services.knowledge_base import KnowledgeBase
from sellify.services.result import Result

logger = get_logger("generation_guard")

DEFAULT_FORBIDDEN_WORDS = (
    "AI",
    "intelligence artificielle",
    "robot",
    "humain",
    "transférer",
    "escalade",
)
DEFAULT_ALLOWED_ACTIONS = frozenset({"RespondText", "RespondWithMedia"})
MAX_GENERATED_LENGTH = 500

# Terms this short ("AI") would hit inside ordinary words ("aider", "mais")
WHOLE_WORD_MAX_LENGTH = 3


def _compile_forbidden(word: str) -> re.Pattern:
    escaped = re.escape(word)
    if len(word) <= WHOLE_WORD_MAX_LENGTH:
        # apostrophes count as word characters so "j'ai" is not "ai"
        return re.compile(rf"(?<![\w'’]){escaped}(?![\w'’])", re.IGNORECASE)
    return re.compile(escaped, re.IGNORECASE)


class GenerationValidator:
    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        forbidden_words: Iterable[str] = DEFAULT_FORBIDDEN_WORDS,
        max_length: int = MAX_GENERATED_LENGTH,
        allowed_actions: Iterable[str] = DEFAULT_ALLOWED_ACTIONS,
        fallback: str = FALLBACK_MESSAGE,
    ):
        self.knowledge_base = knowledge_base
        self.max_length = max_length
        self.allowed_actions = frozenset(allowed_actions)
        self.fallback = fallback
        self._forbidden = [(word, _compile_forbidden(word)) for word in forbidden_words if word]

    def validate_before_ai(self, product_id: Optional[str], action: str) -> Result[None]:
        if action not in self.allowed_actions:
            logger.info(f"Pre-generation check rejected action {action}")
            return Result.failure(f"Action not allowed for generation: {action}", "action_not_allowed")

        if not self.knowledge_base.is_valid_product(product_id):
            logger.info(f"Pre-generation check rejected unknown product {product_id}")
            return Result.failure(f"Unknown product: {product_id}", "unknown_product")

        return Result.success(None)

    def validate_after_ai(self, generated_text: str) -> Result[str]:
        if len(generated_text) > self.max_length:
            return Result.failure(
                f"Generated text exceeds max length ({len(generated_text)} > {self.max_length})",
                "too_long",
            )

        for word, pattern in self._forbidden:
            if pattern.search(generated_text):
                return Result.failure(f"Generated text contains forbidden word: {word}", "forbidden_word")

        return Result.success(generated_text)

    def fallback_message(self) -> str:
        return self.fallback
