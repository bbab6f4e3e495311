import time
from dataclasses import dataclass
from typing import Optional

import httpx

from sellify.logging_config import get_logger, log_timing
from sellify.services.generation_guard import GenerationValidator
from sellify.services.llm.base import LLMProvider

logger = get_logger("generation_service")

SYSTEM_PROMPT = (
    "Tu es conseiller commercial. Réponds en français, en moins de 500 caractères, "
    "uniquement à propos du produit décrit ci-dessous."
)


@dataclass(frozen=True)
class GenerationOutcome:
    text: str
    accepted: bool
    prompt: Optional[str] = None
    raw_response: Optional[str] = None
    error_code: Optional[str] = None


def build_messages(validator: GenerationValidator, product_id: str, prompt: str) -> list[dict]:
    product = validator.knowledge_base.get_product(product_id)
    product_context = ""
    if product:
        product_context = f"\n\nProduit: {product.name}\n{product.short_description}\nPrix: {product.price}"
    return [
        {"role": "system", "content": SYSTEM_PROMPT + product_context},
        {"role": "user", "content": prompt},
    ]


def generate_reply(
    provider: Optional[LLMProvider],
    validator: GenerationValidator,
    product_id: Optional[str],
    action: str,
    prompt: str,
    timeout_seconds: float,
) -> GenerationOutcome:
    """Run the generator between both validation gates.

    Every failure (pre-check, timeout, provider error, post-check) ends in the
    fallback text. There is no retry.
    """
    fallback = validator.fallback_message()

    pre_check = validator.validate_before_ai(product_id, action)
    if not pre_check.ok:
        return GenerationOutcome(text=fallback, accepted=False, prompt=prompt, error_code=pre_check.error_code)

    if provider is None:
        logger.warning("No generator configured, using fallback")
        return GenerationOutcome(text=fallback, accepted=False, prompt=prompt, error_code="no_generator")

    start = time.monotonic()
    try:
        response = provider.generate(
            build_messages(validator, product_id, prompt),
            timeout_seconds=timeout_seconds,
        )
    except httpx.TimeoutException:
        logger.warning(
            "Generator timeout",
            extra={"context": {"timeout_seconds": timeout_seconds, "product_id": product_id}},
        )
        return GenerationOutcome(text=fallback, accepted=False, prompt=prompt, error_code="generator_timeout")
    except Exception as e:
        logger.error(f"Generator failed: {e}")
        return GenerationOutcome(text=fallback, accepted=False, prompt=prompt, error_code="generator_error")

    log_timing(logger, "generation_ms", start, {"model_name": response.model})

    post_check = validator.validate_after_ai(response.content)
    if not post_check.ok:
        logger.info(f"Generated text rejected: {post_check.error}")
        return GenerationOutcome(
            text=fallback,
            accepted=False,
            prompt=prompt,
            raw_response=response.content,
            error_code=post_check.error_code,
        )

    return GenerationOutcome(text=post_check.value, accepted=True, prompt=prompt, raw_response=response.content)
