from typing import List, Optional

import httpx

from sellify.logging_config import get_logger
from sellify.services.llm.base import LLMProvider, LLMResponse

logger = get_logger("llm.openai")

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class GeneratorError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OpenAIProvider(LLMProvider):
    """Chat completions over any OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-5-mini",
        default_timeout: float = 15.0,
        base_url: str = OPENAI_CHAT_URL,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.default_timeout = default_timeout
        self.base_url = base_url

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 300,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        timeout = timeout_seconds if timeout_seconds is not None else self.default_timeout
        logger.debug(f"Generator request: model={model}, messages_count={len(messages)}, timeout={timeout}")

        # httpx.TimeoutException propagates; the caller maps it to the fallback
        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                self.base_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_completion_tokens": max_tokens,
                },
            )

        if response.status_code != 200:
            raise GeneratorError(f"Generator returned HTTP {response.status_code}", response.status_code)

        data = response.json()
        choices = data.get("choices") or []
        content = (choices[0].get("message") or {}).get("content") if choices else None
        if not content:
            raise GeneratorError("Generator returned an empty completion", response.status_code)

        return LLMResponse(content=content, model=data.get("model", model), usage=data.get("usage"))
