from sellify.services.llm.base import LLMProvider, LLMResponse
from sellify.services.llm.openai_provider import GeneratorError, OpenAIProvider

__all__ = ["GeneratorError", "LLMProvider", "LLMResponse", "OpenAIProvider"]
