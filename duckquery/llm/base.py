"""
Base LLM Provider

The single completion primitive the prompt orchestrator depends on. Tests
substitute a mock; production uses HTTPCompletionProvider.
"""

import logging
from abc import ABC, abstractmethod

from duckquery.llm.models import LLMRequest, LLMResponse

logger = logging.getLogger(__name__)


class BaseLLMProvider(ABC):
    """
    Abstract completion provider.

    Attributes:
        provider_name: Name used in logs and on responses
        temperature: Used when a request leaves temperature unset
        timeout: Request timeout in seconds
    """

    def __init__(self, provider_name: str, temperature: float = 0.0, timeout: int = 30):
        self.provider_name = provider_name
        self.temperature = temperature
        self.timeout = timeout
        logger.debug(
            f"Created {provider_name} completion provider",
            extra={"provider": provider_name, "timeout": timeout},
        )

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Send one completion request and return the trimmed reply.

        Raises:
            CompletionError: Typed failure (auth, rate limit, HTTP, network,
                malformed reply)
        """
        pass  # pragma: no cover - abstract method

    async def aclose(self) -> None:
        """Release provider resources."""
        return None

    def _apply_defaults(self, request: LLMRequest) -> LLMRequest:
        if request.temperature is None:
            return request.model_copy(update={"temperature": self.temperature})
        return request

    def _log_request(self, request: LLMRequest) -> None:
        logger.debug(
            f"Completion request ({len(request.messages)} messages)",
            extra={
                "provider": self.provider_name,
                "model": request.model,
                "temperature": request.temperature,
            },
        )

    def _log_response(self, response: LLMResponse) -> None:
        logger.debug(
            f"Completion response from {response.model}",
            extra={
                "provider": self.provider_name,
                "response_id": response.response_id,
                "total_tokens": response.usage.total_tokens,
                "finish_reason": response.finish_reason,
            },
        )
