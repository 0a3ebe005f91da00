"""
HTTP Completion Provider

Implementation of BaseLLMProvider for any OpenAI-compatible chat-completions
endpoint. Posts `{model, messages, temperature}` with a bearer credential and
reads the reply from `choices[0].message.content`.
"""

import logging

import httpx

from duckquery.errors import (
    AppError,
    CompletionError,
    missing_api_key_error,
    parse_api_error,
    parse_network_error,
)
from duckquery.llm.base import BaseLLMProvider
from duckquery.llm.models import LLMRequest, LLMResponse, LLMUsage

logger = logging.getLogger(__name__)


class HTTPCompletionProvider(BaseLLMProvider):
    """
    Chat-completions provider over plain HTTP.

    Works with OpenAI and any server exposing the same request/response shape
    (Ollama, vLLM, llama.cpp, proxies). Failures are raised as CompletionError
    carrying a typed AppError, never as raw HTTP exceptions.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        temperature: float = 0.0,
        timeout: int = 30,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize HTTP provider.

        Args:
            api_url: Full chat-completions URL
            api_key: Bearer credential
            model: Default model name
            temperature: Default temperature
            timeout: Request timeout
            client: Shared httpx client (created and owned here when omitted)
        """
        super().__init__(
            provider_name="http",
            temperature=temperature,
            timeout=timeout,
        )

        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=float(timeout))

        logger.info(
            f"HTTP provider initialized: {api_url} with model: {model}",
            extra={"api_url": api_url, "model": model},
        )

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion using the configured endpoint.

        Raises:
            CompletionError: AUTH when no key is configured or the key is
                rejected, RATE_LIMIT, BAD_REQUEST, API_ERROR for other HTTP
                failures or malformed replies, NETWORK for transport failures
        """
        if not self.api_key.strip():
            raise CompletionError(missing_api_key_error())

        request = self._apply_defaults(request)
        self._log_request(request)

        payload = request.to_payload(self.model)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            response = await self.client.post(self.api_url, json=payload, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Completion request failed: {e}")
            raise CompletionError(parse_network_error(e)) from e

        if not response.is_success:
            error = parse_api_error(response.status_code, response.text[:500] or None)
            logger.error(
                f"Completion API returned {response.status_code}",
                extra={"status": response.status_code, "code": error.code},
            )
            raise CompletionError(error)

        try:
            data = response.json()
            choice = data["choices"][0]
            content = choice["message"]["content"]
            if content is None:
                content = ""
            if not isinstance(content, str):
                raise TypeError(f"content is {type(content).__name__}, expected text")
            usage = data.get("usage") or {}
            llm_response = LLMResponse(
                content=content.strip(),
                model=data.get("model") or payload["model"],
                usage=LLMUsage(
                    prompt_tokens=usage.get("prompt_tokens") or 0,
                    completion_tokens=usage.get("completion_tokens") or 0,
                    total_tokens=usage.get("total_tokens") or 0,
                ),
                finish_reason=self._map_finish_reason(choice.get("finish_reason")),
                provider=self.provider_name,
                response_id=data.get("id"),
            )
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(f"Malformed completion response: {e}")
            raise CompletionError(
                AppError(
                    code="API_ERROR",
                    message="Unexpected response from the completion service.",
                    technical=str(e),
                    recoverable=True,
                )
            ) from e

        self._log_response(llm_response)
        return llm_response

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _map_finish_reason(self, reason: str | None) -> str:
        """Map endpoint finish reason to our standard format."""
        if reason in ("stop", "length", "content_filter"):
            return reason
        return "stop"
