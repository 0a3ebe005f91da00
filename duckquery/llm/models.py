"""
Completion Request and Response Models

The request describes exactly the chat-completions body DuckQuery sends:
`{model, messages, temperature}`. The response keeps the reply text and the
bookkeeping worth logging.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

ChatRole = Literal["system", "user", "assistant"]
FinishReason = Literal["stop", "length", "content_filter", "error"]


class LLMMessage(BaseModel):
    """One chat turn sent to the completion API."""

    role: ChatRole
    content: str = Field(..., min_length=1, description="Turn text (never blank)")


class LLMRequest(BaseModel):
    """
    One completion call.

    `temperature` and `model` fall back to the provider defaults when left
    unset.
    """

    messages: list[LLMMessage] = Field(..., min_length=1)
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    model: str | None = None

    def to_payload(self, default_model: str) -> dict[str, Any]:
        return {
            "model": self.model or default_model,
            "messages": [message.model_dump() for message in self.messages],
            "temperature": self.temperature,
        }


class LLMUsage(BaseModel):
    """Token counts reported by the endpoint (zero when it reports none)."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class LLMResponse(BaseModel):
    """Reply text from `choices[0].message.content`, trimmed."""

    content: str
    model: str = Field(..., description="Model that answered")
    provider: str = Field(..., description="Provider that handled the call")
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: FinishReason = "stop"
    response_id: str | None = Field(None, description="Endpoint-assigned completion id")
