"""
LLM Provider Module

Completion provider abstraction and the OpenAI-compatible HTTP provider.

Usage:
    from duckquery.llm import HTTPCompletionProvider, LLMRequest, LLMMessage

    provider = HTTPCompletionProvider(
        api_url="https://api.openai.com/v1/chat/completions",
        api_key="sk-...",
        model="gpt-4o-mini",
    )
    response = await provider.generate(
        LLMRequest(messages=[LLMMessage(role="user", content="Hello!")])
    )
    print(response.content)
"""

from duckquery.llm.base import BaseLLMProvider
from duckquery.llm.http import HTTPCompletionProvider
from duckquery.llm.models import (
    LLMMessage,
    LLMRequest,
    LLMResponse,
    LLMUsage,
)

__all__ = [
    # Base classes
    "BaseLLMProvider",
    # Models
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "LLMUsage",
    # Providers
    "HTTPCompletionProvider",
]
