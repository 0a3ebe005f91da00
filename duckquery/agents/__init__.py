"""
Agents Module

Model-facing logic: reply classification, history formatting and the
prompt orchestrator.
"""

from duckquery.agents.classifier import (
    CHAT_PREFIX,
    CLARIFY_PREFIX,
    ClassifiedResponse,
    ResponseKind,
    classify,
    strip_code_fences,
)
from duckquery.agents.history import format_history, format_turn
from duckquery.agents.orchestrator import (
    PromptOrchestrator,
    build_user_message,
    parse_suggestions,
)

__all__ = [
    # Classifier
    "CHAT_PREFIX",
    "CLARIFY_PREFIX",
    "ClassifiedResponse",
    "ResponseKind",
    "classify",
    "strip_code_fences",
    # History
    "format_history",
    "format_turn",
    # Orchestrator
    "PromptOrchestrator",
    "build_user_message",
    "parse_suggestions",
]
