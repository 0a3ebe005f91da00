"""
Response Classifier

Turns a raw model reply into a tagged ClassifiedResponse. The marker-prefix
protocol (`CLARIFY:` / `CHAT:` / bare SQL) is understood only here; callers
work with `kind` and `payload`.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

CLARIFY_PREFIX = "CLARIFY:"
CHAT_PREFIX = "CHAT:"

# Opening fence (optionally tagged sql) or closing fence, with the adjacent newline.
_FENCE_PATTERN = re.compile(r"```(?:sql)?[ \t]*\n?|\n?```", re.IGNORECASE)


class ResponseKind(str, Enum):
    """What a model reply is."""

    SQL = "sql"
    CLARIFY = "clarify"
    CHAT = "chat"


class ClassifiedResponse(BaseModel):
    """A model reply after classification."""

    kind: ResponseKind = Field(..., description="Reply category")
    payload: str = Field(..., description="SQL text or display text, markers removed")

    model_config = ConfigDict(frozen=True)

    @property
    def is_sql(self) -> bool:
        return self.kind is ResponseKind.SQL


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences, leaving the enclosed text."""
    return _FENCE_PATTERN.sub("", text).strip()


def classify(raw_text: str | None) -> ClassifiedResponse:
    """
    Classify a raw model reply.

    `CLARIFY:` and `CHAT:` prefixes (after trimming) select those kinds and
    are stripped from the payload. Anything else is SQL with code fences
    removed. An empty reply is CHAT with an empty payload. No SQL validation
    happens here; executing the query is the validator.
    """
    text = (raw_text or "").strip()

    if not text:
        return ClassifiedResponse(kind=ResponseKind.CHAT, payload="")

    if text.startswith(CLARIFY_PREFIX):
        return ClassifiedResponse(
            kind=ResponseKind.CLARIFY,
            payload=text[len(CLARIFY_PREFIX):].strip(),
        )

    if text.startswith(CHAT_PREFIX):
        return ClassifiedResponse(
            kind=ResponseKind.CHAT,
            payload=text[len(CHAT_PREFIX):].strip(),
        )

    return ClassifiedResponse(kind=ResponseKind.SQL, payload=strip_code_fences(text))
