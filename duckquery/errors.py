"""
Error taxonomy and user-facing error mapping.

Every failure that reaches a caller is described by an AppError: a stable
code, a friendly message, the raw technical text when there is one, and
whether retrying can help. Inside the library the same information travels
as a DuckQueryError exception.
"""

import re
from typing import Literal

import httpx
from pydantic import BaseModel, Field

ErrorCode = Literal[
    "AUTH",
    "RATE_LIMIT",
    "BAD_REQUEST",
    "API_ERROR",
    "SQL_ERROR",
    "NETWORK",
    "UNKNOWN",
]


class AppError(BaseModel):
    """Structured error surfaced to callers instead of raw exceptions."""

    code: ErrorCode = Field(..., description="Error category")
    message: str = Field(..., description="User-friendly message")
    technical: str | None = Field(None, description="Raw technical detail, if any")
    recoverable: bool = Field(..., description="Whether retrying may succeed")


class DuckQueryError(Exception):
    """
    Base exception carrying an AppError.

    Attributes:
        error: Structured error description
    """

    def __init__(self, error: AppError):
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable


class CompletionError(DuckQueryError):
    """Completion API call failed (auth, rate limit, HTTP or network error)."""


class UnfixableSQLError(DuckQueryError):
    """The repair prompt answered with an explanation instead of SQL."""

    def __init__(self, explanation: str):
        super().__init__(
            AppError(
                code="SQL_ERROR",
                message=explanation or "The query could not be fixed automatically.",
                technical=explanation or None,
                recoverable=True,
            )
        )


# HTTP status code to error mapping
HTTP_ERROR_MAP: dict[int, tuple[ErrorCode, str, bool]] = {
    400: ("BAD_REQUEST", "Request format error. Check your input.", False),
    401: ("AUTH", "Invalid API key. Please check your settings.", True),
    403: ("AUTH", "Access denied. Check your API key permissions.", True),
    429: ("RATE_LIMIT", "Too many requests. Please wait and try again.", True),
    500: ("API_ERROR", "Server error. The service may be temporarily unavailable.", True),
    502: ("API_ERROR", "Service temporarily unavailable. Please try again.", True),
    503: ("API_ERROR", "Service unavailable. Please try again later.", True),
}

# Common SQL error patterns and friendly messages
SQL_ERROR_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"table.*does not exist", re.IGNORECASE), "Table not found. Check the table name."),
    (re.compile(r"column.*not found", re.IGNORECASE), "Column not found. Check column names."),
    (re.compile(r"syntax error", re.IGNORECASE), "SQL syntax error. Check the query format."),
    (re.compile(r"ambiguous.*column", re.IGNORECASE), "Ambiguous column name. Specify the table."),
    (re.compile(r"type mismatch", re.IGNORECASE), "Data type mismatch. Check value types."),
    (re.compile(r"division by zero", re.IGNORECASE), "Division by zero error in calculation."),
    (re.compile(r"conversion failed", re.IGNORECASE), "Data conversion failed. Check data types."),
]


def missing_api_key_error() -> AppError:
    return AppError(
        code="AUTH",
        message="API key not configured. Add your API key in settings.",
        recoverable=True,
    )


def parse_api_error(status: int, technical: str | None = None) -> AppError:
    """Map a non-success HTTP status to an AppError."""
    mapped = HTTP_ERROR_MAP.get(status)
    if mapped:
        code, message, recoverable = mapped
        return AppError(code=code, message=message, technical=technical, recoverable=recoverable)

    if 500 <= status < 600:
        return AppError(
            code="API_ERROR",
            message="Server error. The service may be temporarily unavailable.",
            technical=technical,
            recoverable=True,
        )

    return AppError(
        code="API_ERROR",
        message="An unexpected error occurred. Please try again.",
        technical=technical,
        recoverable=True,
    )


def parse_sql_error(error: BaseException | str) -> AppError:
    """Translate an engine error into a friendly message, keeping the raw text."""
    error_message = error if isinstance(error, str) else str(error)

    for pattern, message in SQL_ERROR_PATTERNS:
        if pattern.search(error_message):
            return AppError(
                code="SQL_ERROR",
                message=message,
                technical=error_message,
                recoverable=True,
            )

    return AppError(
        code="SQL_ERROR",
        message="Query execution failed. Try modifying your query.",
        technical=error_message,
        recoverable=True,
    )


def parse_network_error(error: BaseException) -> AppError:
    """Map transport failures (connect, DNS, timeout) to NETWORK errors."""
    technical = str(error) or error.__class__.__name__

    if isinstance(error, httpx.TimeoutException):
        return AppError(
            code="NETWORK",
            message="Request timed out. Please try again.",
            technical=technical,
            recoverable=True,
        )

    if isinstance(error, httpx.TransportError):
        return AppError(
            code="NETWORK",
            message="Connection lost. Check your internet connection.",
            technical=technical,
            recoverable=True,
        )

    lowered = technical.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return AppError(
            code="NETWORK",
            message="Request timed out. Please try again.",
            technical=technical,
            recoverable=True,
        )
    if "network" in lowered or "connect" in lowered:
        return AppError(
            code="NETWORK",
            message="Connection lost. Check your internet connection.",
            technical=technical,
            recoverable=True,
        )

    return AppError(
        code="UNKNOWN",
        message="An unexpected error occurred.",
        technical=technical,
        recoverable=True,
    )


def parse_error(error: object) -> AppError:
    """General error parser: pick the right mapping for any failure."""
    if isinstance(error, DuckQueryError):
        return error.error

    if isinstance(error, httpx.HTTPStatusError):
        return parse_api_error(error.response.status_code, error.response.text or None)

    if isinstance(error, (httpx.TransportError, TimeoutError, ConnectionError)):
        return parse_network_error(error)

    from duckquery.engine.base import QueryError

    if isinstance(error, (QueryError, str)):
        return parse_sql_error(error)

    return AppError(
        code="UNKNOWN",
        message="An unexpected error occurred.",
        technical=str(error),
        recoverable=True,
    )


def format_error_for_display(error: AppError, show_technical: bool = False) -> str:
    """Render an error for display with optional technical details."""
    if show_technical and error.technical:
        return f"{error.message}\n\nDetails: {error.technical}"
    return error.message
