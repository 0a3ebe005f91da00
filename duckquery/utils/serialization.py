"""
Serialization helpers for engine values.

Engine rows may contain integers wider than a JSON consumer can represent
exactly, decimals, temporal values and other non-JSON types. Everything that
leaves the engine for a prompt or a display goes through `to_json_safe`, and
every JSON string built for a prompt goes through `safe_json`.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

MAX_SAFE_INTEGER = 2**53 - 1


def to_json_safe(value: Any) -> Any:
    """
    Recursively convert a value into JSON-safe scalars.

    Integers outside the safe range become decimal strings so they survive any
    JSON round trip losslessly. Non-finite floats become strings as well.
    """
    if value is None or isinstance(value, (bool, str)):
        return value

    if isinstance(value, int):
        return value if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER else str(value)

    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)

    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        if value == value.to_integral_value():
            return to_json_safe(int(value))
        return float(value)

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    if isinstance(value, (timedelta, UUID)):
        return str(value)

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()

    if isinstance(value, Mapping):
        return {str(key): to_json_safe(item) for key, item in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_safe(item) for item in value]

    return str(value)


def convert_rows(rows: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Convert result rows for safe serialization and display."""
    return [to_json_safe(row) for row in rows]


def safe_json(value: Any) -> str:
    """
    Compact JSON for prompts.

    Values are converted with `to_json_safe` first, so oversized integers
    never appear as numeric literals.
    """
    return json.dumps(to_json_safe(value), separators=(",", ":"), ensure_ascii=False)
