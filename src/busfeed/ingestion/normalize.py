"""Normalization helpers.

Centralizes defensive parsing of feed cells and remote payload fields.
Nothing here raises on bad input; unusable values become ``None``.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def normalize_name(value: Any) -> str | None:
    """Trim a bus name; blank names become ``None``."""
    text = safe_str(value)
    if text is None:
        return None
    name = text.strip()
    return name or None


def normalize_location(value: Any) -> str | None:
    """Trim and upper-case a location code; blank locations become ``None``."""
    text = safe_str(value)
    if text is None:
        return None
    location = text.strip().upper()
    return location or None


def collapse_whitespace(value: str) -> str:
    return " ".join(value.split())
