"""Credential masking for DEBUG request logs.

The only secret busfeed handles is the bearer token sent on mutations.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

REDACTED = "<redacted>"

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy *headers* with the ``authorization`` value masked."""
    return {name: REDACTED if name.lower() == "authorization" else value for name, value in headers.items()}


def redact_text(text: str | None, *, limit: int = 512) -> str | None:
    """Mask ``Bearer <token>`` in *text* and cut it to *limit* characters."""
    if text is None:
        return None
    masked = _BEARER_RE.sub(lambda match: match.group(1) + REDACTED, text)
    if len(masked) > limit:
        return f"{masked[:limit]}...({len(masked) - limit} more chars)"
    return masked
