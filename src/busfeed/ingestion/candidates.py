"""Construction of :class:`UpdateCandidate` from raw feed cells."""

from __future__ import annotations

from typing import Any

from busfeed.ingestion.normalize import normalize_location, normalize_name
from busfeed.ingestion.timeparse import parse_time
from busfeed.models.feed import UpdateCandidate


def make_candidate(name: Any, location: Any, departure: Any) -> UpdateCandidate | None:
    """Build a candidate from raw cell text, or ``None`` when the name is blank."""
    normalized_name = normalize_name(name)
    if normalized_name is None:
        return None
    return UpdateCandidate(
        name=normalized_name,
        location=normalize_location(location),
        departure=parse_time(departure),
    )
