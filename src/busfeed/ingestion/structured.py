"""Structured (spreadsheet JSON) feed ingestion."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from busfeed._constants import FEED_TEXT_KEY
from busfeed.config import FieldKeys
from busfeed.exceptions import FeedFormatError
from busfeed.ingestion.candidates import make_candidate
from busfeed.models.feed import StructuredFeed, UpdateCandidate


def _cell_text(value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get(FEED_TEXT_KEY)
    if value is None:
        return None
    return str(value)


def parse_structured_feed(payload: Any) -> StructuredFeed:
    """Flatten a spreadsheet JSON feed into ``field-key -> text`` entries.

    Accepts the Google Sheets list-feed shape::

        {"feed": {"updated": {"$t": "..."}, "entry": [{"gsx$name": {"$t": "..."}}]}}

    Entry values may also be plain strings. Keys whose value carries no
    text are dropped.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("feed"), dict):
        raise FeedFormatError("structured feed must be an object with a 'feed' object")
    feed = payload["feed"]

    raw_entries = feed.get("entry", [])
    if not isinstance(raw_entries, list):
        raise FeedFormatError("structured feed 'entry' must be a list")

    entries: list[dict[str, str]] = []
    for raw_entry in raw_entries:
        if not isinstance(raw_entry, dict):
            continue
        entry: dict[str, str] = {}
        for key, value in raw_entry.items():
            text = _cell_text(value)
            if text is not None:
                entry[str(key)] = text
        entries.append(entry)

    return StructuredFeed(updated=_cell_text(feed.get("updated")), entries=entries)


def structured_candidates(feed: StructuredFeed, keys: Sequence[FieldKeys]) -> Iterator[UpdateCandidate]:
    """Yield one candidate per entry per key group, in entry order."""
    for entry in feed.entries:
        for group in keys:
            candidate = make_candidate(
                entry.get(group.name),
                entry.get(group.location),
                entry.get(group.departure) if group.departure else None,
            )
            if candidate is not None:
                yield candidate
