"""Merge feed payloads into one ordered, de-duplicated candidate list."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from busfeed.config import FieldKeys, TableLayout
from busfeed.ingestion.structured import structured_candidates
from busfeed.ingestion.tabular import tabular_candidates
from busfeed.models.feed import FeedPayload, StructuredFeed, TabularFeed, UpdateCandidate

_logger = logging.getLogger(__name__)


def _candidates(payload: FeedPayload, keys: Sequence[FieldKeys], layout: TableLayout) -> Iterator[UpdateCandidate]:
    if isinstance(payload, StructuredFeed):
        return structured_candidates(payload, keys)
    if isinstance(payload, TabularFeed):
        return tabular_candidates(payload, layout)
    raise TypeError(f"unsupported feed payload: {type(payload).__name__}")


def normalize_feeds(
    payloads: Iterable[FeedPayload],
    *,
    keys: Sequence[FieldKeys] = (),
    layout: TableLayout | None = None,
) -> list[UpdateCandidate]:
    """Produce the ordered update list for one reconciliation pass.

    Structured payloads are always consumed before tabular ones, whatever
    order they are given in. The first candidate seen for a name wins and
    later candidates with the same name are dropped, so the table only
    contributes buses the structured feed did not mention.
    """
    layout = layout or TableLayout()
    ordered = sorted(payloads, key=lambda payload: 0 if isinstance(payload, StructuredFeed) else 1)

    seen: set[str] = set()
    result: list[UpdateCandidate] = []
    for payload in ordered:
        for candidate in _candidates(payload, keys, layout):
            if candidate.name in seen:
                _logger.debug("Ignoring duplicate %s from %s feed", candidate.name, payload.kind)
                continue
            seen.add(candidate.name)
            result.append(candidate)
    return result
