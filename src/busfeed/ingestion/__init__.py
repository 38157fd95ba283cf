"""Ingestion layer.

Adapters that turn raw feed payloads (spreadsheet JSON, HTML tables) into
normalized :class:`busfeed.models.UpdateCandidate` sequences.
"""

__all__: list[str] = []
