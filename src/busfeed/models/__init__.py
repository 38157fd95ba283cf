"""Data models for feed payloads, cached buses, and remote API replies."""

from busfeed.models._base import BusFeedModel, Timestamp, parse_timestamp
from busfeed.models.bus import BusRecord, CacheDocument, ExternalBusSummary
from busfeed.models.feed import FeedPayload, StructuredFeed, TabularFeed, UpdateCandidate
from busfeed.models.responses import MutationResponse

__all__ = [
    "BusFeedModel",
    "BusRecord",
    "CacheDocument",
    "ExternalBusSummary",
    "FeedPayload",
    "MutationResponse",
    "StructuredFeed",
    "TabularFeed",
    "Timestamp",
    "UpdateCandidate",
    "parse_timestamp",
]
