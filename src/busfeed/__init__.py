"""busfeed - reconcile a spreadsheet bus feed against a remote bus service."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("busfeed")
except PackageNotFoundError:
    __version__ = "0+local"
from busfeed.client import BusApiClient, FeedSource, RemoteBusApi
from busfeed.config import BusFeedConfig, ColumnGroup, FieldKeys, TableLayout
from busfeed.exceptions import (
    BootstrapError,
    BusFeedApiError,
    BusFeedConfigError,
    BusFeedError,
    BusFeedTransportError,
    CacheLoadError,
    FeedFormatError,
)
from busfeed.ingestion.feed import normalize_feeds
from busfeed.ingestion.timeparse import parse_time
from busfeed.models import (
    BusRecord,
    ExternalBusSummary,
    StructuredFeed,
    TabularFeed,
    UpdateCandidate,
)
from busfeed.reconcile import AbsenceSweeper, PassResult, Reconciler, RemoteDirectory
from busfeed.service import BusSyncService
from busfeed.state.cache import BusCache
from busfeed.state.store import FileCacheStore

__all__ = [
    "__version__",
    "AbsenceSweeper",
    "BootstrapError",
    "BusApiClient",
    "BusCache",
    "BusFeedApiError",
    "BusFeedConfig",
    "BusFeedConfigError",
    "BusFeedError",
    "BusFeedTransportError",
    "BusRecord",
    "BusSyncService",
    "CacheLoadError",
    "ColumnGroup",
    "ExternalBusSummary",
    "FeedFormatError",
    "FeedSource",
    "FieldKeys",
    "FileCacheStore",
    "PassResult",
    "Reconciler",
    "RemoteBusApi",
    "RemoteDirectory",
    "StructuredFeed",
    "TableLayout",
    "TabularFeed",
    "UpdateCandidate",
    "normalize_feeds",
    "parse_time",
]
