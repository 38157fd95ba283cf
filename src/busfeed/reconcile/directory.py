"""Run-scoped snapshot of the remote bus directory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from busfeed.models.bus import ExternalBusSummary

if TYPE_CHECKING:
    from busfeed.client import RemoteBusApi

_logger = logging.getLogger(__name__)


class DirectoryResolver(Protocol):
    async def lookup(self, name: str) -> ExternalBusSummary | None: ...


class RemoteDirectory:
    """Lazily fetch ``GET /buses`` once and answer name lookups from it.

    Create one per reconciliation pass; the snapshot is never refreshed.
    """

    def __init__(self, api: RemoteBusApi) -> None:
        self._api = api
        self._snapshot: list[ExternalBusSummary] | None = None
        self.fetch_count = 0

    async def snapshot(self) -> list[ExternalBusSummary]:
        if self._snapshot is None:
            _logger.info("Fetching remote bus directory")
            self._snapshot = await self._api.list_buses()
            self.fetch_count += 1
        return self._snapshot

    async def lookup(self, name: str) -> ExternalBusSummary | None:
        """Find a bus by exact name, then by alias. First match wins."""
        buses = await self.snapshot()
        for bus in buses:
            if bus.name == name:
                return bus
        for bus in buses:
            if name in bus.other_names:
                return bus
        return None
