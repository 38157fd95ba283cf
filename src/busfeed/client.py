"""High-level async client for the feed source and the remote bus API."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

import aiohttp

from busfeed._api import buses as _buses_api
from busfeed._api import feed as _feed_api
from busfeed._api._common import api_url
from busfeed._transport import HttpTransport, Transport
from busfeed.config import BusFeedConfig
from busfeed.exceptions import BusFeedError
from busfeed.models.bus import ExternalBusSummary
from busfeed.models.feed import StructuredFeed, TabularFeed

_logger = logging.getLogger(__name__)


class RemoteBusApi(Protocol):
    """Operations the reconciler needs from the remote bus service."""

    def url_for(self, path: str) -> str: ...

    async def list_buses(self) -> list[ExternalBusSummary]: ...

    async def create_bus(self, name: str) -> str: ...

    async def set_availability(self, bus_id: str, available: bool) -> None: ...

    async def set_departure(self, bus_id: str, departure: int) -> None: ...

    async def set_location(
        self,
        bus_id: str,
        locations: Sequence[str],
        invalidate_time: datetime | None,
        source: str,
        *,
        associate_time: bool = False,
    ) -> None: ...


class FeedSource(Protocol):
    """Operations the service needs to pull the spreadsheet feed."""

    async def fetch_structured_feed(self) -> StructuredFeed: ...

    async def fetch_tabular_feed(self) -> TabularFeed: ...


class BusApiClient:
    """Async client for the spreadsheet feed and the remote bus API.

    Usage::

        async with BusApiClient(config) as client:
            buses = await client.list_buses()
    """

    def __init__(
        self,
        config: BusFeedConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BusApiClient:
        if self._transport is None:
            if self._http_session is None:
                timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
                self._http_session = aiohttp.ClientSession(timeout=timeout)
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise BusFeedError("Client not initialized. Use 'async with BusApiClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Feed source
    # ------------------------------------------------------------------

    async def fetch_structured_feed(self) -> StructuredFeed:
        if not self._config.feed_url:
            raise BusFeedError("feed_url is not configured")
        return await _feed_api.fetch_structured_feed(self._require_transport(), self._config.feed_url)

    async def fetch_tabular_feed(self) -> TabularFeed:
        if not self._config.table_url:
            raise BusFeedError("table_url is not configured")
        return await _feed_api.fetch_tabular_feed(self._require_transport(), self._config.table_url)

    # ------------------------------------------------------------------
    # Remote bus API
    # ------------------------------------------------------------------

    def url_for(self, path: str) -> str:
        return api_url(self._config, path)

    async def list_buses(self) -> list[ExternalBusSummary]:
        return await _buses_api.list_buses(self._config, self._require_transport())

    async def create_bus(self, name: str) -> str:
        return await _buses_api.create_bus(self._config, self._require_transport(), name)

    async def set_availability(self, bus_id: str, available: bool) -> None:
        await _buses_api.set_availability(self._config, self._require_transport(), bus_id, available)

    async def set_departure(self, bus_id: str, departure: int) -> None:
        await _buses_api.set_departure(self._config, self._require_transport(), bus_id, departure)

    async def set_location(
        self,
        bus_id: str,
        locations: Sequence[str],
        invalidate_time: datetime | None,
        source: str,
        *,
        associate_time: bool = False,
    ) -> None:
        await _buses_api.set_location(
            self._config,
            self._require_transport(),
            bus_id,
            locations,
            invalidate_time,
            source,
            associate_time=associate_time,
        )
