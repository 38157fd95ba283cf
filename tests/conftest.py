from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from busfeed.exceptions import BusFeedTransportError
from busfeed.models.bus import ExternalBusSummary
from busfeed.models.feed import StructuredFeed, TabularFeed
from busfeed.state.cache import BusCache

API_URL = "https://api.test"
NOW = datetime(2026, 3, 14, 15, 30, tzinfo=UTC)
NEXT_MIDNIGHT = datetime(2026, 3, 15, tzinfo=UTC)


def fixed_clock() -> datetime:
    return NOW


@dataclass
class FakeBusApi:
    """Records every call made against the remote bus API."""

    directory: list[ExternalBusSummary] = field(default_factory=list)
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)
    list_calls: int = 0

    def _record(self, *call: Any) -> None:
        if call[0] in self.fail_on:
            raise BusFeedTransportError(f"{call[0]} failed", status_code=500)
        self.calls.append(call)

    def url_for(self, path: str) -> str:
        return f"{API_URL}{path}"

    async def list_buses(self) -> list[ExternalBusSummary]:
        self.list_calls += 1
        if "list_buses" in self.fail_on:
            raise BusFeedTransportError("list_buses failed", status_code=503)
        return list(self.directory)

    async def create_bus(self, name: str) -> str:
        self._record("create_bus", name)
        return f"id-{name}"

    async def set_availability(self, bus_id: str, available: bool) -> None:
        self._record("set_availability", bus_id, available)

    async def set_departure(self, bus_id: str, departure: int) -> None:
        self._record("set_departure", bus_id, departure)

    async def set_location(
        self,
        bus_id: str,
        locations: Sequence[str],
        invalidate_time: datetime | None,
        source: str,
        *,
        associate_time: bool = False,
    ) -> None:
        self._record("set_location", bus_id, list(locations), invalidate_time, source, associate_time)

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == method]


@dataclass
class FakeFeedSource:
    structured: StructuredFeed | None = None
    tabular: TabularFeed | None = None
    fail: bool = False

    async def fetch_structured_feed(self) -> StructuredFeed:
        if self.fail:
            raise BusFeedTransportError("feed unavailable", status_code=502)
        assert self.structured is not None
        return self.structured

    async def fetch_tabular_feed(self) -> TabularFeed:
        if self.fail:
            raise BusFeedTransportError("feed unavailable", status_code=502)
        assert self.tabular is not None
        return self.tabular


@dataclass
class MemoryCacheStore:
    data: bytes | None = None
    writes: int = 0
    fail_writes: bool = False

    def read(self) -> bytes:
        if self.data is None:
            raise FileNotFoundError("no cache file")
        return self.data

    def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.data = data
        self.writes += 1


@pytest.fixture
def api() -> FakeBusApi:
    return FakeBusApi()


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def cache(store: MemoryCacheStore) -> BusCache:
    return BusCache(store, clock=fixed_clock)
