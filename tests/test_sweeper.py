from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

import pytest
from conftest import FakeBusApi

from busfeed.exceptions import BusFeedTransportError
from busfeed.models.bus import BusRecord
from busfeed.reconcile.result import MutationKind, PassResult
from busfeed.reconcile.sweeper import AbsenceSweeper
from busfeed.state.cache import BusCache


def _seed(cache: BusCache, **availability: bool) -> None:
    for name, available in availability.items():
        cache.upsert(name, BusRecord(remote_id=f"id-{name}", locations=["A1"], available=available))
    cache.save()


@pytest.mark.asyncio
async def test_absent_available_bus_is_marked_unavailable(cache: BusCache, api: FakeBusApi) -> None:
    _seed(cache, Maple=True, Oak=True)
    result = PassResult(seen=["Oak"])

    swept = await AbsenceSweeper(cache, api).sweep(result.seen, result)

    assert swept == ["Maple"]
    assert api.calls == [("set_availability", "id-Maple", False)]
    maple = cache.get("Maple")
    assert maple is not None and maple.available is False
    assert result.swept == ["Maple"]
    assert [(m.kind, m.method) for m in result.mutations] == [(MutationKind.AVAILABILITY, "PATCH")]
    assert result.any_mutation_applied
    assert cache.dirty


@pytest.mark.asyncio
async def test_second_sweep_is_idempotent(cache: BusCache, api: FakeBusApi) -> None:
    _seed(cache, Maple=True)
    sweeper = AbsenceSweeper(cache, api)

    await sweeper.sweep([])
    cache.save()
    second = PassResult()
    swept = await sweeper.sweep([], second)

    assert swept == []
    assert len(api.calls) == 1
    assert not second.any_mutation_applied
    assert not cache.dirty


@pytest.mark.asyncio
async def test_already_unavailable_bus_is_left_alone(cache: BusCache, api: FakeBusApi) -> None:
    _seed(cache, Maple=False)

    assert await AbsenceSweeper(cache, api).sweep([]) == []
    assert api.calls == []


@pytest.mark.asyncio
async def test_dry_run_updates_locally_only(cache: BusCache, api: FakeBusApi) -> None:
    _seed(cache, Maple=True)
    result = PassResult()

    await AbsenceSweeper(cache, api, dry_run=True).sweep([], result)

    assert api.calls == []
    maple = cache.get("Maple")
    assert maple is not None and maple.available is False
    assert result.mutations[0].dry_run is True
    assert result.mutations[0].url == "https://api.test/buses/id-Maple"


@dataclass
class _SlowApi(FakeBusApi):
    in_flight: int = 0
    peak: int = 0

    async def set_availability(self, bus_id: str, available: bool) -> None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        await super().set_availability(bus_id, available)


@pytest.mark.asyncio
async def test_concurrency_is_bounded(cache: BusCache) -> None:
    _seed(cache, **{f"Bus {i}": True for i in range(10)})
    api = _SlowApi()

    swept = await AbsenceSweeper(cache, api, max_concurrency=3).sweep([])

    assert len(swept) == 10
    assert 1 < api.peak <= 3


@dataclass
class _FlakyApi(FakeBusApi):
    failing: Sequence[str] = ()

    async def set_availability(self, bus_id: str, available: bool) -> None:
        if bus_id in self.failing:
            raise BusFeedTransportError(f"PATCH {bus_id} failed", status_code=500)
        await super().set_availability(bus_id, available)


@pytest.mark.asyncio
async def test_failure_is_raised_after_all_sweeps_finish(cache: BusCache) -> None:
    _seed(cache, Maple=True, Oak=True, Elm=True)
    api = _FlakyApi(failing=("id-Oak",))
    result = PassResult()

    with pytest.raises(BusFeedTransportError):
        await AbsenceSweeper(cache, api).sweep([], result)

    assert sorted(result.swept) == ["Elm", "Maple"]
    oak = cache.get("Oak")
    assert oak is not None and oak.available is True
    elm = cache.get("Elm")
    assert elm is not None and elm.available is False


def test_rejects_non_positive_concurrency(cache: BusCache, api: FakeBusApi) -> None:
    with pytest.raises(ValueError):
        AbsenceSweeper(cache, api, max_concurrency=0)


@pytest.mark.asyncio
async def test_sweep_failure_is_logged_with_traceback(cache: BusCache, caplog: pytest.LogCaptureFixture) -> None:
    _seed(cache, Oak=True)
    api = _FlakyApi(failing=("id-Oak",))

    with caplog.at_level(logging.ERROR, logger="busfeed.reconcile.sweeper"):
        with pytest.raises(BusFeedTransportError):
            await AbsenceSweeper(cache, api).sweep([])

    (record,) = caplog.records
    assert "Oak" in record.getMessage()
    assert record.exc_info is not None
    assert isinstance(record.exc_info[1], BusFeedTransportError)
