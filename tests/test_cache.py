from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest
from conftest import NOW, FakeBusApi, MemoryCacheStore, fixed_clock

from busfeed.exceptions import BootstrapError, CacheLoadError
from busfeed.models.bus import BusRecord, ExternalBusSummary
from busfeed.state.cache import BusCache
from busfeed.state.store import FileCacheStore


def test_round_trip_rehydrates_invalidate_time(store: MemoryCacheStore) -> None:
    invalidate = datetime(2026, 3, 15, tzinfo=UTC)
    cache = BusCache(store, clock=fixed_clock)
    cache.upsert(
        "Maple",
        BusRecord(remote_id="abc", locations=["A4"], departure=905, available=True, invalidate_time=invalidate),
    )
    assert cache.save() is True

    reloaded = BusCache(store, clock=fixed_clock)
    reloaded.load()

    record = reloaded.get("Maple")
    assert record is not None
    assert isinstance(record.invalidate_time, datetime)
    assert record.invalidate_time == invalidate
    assert record.locations == ["A4"]
    assert record.departure == 905
    assert reloaded.last_updated == NOW
    assert reloaded.dirty is False


def test_saved_file_shape(store: MemoryCacheStore) -> None:
    cache = BusCache(store, clock=fixed_clock)
    cache.upsert("Maple", BusRecord(remote_id="abc", available=False))
    cache.save()

    assert store.data is not None
    document = json.loads(store.data)
    assert document == {
        "lastUpdated": "2026-03-14T15:30:00Z",
        "buses": {"Maple": {"id": "abc", "locations": [], "available": False}},
    }


def test_save_only_writes_when_dirty(cache: BusCache, store: MemoryCacheStore) -> None:
    assert cache.save() is False
    assert store.writes == 0

    cache.upsert("Maple", BusRecord(remote_id="abc"))
    assert cache.save() is True
    assert cache.save() is False
    assert store.writes == 1

    assert cache.save(force=True) is True
    assert store.writes == 2


def test_mark_dirty_triggers_save(cache: BusCache, store: MemoryCacheStore) -> None:
    cache.mark_dirty()

    assert cache.dirty
    assert cache.save() is True
    assert not cache.dirty


def test_failed_write_keeps_dirty_flag(cache: BusCache, store: MemoryCacheStore) -> None:
    cache.upsert("Maple", BusRecord(remote_id="abc"))
    store.fail_writes = True

    with pytest.raises(OSError):
        cache.save()
    assert cache.dirty


def test_load_missing_file_raises(cache: BusCache) -> None:
    with pytest.raises(CacheLoadError):
        cache.load()


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[]",
        b'{"lastUpdated": "2026-03-14T15:30:00Z"}',
        b'{"lastUpdated": "yesterday", "buses": {}}',
        b'{"lastUpdated": "2026-03-14T15:30:00Z", "buses": {"Maple": {"locations": []}}}',
    ],
)
def test_load_malformed_cache_raises(raw: bytes) -> None:
    cache = BusCache(MemoryCacheStore(data=raw), clock=fixed_clock)

    with pytest.raises(CacheLoadError):
        cache.load()


def test_rebuild_from_remote_seeds_named_buses_and_persists(cache: BusCache, store: MemoryCacheStore) -> None:
    cache.rebuild_from_remote(
        [
            ExternalBusSummary(
                id="1",
                name="Maple",
                locations=["A4"],
                invalidate_time=datetime(2026, 3, 15, tzinfo=UTC),
                available=True,
            ),
            ExternalBusSummary(id="2", name=None),
            ExternalBusSummary(id="3", name="Oak"),
        ]
    )

    assert cache.names() == ["Maple", "Oak"]
    maple = cache.get("Maple")
    assert maple is not None
    assert maple.remote_id == "1"
    assert maple.invalidate_time == datetime(2026, 3, 15, tzinfo=UTC)
    assert store.writes == 1
    assert not cache.dirty


def test_rebuild_write_failure_is_fatal(cache: BusCache, store: MemoryCacheStore) -> None:
    store.fail_writes = True

    with pytest.raises(BootstrapError):
        cache.rebuild_from_remote([ExternalBusSummary(id="1", name="Maple")])


@pytest.mark.asyncio
async def test_bootstrap_uses_existing_cache(store: MemoryCacheStore, api: FakeBusApi) -> None:
    seed = BusCache(store, clock=fixed_clock)
    seed.upsert("Maple", BusRecord(remote_id="abc"))
    seed.save()

    cache = BusCache(store, clock=fixed_clock)
    await cache.bootstrap(api)

    assert "Maple" in cache
    assert api.list_calls == 0


@pytest.mark.asyncio
async def test_bootstrap_rebuilds_corrupt_cache(api: FakeBusApi) -> None:
    store = MemoryCacheStore(data=b"{broken")
    api.directory = [ExternalBusSummary(id="1", name="Maple")]
    cache = BusCache(store, clock=fixed_clock)

    await cache.bootstrap(api)

    assert cache.names() == ["Maple"]
    assert api.list_calls == 1
    assert store.writes == 1


@pytest.mark.asyncio
async def test_bootstrap_fails_when_remote_unreachable(cache: BusCache, api: FakeBusApi) -> None:
    api.fail_on.add("list_buses")

    with pytest.raises(BootstrapError):
        await cache.bootstrap(api)


def test_file_store_round_trip(tmp_path: Path) -> None:
    store = FileCacheStore(tmp_path / "nested" / "data.json")

    with pytest.raises(FileNotFoundError):
        store.read()

    store.write(b'{"a": 1}')
    store.write(b'{"a": 2}')

    assert store.read() == b'{"a": 2}'
    assert [p.name for p in (tmp_path / "nested").iterdir()] == ["data.json"]
