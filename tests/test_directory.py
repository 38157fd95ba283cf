from __future__ import annotations

import pytest
from conftest import FakeBusApi

from busfeed.models.bus import ExternalBusSummary
from busfeed.reconcile.directory import RemoteDirectory


@pytest.mark.asyncio
async def test_directory_is_fetched_lazily_and_once(api: FakeBusApi) -> None:
    api.directory = [ExternalBusSummary(id="1", name="Maple")]
    directory = RemoteDirectory(api)
    assert api.list_calls == 0

    assert (await directory.lookup("Maple")) is not None
    assert (await directory.lookup("Oak")) is None
    assert (await directory.lookup("Maple")) is not None

    assert api.list_calls == 1
    assert directory.fetch_count == 1


@pytest.mark.asyncio
async def test_exact_name_beats_alias(api: FakeBusApi) -> None:
    api.directory = [
        ExternalBusSummary(id="alias-holder", name="Maple Street", other_names=["Maple"]),
        ExternalBusSummary(id="exact", name="Maple"),
    ]

    match = await RemoteDirectory(api).lookup("Maple")

    assert match is not None
    assert match.id == "exact"


@pytest.mark.asyncio
async def test_alias_match_first_wins(api: FakeBusApi) -> None:
    api.directory = [
        ExternalBusSummary(id="first", name="Maple Street", other_names=["Maple"]),
        ExternalBusSummary(id="second", name="Maple Avenue", other_names=["Maple"]),
    ]

    match = await RemoteDirectory(api).lookup("Maple")

    assert match is not None
    assert match.id == "first"


@pytest.mark.asyncio
async def test_no_fuzzy_matching(api: FakeBusApi) -> None:
    api.directory = [ExternalBusSummary(id="1", name="Maple", other_names=["Maple St"])]

    directory = RemoteDirectory(api)

    assert await directory.lookup("maple") is None
    assert await directory.lookup("Maple St.") is None
