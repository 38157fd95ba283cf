"""Per-candidate reconciliation against the local cache and the remote API."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime, time, timedelta, tzinfo
from typing import TYPE_CHECKING

from busfeed._api.buses import BUSES_PATH, bus_path, departure_path, location_path
from busfeed._constants import DEFAULT_SOURCE
from busfeed.models.bus import BusRecord
from busfeed.models.feed import UpdateCandidate
from busfeed.reconcile.directory import DirectoryResolver
from busfeed.reconcile.result import Mutation, MutationKind, PassResult
from busfeed.state.cache import BusCache

if TYPE_CHECKING:
    from busfeed.client import RemoteBusApi

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def next_midnight(now: datetime, zone: tzinfo = UTC) -> datetime:
    """Midnight at the start of the calendar day after *now*, in *zone*."""
    local = now.astimezone(zone)
    return datetime.combine(local.date() + timedelta(days=1), time(), tzinfo=zone)


class Reconciler:
    """Apply normalized feed candidates to the cache and the remote service.

    Candidates are processed strictly in order, one at a time. For each one
    the remote call is made before the matching local field is changed, so
    a failed call leaves that field as it was and the error ends the pass.
    In dry-run mode every decision and local change still happens; only the
    request is skipped and its URL is logged instead.
    """

    def __init__(
        self,
        cache: BusCache,
        api: RemoteBusApi,
        directory: DirectoryResolver,
        *,
        dry_run: bool = False,
        source: str = DEFAULT_SOURCE,
        zone: tzinfo = UTC,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache = cache
        self._api = api
        self._directory = directory
        self._dry_run = dry_run
        self._source = source
        self._zone = zone
        self._clock = clock

    async def run(self, candidates: Iterable[UpdateCandidate], result: PassResult | None = None) -> PassResult:
        result = result if result is not None else PassResult()
        for candidate in candidates:
            result.seen.append(candidate.name)
            await self.reconcile(candidate, result)
        return result

    async def reconcile(self, candidate: UpdateCandidate, result: PassResult) -> None:
        _logger.info("=== %s @ %s ===", candidate.name, candidate.location)

        record = await self._resolve(candidate, result)
        if record is None:
            return

        await self._sync_availability(candidate.name, record, result)
        await self._sync_departure(candidate, record, result)
        await self._sync_location(candidate, record, result)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _resolve(self, candidate: UpdateCandidate, result: PassResult) -> BusRecord | None:
        name = candidate.name
        record = self._cache.get(name)
        if record is not None:
            return record

        _logger.info("%s not found, attempting to update internal database", name)
        summary = await self._directory.lookup(name)
        if summary is not None:
            _logger.info("%s found, inserting %s into database", name, summary.id)
            record = summary.to_record()
            self._cache.upsert(name, record)
            result.any_mutation_applied = True
            return record

        if self._dry_run:
            _logger.info("%s not found; skipping bus creation in dry run", name)
            return None
        if candidate.location is None:
            _logger.info("%s not found and has no location; not creating it", name)
            return None

        _logger.info("Creating %s...", name)
        bus_id = await self._api.create_bus(name)
        _logger.info("Done creating bus %s. ID: %s", name, bus_id)
        result.mutations.append(
            Mutation(
                kind=MutationKind.CREATE,
                name=name,
                bus_id=bus_id,
                method="POST",
                url=self._api.url_for(BUSES_PATH),
            )
        )
        record = BusRecord(remote_id=bus_id, locations=[], available=True)
        self._cache.upsert(name, record)
        result.any_mutation_applied = True
        return record

    async def _sync_availability(self, name: str, record: BusRecord, result: PassResult) -> None:
        if record.available:
            return
        await self._send(
            result,
            kind=MutationKind.AVAILABILITY,
            name=name,
            record=record,
            method="PATCH",
            path=bus_path(record.remote_id),
            call=lambda: self._api.set_availability(record.remote_id, True),
        )
        record.available = True
        self._changed(result)

    async def _sync_departure(self, candidate: UpdateCandidate, record: BusRecord, result: PassResult) -> None:
        departure = candidate.departure
        if departure is None or departure == record.departure:
            return
        _logger.info("%s departure %s -> %s", candidate.name, record.departure, departure)
        await self._send(
            result,
            kind=MutationKind.DEPARTURE,
            name=candidate.name,
            record=record,
            method="PUT",
            path=departure_path(record.remote_id),
            call=lambda: self._api.set_departure(record.remote_id, departure),
        )
        record.departure = departure
        self._changed(result)

    async def _sync_location(self, candidate: UpdateCandidate, record: BusRecord, result: PassResult) -> None:
        location = candidate.location
        current = record.location

        if location is not None and location != current:
            locations = [location]
            associate_time = True
        elif location is None and current is not None:
            locations = []
            associate_time = False
        else:
            return

        invalidate_time = next_midnight(self._clock(), self._zone)
        _logger.info("%s location %s -> %s", candidate.name, current, location)
        await self._send(
            result,
            kind=MutationKind.LOCATION,
            name=candidate.name,
            record=record,
            method="PUT",
            path=location_path(record.remote_id),
            call=lambda: self._api.set_location(
                record.remote_id,
                locations,
                invalidate_time,
                self._source,
                associate_time=associate_time,
            ),
        )
        record.locations = locations
        record.invalidate_time = invalidate_time
        self._changed(result)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _send(
        self,
        result: PassResult,
        *,
        kind: MutationKind,
        name: str,
        record: BusRecord,
        method: str,
        path: str,
        call: Callable[[], Awaitable[None]],
    ) -> None:
        url = self._api.url_for(path)
        if self._dry_run:
            _logger.info("Dry run: not sending %s %s", method, url)
        else:
            await call()
        result.mutations.append(
            Mutation(
                kind=kind,
                name=name,
                bus_id=record.remote_id,
                method=method,
                url=url,
                dry_run=self._dry_run,
            )
        )

    def _changed(self, result: PassResult) -> None:
        self._cache.mark_dirty()
        result.any_mutation_applied = True
