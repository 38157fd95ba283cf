"""Mark cached buses that dropped out of the feed as unavailable."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from busfeed._api.buses import bus_path
from busfeed._constants import DEFAULT_SWEEP_CONCURRENCY
from busfeed.models.bus import BusRecord
from busfeed.reconcile.result import Mutation, MutationKind, PassResult
from busfeed.state.cache import BusCache

if TYPE_CHECKING:
    from busfeed.client import RemoteBusApi

_logger = logging.getLogger(__name__)


class AbsenceSweeper:
    """Set ``available=false`` on every available bus the feed did not mention.

    Sweeps are independent of each other and run concurrently, at most
    ``max_concurrency`` at a time. All of them finish before :meth:`sweep`
    returns; if any failed, the first error is raised afterwards and the
    successful ones are kept.
    """

    def __init__(
        self,
        cache: BusCache,
        api: RemoteBusApi,
        *,
        dry_run: bool = False,
        max_concurrency: int = DEFAULT_SWEEP_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._cache = cache
        self._api = api
        self._dry_run = dry_run
        self._max_concurrency = max_concurrency

    async def sweep(self, seen: Iterable[str], result: PassResult | None = None) -> list[str]:
        """Sweep every cached bus not in *seen*; return the names marked unavailable."""
        result = result if result is not None else PassResult()
        seen_names = set(seen)
        targets = [
            (name, record) for name, record in self._cache.items() if name not in seen_names and record.available
        ]
        if not targets:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _sweep_one(name: str, record: BusRecord) -> Mutation:
            url = self._api.url_for(bus_path(record.remote_id))
            async with semaphore:
                _logger.info("%s is no longer in the feed; marking unavailable", name)
                if self._dry_run:
                    _logger.info("Dry run: not sending PATCH %s", url)
                else:
                    await self._api.set_availability(record.remote_id, False)
            record.available = False
            self._cache.mark_dirty()
            return Mutation(
                kind=MutationKind.AVAILABILITY,
                name=name,
                bus_id=record.remote_id,
                method="PATCH",
                url=url,
                dry_run=self._dry_run,
            )

        outcomes = await asyncio.gather(
            *(_sweep_one(name, record) for name, record in targets),
            return_exceptions=True,
        )

        swept: list[str] = []
        errors: list[BaseException] = []
        for (name, _record), outcome in zip(targets, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                _logger.error("Could not mark %s unavailable", name, exc_info=outcome)
                errors.append(outcome)
                continue
            swept.append(name)
            result.mutations.append(outcome)

        result.swept.extend(swept)
        if swept:
            result.any_mutation_applied = True
        if errors:
            raise errors[0]
        return swept
