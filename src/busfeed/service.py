"""Reconciliation service: feed fetch, reconcile, sweep, and cache saves.

The service owns the pass lock: reconciliation passes and cache saves never
overlap, whether they are triggered once or by APScheduler jobs in periodic
mode.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

from busfeed.client import FeedSource, RemoteBusApi
from busfeed.config import BusFeedConfig
from busfeed.exceptions import BusFeedError
from busfeed.ingestion.feed import normalize_feeds
from busfeed.models.feed import FeedPayload
from busfeed.reconcile.directory import RemoteDirectory
from busfeed.reconcile.reconciler import Reconciler
from busfeed.reconcile.result import PassResult
from busfeed.reconcile.sweeper import AbsenceSweeper
from busfeed.schedule import cron_trigger, interval_trigger
from busfeed.state.cache import BusCache

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BusSyncService:
    """Runs reconciliation passes for one feed against one remote service."""

    def __init__(
        self,
        config: BusFeedConfig,
        api: RemoteBusApi,
        feed: FeedSource,
        cache: BusCache,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._api = api
        self._feed = feed
        self._cache = cache
        self._clock = clock
        self._lock = asyncio.Lock()
        if not config.dry_run and not config.token:
            _logger.warning("No API token configured; remote mutations will be rejected. You have been warned.")

    @property
    def cache(self) -> BusCache:
        return self._cache

    async def bootstrap(self) -> None:
        """Load the cache, rebuilding it from the remote directory if needed.

        Raises :class:`busfeed.exceptions.BootstrapError` when the cache can
        be neither loaded nor rebuilt.
        """
        async with self._lock:
            await self._cache.bootstrap(self._api)

    async def fetch_feeds(self) -> list[FeedPayload]:
        """Fetch every configured feed. Any failure aborts the pass."""
        fetches: list[Awaitable[Any]] = []
        if self._config.feed_url:
            fetches.append(self._feed.fetch_structured_feed())
        if self._config.table_url:
            fetches.append(self._feed.fetch_tabular_feed())
        return list(await asyncio.gather(*fetches))

    async def sync_once(self) -> PassResult:
        """Run one reconciliation pass. The cache is not saved."""
        async with self._lock:
            payloads = await self.fetch_feeds()
            candidates = normalize_feeds(payloads, keys=self._config.keys, layout=self._config.table)
            _logger.info("Updating %d buses...", len(candidates))

            result = PassResult()
            reconciler = Reconciler(
                self._cache,
                self._api,
                RemoteDirectory(self._api),
                dry_run=self._config.dry_run,
                source=self._config.source,
                zone=self._config.zone,
                clock=self._clock,
            )
            await reconciler.run(candidates, result)

            sweeper = AbsenceSweeper(
                self._cache,
                self._api,
                dry_run=self._config.dry_run,
                max_concurrency=self._config.sweep_concurrency,
            )
            await sweeper.sweep(result.seen, result)

        _logger.info(
            "Pass finished: %d buses seen, %d mutations (%d sent), %d marked unavailable",
            len(result.seen),
            len(result.mutations),
            len(result.sent),
            len(result.swept),
        )
        return result

    async def save(self, *, force: bool = False) -> bool:
        async with self._lock:
            saved = self._cache.save(force=force)
        if saved:
            _logger.info("Saved data.")
        return saved

    async def run_once(self) -> PassResult:
        """One pass followed by a save if anything changed.

        When the pass fails part-way, the changes already applied are saved
        before the error propagates.
        """
        try:
            result = await self.sync_once()
        except BusFeedError:
            await self.save()
            raise
        await self.save(force=result.any_mutation_applied)
        return result

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Run scheduled passes until *stop* is set.

        Passes fire every ``sync_interval`` seconds (the first one right
        away) and on every ``cron`` rule. With a ``save_interval`` or
        ``save_cron`` the cache is saved on its own schedule; otherwise it
        is saved after every pass. A failed pass is logged and the next one
        runs on schedule. The cache is saved once more on exit.
        """
        config = self._config
        if not config.periodic:
            raise BusFeedError("run_forever requires a sync_interval or cron rules")

        scheduler = AsyncIOScheduler(timezone=config.zone)
        separate_saves = bool(config.save_interval or config.save_cron)
        sync_action = self.sync_once if separate_saves else self.run_once

        if config.sync_interval:
            self._add_job(
                scheduler,
                interval_trigger(config.sync_interval, config.zone),
                sync_action,
                "Fetching",
                next_run_time=datetime.now(config.zone),
            )
        for rule in config.cron:
            self._add_job(scheduler, cron_trigger(rule, config.zone), sync_action, "Fetching")
        if config.save_interval:
            self._add_job(scheduler, interval_trigger(config.save_interval, config.zone), self.save, "Saving")
        if config.save_cron:
            self._add_job(scheduler, cron_trigger(config.save_cron, config.zone), self.save, "Saving")

        scheduler.start()
        try:
            await stop.wait()
        finally:
            scheduler.shutdown(wait=False)
            await self.save()

    def _add_job(
        self,
        scheduler: AsyncIOScheduler,
        trigger: BaseTrigger,
        action: Callable[[], Awaitable[Any]],
        label: str,
        **kwargs: Any,
    ) -> None:
        # Overlapping runs of one job are skipped; the pass lock serializes the rest.
        scheduler.add_job(
            self._run_job,
            trigger,
            args=(action, label),
            max_instances=1,
            coalesce=True,
            **kwargs,
        )

    @staticmethod
    async def _run_job(action: Callable[[], Awaitable[Any]], label: str) -> None:
        _logger.info("%s...", label)
        try:
            await action()
        except (BusFeedError, OSError):
            _logger.exception("%s failed", label)
