"""Local bus cache.

Maps bus names to :class:`BusRecord`. Loaded once at start-up, mutated in
memory by reconciliation passes, and written back only when something
changed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from busfeed.exceptions import BootstrapError, BusFeedError, CacheLoadError
from busfeed.models.bus import BusRecord, CacheDocument, ExternalBusSummary
from busfeed.state.store import CacheStore

if TYPE_CHECKING:
    from busfeed.client import RemoteBusApi

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BusCache:
    """In-memory bus cache backed by a :class:`CacheStore`."""

    def __init__(self, store: CacheStore, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._store = store
        self._clock = clock
        self._document = CacheDocument(last_updated=clock(), buses={})
        self._dirty = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace the in-memory state with the persisted document.

        Raises
        ------
        CacheLoadError
            If the file is missing, unreadable, or not a valid cache document.
        """
        try:
            raw = self._store.read()
        except OSError as exc:
            raise CacheLoadError(f"could not read cache: {exc}") from exc
        try:
            document = CacheDocument.model_validate_json(raw)
        except ValidationError as exc:
            raise CacheLoadError(f"cache is malformed: {exc}") from exc
        self._document = document
        self._dirty = False
        _logger.debug("Loaded %d buses from cache", len(document.buses))

    def rebuild_from_remote(self, summaries: Iterable[ExternalBusSummary]) -> None:
        """Seed the cache from the remote directory and persist it immediately.

        Buses without a name are skipped. Raises :class:`BootstrapError` when
        the rebuilt cache cannot be written.
        """
        buses: dict[str, BusRecord] = {}
        for summary in summaries:
            if summary.name:
                buses[summary.name] = summary.to_record()
        self._document = CacheDocument(last_updated=self._clock(), buses=buses)
        _logger.info("Rebuilt cache with %d buses from the remote directory", len(buses))
        try:
            self.save(force=True)
        except OSError as exc:
            raise BootstrapError(f"could not write rebuilt cache: {exc}") from exc

    async def bootstrap(self, api: RemoteBusApi) -> None:
        """Load the cache, rebuilding it from the remote directory on failure."""
        try:
            self.load()
            return
        except CacheLoadError as exc:
            _logger.warning("Tried to read cache but got: %s. Rebuilding cache...", exc)

        try:
            summaries = await api.list_buses()
        except BusFeedError as exc:
            raise BootstrapError(f"could not fetch remote directory: {exc}") from exc
        self.rebuild_from_remote(summaries)

    # ------------------------------------------------------------------
    # Mapping access
    # ------------------------------------------------------------------

    def get(self, name: str) -> BusRecord | None:
        return self._document.buses.get(name)

    def upsert(self, name: str, record: BusRecord) -> None:
        self._document.buses[name] = record
        self._dirty = True

    def names(self) -> list[str]:
        return list(self._document.buses)

    def items(self) -> Iterator[tuple[str, BusRecord]]:
        return iter(list(self._document.buses.items()))

    def __contains__(self, name: object) -> bool:
        return name in self._document.buses

    def __len__(self) -> int:
        return len(self._document.buses)

    @property
    def last_updated(self) -> datetime:
        return self._document.last_updated

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        self._dirty = True

    def dumps(self) -> bytes:
        return self._document.model_dump_json(by_alias=True, exclude_none=True, indent=2).encode("utf-8")

    def save(self, *, force: bool = False) -> bool:
        """Write the cache if anything changed (or *force* is set).

        Returns whether a write happened. The dirty flag is cleared only
        after a successful write.
        """
        if not (self._dirty or force):
            return False
        self._document.last_updated = self._clock()
        self._store.write(self.dumps())
        self._dirty = False
        _logger.debug("Saved %d buses to cache", len(self._document.buses))
        return True
