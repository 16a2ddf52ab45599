"""Time-boxed cache over the participants, prizes and winners-log tabs."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from lucky_draw.config import settings
from lucky_draw.schemas.sheets import SheetTable
from lucky_draw.sheets.errors import RosterFetchError
from lucky_draw.sheets.gviz_client import KINDS, gviz_client

Loader = Callable[[str], Awaitable[SheetTable]]


@dataclass
class CacheEntry:
    data: SheetTable
    fetched_at: float


class RosterCache:
    """Per-kind cache with an absolute TTL.

    Concurrent refreshes of one kind share a lock, so only the first caller
    goes upstream and the rest re-check the fresh entry. When a refresh fails
    and an older entry exists, the older entry is returned instead.
    """

    def __init__(
        self,
        loader: Loader,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self.ttl = settings.CACHE_TTL_SECONDS if ttl is None else ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, kind: str) -> asyncio.Lock:
        if kind not in self._locks:
            self._locks[kind] = asyncio.Lock()
        return self._locks[kind]

    def is_fresh(self, kind: str) -> bool:
        entry = self._entries.get(kind)
        return entry is not None and self._clock() - entry.fetched_at < self.ttl

    def peek(self, kind: str) -> SheetTable | None:
        """Return whatever is cached for ``kind`` without loading."""
        entry = self._entries.get(kind)
        return entry.data if entry else None

    async def get(self, kind: str) -> SheetTable:
        """Return the cached table, refreshing it when stale or invalidated."""
        if self.is_fresh(kind):
            return self._entries[kind].data

        async with self._lock_for(kind):
            if self.is_fresh(kind):
                return self._entries[kind].data
            return await self._refresh(kind)

    async def _refresh(self, kind: str) -> SheetTable:
        try:
            data = await self._loader(kind)
        except RosterFetchError as e:
            entry = self._entries.get(kind)
            if entry is None:
                raise
            logger.warning("[{}] refresh failed, serving stale copy: {}", kind, e)
            return entry.data

        self._entries[kind] = CacheEntry(data=data, fetched_at=self._clock())
        return data

    def invalidate(self, kind: str) -> None:
        """Force the next ``get`` to go upstream. The old copy stays as fallback."""
        entry = self._entries.get(kind)
        if entry is not None:
            entry.fetched_at = float("-inf")

    async def refresh_all(self) -> dict[str, int]:
        """Invalidate and reload every kind. Returns row counts of the reloaded tabs."""
        counts = {}
        for kind in KINDS:
            self.invalidate(kind)
            try:
                counts[kind] = len((await self.get(kind)).rows)
            except RosterFetchError as e:
                logger.warning("Roster prefetch failed for {}: {}", kind, e)
        return counts


# Singleton
roster_cache = RosterCache(gviz_client.fetch_table)
