"""Two-tier news cache (memory in front of SQLite) and its periodic purge task.

Lookup order:
  1. MemoryCache — no I/O.
  2. SQLiteCache — newest live row; a hit is backfilled into memory with the
     row's remaining lifetime so the memory copy never outlives the durable one.

Writes go to both layers. Persistent-layer failures are logged inside
SQLiteCache and never reach the caller.
"""

import asyncio
import contextlib
import logging
from typing import Optional, Sequence, Tuple

from stocknews.core.cache import MemoryCache, SQLiteCache
from stocknews.core.logger import log_duration, logger
from stocknews.models.datatypes import Article


class CacheTier:
    """Memoises annotated result sets per query signature."""

    def __init__(self, memory: MemoryCache, persistent: SQLiteCache) -> None:
        self.memory = memory
        self.persistent = persistent

    def lookup(self, key: str) -> Optional[Tuple[Article, ...]]:
        """Return the live payload for ``key`` or None."""
        articles = self.memory.get(key)
        if articles is not None:
            logger.debug(f"Cache hit [memory] for key: {key}")
            return articles

        stored = self.persistent.get(key)
        if stored is None:
            logger.info(f"Cache miss for key: {key}")
            return None

        articles, expires_at = stored
        self.memory.set_until(key, articles, expires_at)
        logger.info(f"Cache hit [sqlite] for key: {key}")
        return articles

    def store(self, key: str, articles: Sequence[Article], ttl_seconds: float) -> None:
        """Write ``articles`` to both layers. Never raises on persistent-layer errors."""
        payload = tuple(articles)
        self.memory.set(key, payload, ttl_seconds)
        sentiment = payload[0].sentiment if payload else "neutral"
        if not self.persistent.set(key, payload, ttl_seconds, sentiment=sentiment):
            logger.warning(f"Persistent cache write skipped for key: {key}")

    def purge_expired(self) -> int:
        """Drop expired entries from both layers. Returns the persistent rows removed."""
        with log_duration("Cache purge", level=logging.DEBUG):
            self.memory.purge_expired()
            removed = self.persistent.purge_expired()
        if removed > 0:
            logger.info(f"Cleaned up {removed} expired cache entries")
        return removed


class CachePurger:
    """Runs :meth:`CacheTier.purge_expired` every ``interval_seconds`` on the event loop.

    ``start()`` must be called from a running loop; ``stop()`` cancels the task
    and waits for it to finish.
    """

    def __init__(self, cache: CacheTier, interval_seconds: float = 300) -> None:
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"CachePurger: started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("CachePurger: stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await asyncio.to_thread(self.cache.purge_expired)
            except Exception as exc:
                logger.error(f"CachePurger: sweep failed: {exc}")
