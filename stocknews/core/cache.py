"""Cache layers: an in-process TTL map and a SQLite-backed TTL table."""

import json
import sqlite3
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Sequence, Tuple

from stocknews.core.database import Database
from stocknews.core.logger import logger
from stocknews.core.news_utils import Clock, from_sqlite_ts, to_sqlite_ts, utc_now
from stocknews.models.datatypes import Article


class MemoryCache:
    """A bounded, thread-safe key → value map where every entry carries its own expiry.

    Expired entries are dropped lazily on read. When ``max_entries`` is reached,
    expired entries are swept first, then the oldest insertion is evicted.
    """

    def __init__(self, max_entries: int = 1000, clock: Clock = utc_now) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[datetime, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store ``value`` until ``ttl_seconds`` from now. A non-positive TTL removes the key."""
        with self._lock:
            self._entries.pop(key, None)
            if ttl_seconds <= 0:
                return
            if len(self._entries) >= self.max_entries:
                self._evict()
            self._entries[key] = (self._clock() + timedelta(seconds=ttl_seconds), value)

    def set_until(self, key: str, value: Any, expires_at: datetime) -> None:
        """Store ``value`` with an absolute expiry (used when backfilling from SQLite)."""
        self.set(key, value, (expires_at - self._clock()).total_seconds())

    def purge_expired(self) -> int:
        with self._lock:
            return self._drop_expired()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _drop_expired(self) -> int:
        now = self._clock()
        stale = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def _evict(self) -> None:
        if self._drop_expired() or not self._entries:
            return
        oldest = next(iter(self._entries))
        del self._entries[oldest]
        logger.debug(f"MemoryCache: evicted {oldest} (max_entries={self.max_entries})")


class SQLiteCache:
    """Persistent news cache in the ``news_cache`` table.

    Rows are append-only: a refresh inserts a new row instead of updating the
    old one, and reads pick the newest live row. All SQLite errors are logged
    and degrade to a miss / no-op, never an exception.
    """

    def __init__(self, database: Database, clock: Clock = utc_now) -> None:
        """
        Args:
            database (Database): Store that owns the ``news_cache`` table.
            clock (Clock): Source of "now"; injectable for tests.
        """
        self.db = database
        self._clock = clock

    def get(self, key: str) -> Optional[Tuple[Tuple[Article, ...], datetime]]:
        """
        Retrieve the newest non-expired payload for ``key``.

        Args:
            key (str): The cache key.

        Returns:
            Optional[Tuple[Tuple[Article, ...], datetime]]: The articles and the
            row's expiry if a live row exists, else None.
        """
        try:
            with self.db.connect() as conn:
                row = conn.execute(
                    """
                    SELECT response_data, expires_at FROM news_cache
                    WHERE query = ? AND expires_at > ?
                    ORDER BY cached_at DESC, id DESC LIMIT 1
                    """,
                    (key, to_sqlite_ts(self._clock())),
                ).fetchone()
            if row:
                articles = tuple(Article.from_dict(item) for item in json.loads(row["response_data"]))
                return articles, from_sqlite_ts(row["expires_at"])
        except sqlite3.Error as e:
            logger.error(f"SQLite error retrieving cache for key {key}: {e}")
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Corrupt cached payload for key {key}: {e}")

        return None

    def set(
        self,
        key: str,
        articles: Sequence[Article],
        ttl_seconds: float,
        sentiment: str = "neutral",
    ) -> bool:
        """
        Append a cache row for ``key`` that expires ``ttl_seconds`` from now.

        Args:
            key (str): The cache key.
            articles (Sequence[Article]): Annotated payload to serialise.
            ttl_seconds (float): Time to live.
            sentiment (str): Headline sentiment label stored alongside the payload.

        Returns:
            bool: True if the row was written, False if the write failed.
        """
        now = self._clock()
        try:
            value_str = json.dumps([article.to_dict() for article in articles])
            with self.db.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO news_cache (query, response_data, sentiment, cached_at, expires_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        key,
                        value_str,
                        sentiment,
                        to_sqlite_ts(now),
                        to_sqlite_ts(now + timedelta(seconds=ttl_seconds)),
                    ),
                )
            return True
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"Error saving to cache for key {key}: {e}")
            return False

    def purge_expired(self) -> int:
        """Delete rows whose expiry has passed. Returns the number removed (0 on error)."""
        try:
            with self.db.connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM news_cache WHERE expires_at <= ?",
                    (to_sqlite_ts(self._clock()),),
                )
            return cursor.rowcount
        except sqlite3.Error as e:
            logger.error(f"Cache cleanup error: {e}")
            return 0
