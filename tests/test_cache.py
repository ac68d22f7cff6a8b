"""
Tests for stocknews.core.cache and stocknews.core.cache_tier

All layers share the FakeClock from conftest so expiry is driven explicitly.
"""
import asyncio
import sqlite3

import pytest

from conftest import FIXED_NOW, make_raw
from stocknews.core.cache import MemoryCache, SQLiteCache
from stocknews.core.cache_tier import CachePurger, CacheTier
from stocknews.pipeline.annotate import annotate_articles
from stocknews.providers.sentiment import LexiconSentimentProvider


def _articles(count=3):
    return annotate_articles(make_raw(count), LexiconSentimentProvider(), FIXED_NOW)


def _break(database):
    def broken_connect():
        raise sqlite3.OperationalError("database is locked")
    database.connect = broken_connect


# ── MemoryCache ───────────────────────────────────────────────────────────────

def test_memory_get_within_ttl(clock):
    cache = MemoryCache(clock=clock)
    cache.set("k", "v", 60)
    clock.advance(59)
    assert cache.get("k") == "v"


def test_memory_entry_expires(clock):
    cache = MemoryCache(clock=clock)
    cache.set("k", "v", 60)
    clock.advance(60)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_memory_zero_ttl_is_never_returned(clock):
    cache = MemoryCache(clock=clock)
    cache.set("k", "old", 60)
    cache.set("k", "new", 0)
    assert cache.get("k") is None


def test_memory_evicts_oldest_when_full(clock):
    cache = MemoryCache(max_entries=2, clock=clock)
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)
    cache.set("c", 3, 60)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_memory_evicts_expired_before_live(clock):
    cache = MemoryCache(max_entries=2, clock=clock)
    cache.set("a", 1, 60)
    cache.set("short", 2, 5)
    clock.advance(10)
    cache.set("c", 3, 60)
    assert cache.get("a") == 1
    assert cache.get("c") == 3


@pytest.mark.parametrize("size", [0, -1])
def test_memory_rejects_non_positive_size(clock, size):
    with pytest.raises(ValueError, match="max_entries"):
        MemoryCache(max_entries=size, clock=clock)


def test_memory_single_slot_replaces_entry(clock):
    cache = MemoryCache(max_entries=1, clock=clock)
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)
    assert cache.get("a") is None
    assert cache.get("b") == 2


def test_memory_purge_expired_counts(clock):
    cache = MemoryCache(clock=clock)
    cache.set("a", 1, 5)
    cache.set("b", 2, 5)
    cache.set("c", 3, 60)
    clock.advance(6)
    assert cache.purge_expired() == 2
    assert len(cache) == 1


# ── SQLiteCache ───────────────────────────────────────────────────────────────

def test_sqlite_round_trip(database, clock):
    cache = SQLiteCache(database, clock=clock)
    articles = _articles()
    assert cache.set("k", articles, 300, sentiment=articles[0].sentiment) is True

    payload, expires_at = cache.get("k")
    assert payload == articles
    assert (expires_at - FIXED_NOW).total_seconds() == pytest.approx(300)


def test_sqlite_expired_row_is_ignored(database, clock):
    cache = SQLiteCache(database, clock=clock)
    cache.set("k", _articles(), 300)
    clock.advance(300)
    assert cache.get("k") is None


def test_sqlite_zero_ttl_is_never_returned(database, clock):
    cache = SQLiteCache(database, clock=clock)
    cache.set("k", _articles(), 0)
    assert cache.get("k") is None


def test_sqlite_newest_live_row_wins(database, clock):
    cache = SQLiteCache(database, clock=clock)
    cache.set("k", _articles(1), 300)
    clock.advance(1)
    cache.set("k", _articles(2), 300)
    payload, _ = cache.get("k")
    assert len(payload) == 2


def test_sqlite_purge_removes_only_expired(database, clock):
    cache = SQLiteCache(database, clock=clock)
    cache.set("old", _articles(1), 10)
    cache.set("fresh", _articles(1), 600)
    clock.advance(20)
    assert cache.purge_expired() == 1
    assert cache.get("fresh") is not None


def test_sqlite_errors_degrade_silently(database, clock):
    cache = SQLiteCache(database, clock=clock)
    _break(database)
    assert cache.set("k", _articles(), 300) is False
    assert cache.get("k") is None
    assert cache.purge_expired() == 0


def test_sqlite_corrupt_payload_is_a_miss(database, clock):
    cache = SQLiteCache(database, clock=clock)
    with database.connect() as conn:
        conn.execute(
            "INSERT INTO news_cache (query, response_data, sentiment, cached_at, expires_at) "
            "VALUES ('k', '{not json', 'neutral', '2026-10-19 12:00:00.000000', '2099-01-01 00:00:00.000000')"
        )
    assert cache.get("k") is None


# ── CacheTier ─────────────────────────────────────────────────────────────────

def test_tier_miss_returns_none(cache_tier):
    assert cache_tier.lookup("missing") is None


def test_tier_store_then_lookup_round_trip(cache_tier):
    articles = _articles()
    cache_tier.store("k", articles, 300)
    assert cache_tier.lookup("k") == articles


def test_tier_lookup_is_idempotent(cache_tier):
    cache_tier.store("k", _articles(), 300)
    assert cache_tier.lookup("k") == cache_tier.lookup("k")


def test_tier_zero_ttl_is_never_returned(cache_tier):
    cache_tier.store("k", _articles(), 0)
    assert cache_tier.lookup("k") is None


def test_tier_entry_expires_in_both_layers(cache_tier, clock):
    cache_tier.store("k", _articles(), 300)
    clock.advance(301)
    assert cache_tier.lookup("k") is None


def test_tier_persistent_hit_backfills_memory(cache_tier, clock):
    articles = _articles()
    cache_tier.store("k", articles, 300)

    cold = CacheTier(memory=MemoryCache(clock=clock), persistent=cache_tier.persistent)
    assert cold.memory.get("k") is None
    assert cold.lookup("k") == articles
    assert cold.memory.get("k") == articles


def test_tier_backfill_does_not_outlive_persistent_row(cache_tier, clock):
    cache_tier.store("k", _articles(), 300)
    clock.advance(200)

    cold = CacheTier(memory=MemoryCache(clock=clock), persistent=cache_tier.persistent)
    assert cold.lookup("k") is not None
    clock.advance(101)
    assert cold.memory.get("k") is None


def test_tier_memory_takes_precedence(cache_tier):
    cache_tier.persistent.set("k", _articles(2), 300)
    cache_tier.memory.set("k", _articles(1), 300)
    assert len(cache_tier.lookup("k")) == 1


def test_tier_store_survives_persistent_failure(cache_tier, database):
    _break(database)
    articles = _articles()
    cache_tier.store("k", articles, 300)
    assert cache_tier.lookup("k") == articles


def test_tier_stores_empty_result(cache_tier):
    cache_tier.store("k", (), 300)
    assert cache_tier.lookup("k") == ()


def test_tier_purge(cache_tier, clock):
    cache_tier.store("a", _articles(1), 10)
    cache_tier.store("b", _articles(1), 600)
    clock.advance(11)
    assert cache_tier.purge_expired() == 1


# ── CachePurger ───────────────────────────────────────────────────────────────

class _CountingCache:
    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail

    def purge_expired(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("disk full")
        return 0


async def test_purger_runs_periodically_and_stops():
    cache = _CountingCache()
    purger = CachePurger(cache, interval_seconds=0.01)
    purger.start()
    assert purger.running
    await asyncio.sleep(0.1)
    await purger.stop()

    assert cache.calls >= 2
    assert not purger.running
    calls = cache.calls
    await asyncio.sleep(0.05)
    assert cache.calls == calls


async def test_purger_survives_failing_sweep():
    cache = _CountingCache(fail=True)
    purger = CachePurger(cache, interval_seconds=0.01)
    purger.start()
    await asyncio.sleep(0.1)
    assert purger.running
    await purger.stop()
    assert cache.calls >= 2


async def test_purger_stop_without_start_is_noop():
    purger = CachePurger(_CountingCache(), interval_seconds=1)
    await purger.stop()
    assert not purger.running
