"""
Shared fixtures. No test touches the network: providers are stubs or have
``requests`` patched, and every database lives under ``tmp_path``.
"""
import os
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from typing import List, Optional

os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "stocknews-tests.log"))

import pytest  # noqa: E402

from stocknews.core.cache import MemoryCache, SQLiteCache  # noqa: E402
from stocknews.core.cache_tier import CacheTier  # noqa: E402
from stocknews.core.config import Settings  # noqa: E402
from stocknews.core.database import Database  # noqa: E402
from stocknews.models.datatypes import QuoteSnapshot, RawArticle  # noqa: E402
from stocknews.pipeline.engine import NewsQueryPipeline  # noqa: E402
from stocknews.providers.base import NewsProvider  # noqa: E402
from stocknews.providers.sentiment import LexiconSentimentProvider  # noqa: E402

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class StubNewsProvider(NewsProvider):
    """Returns canned articles and records every call."""

    name = "stub"

    def __init__(self, articles: Optional[List[RawArticle]] = None, error: Optional[Exception] = None) -> None:
        self.articles = articles or []
        self.error = error
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def _record(self, *call) -> List[RawArticle]:
        with self._lock:
            self.calls.append(call)
        if self.error is not None:
            raise self.error
        return list(self.articles)

    def fetch_general_news(self, category):
        return self._record("general", category)

    def fetch_company_news(self, symbol, from_date, to_date):
        return self._record("company", symbol, from_date, to_date)

    def fetch_quote(self, symbol):
        self._record("quote", symbol)
        return QuoteSnapshot(
            symbol=symbol, current_price=101.5, high_price=103.0, low_price=99.0,
            open_price=100.0, previous_close=100.5, timestamp=1760875200,
        )


def make_raw(count: int, now: datetime = FIXED_NOW, headline: str = "Shares surge on strong profit growth") -> List[RawArticle]:
    return [
        RawArticle(
            headline=f"{headline} #{i}",
            source="Reuters",
            published_at=now - timedelta(hours=i),
            summary="",
            url=f"https://example.com/a/{i}",
            category="company",
        )
        for i in range(count)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(db_path=str(tmp_path / "stocknews.db"))


@pytest.fixture
def database(settings):
    return Database(settings.db_path)


@pytest.fixture
def cache_tier(database, clock):
    return CacheTier(
        memory=MemoryCache(max_entries=100, clock=clock),
        persistent=SQLiteCache(database, clock=clock),
    )


@pytest.fixture
def make_pipeline(settings, cache_tier, clock):
    def _make(provider: NewsProvider) -> NewsQueryPipeline:
        return NewsQueryPipeline(
            settings=settings,
            news_provider=provider,
            sentiment=LexiconSentimentProvider(),
            cache=cache_tier,
            clock=clock,
        )
    return _make
