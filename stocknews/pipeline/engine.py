"""News query pipeline — one search request in, one annotated page out.

Flow per request (strictly sequential):
  1. CacheCheck — CacheTier.lookup(key); hit → Paginate
  2. Fetch      — company news (trailing window) for a symbol, else general news
  3. Annotate   — sentiment then impact, per article, provider order kept
  4. Persist    — CacheTier.store(key, articles, ttl), empty results included
  5. Paginate   — slice (page-1)*limit .. page*limit, hasMore = page*limit < total

Validation failures are raised before step 1. Provider failures propagate as
ProviderFailure with no partial result; cache failures never surface.
"""

from datetime import timedelta
from typing import Any, Optional, Sequence

from stocknews.core.cache import MemoryCache
from stocknews.core.cache_tier import CacheTier
from stocknews.core.config import Settings
from stocknews.core.logger import log_duration, logger
from stocknews.core.news_utils import Clock, make_cache_key, make_quote_key, utc_now
from stocknews.models.datatypes import (
    Article, Pagination, QuoteSnapshot, SearchParams, SearchResult,
)
from stocknews.pipeline.annotate import annotate_articles
from stocknews.pipeline.validator import validate_search, validate_symbol
from stocknews.providers.base import NewsProvider, SentimentProvider


class NewsQueryPipeline:
    """Single entry point for searches and quotes.

    Args:
        settings: Resolved settings (TTLs, limits, lookback window).
        news_provider: Live or offline news provider.
        sentiment: Sentiment scorer applied to every fetched article.
        cache: Two-tier news cache shared by all requests.
        clock: Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        settings: Settings,
        news_provider: NewsProvider,
        sentiment: SentimentProvider,
        cache: CacheTier,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings
        self.news_provider = news_provider
        self.sentiment = sentiment
        self.cache = cache
        self._clock = clock
        self.quote_cache = MemoryCache(max_entries=settings.cache_max_entries, clock=clock)

    # ── public ────────────────────────────────────────────────────────────────

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
    ) -> SearchResult:
        """Validate the request and return one page of annotated articles.

        Raises:
            ValidationFailure: Bad parameters (before any I/O).
            ProviderFailure: The news provider errored or timed out.
        """
        params = validate_search(self.settings, query=query, category=category, page=page, limit=limit)
        return self.run(params)

    def run(self, params: SearchParams) -> SearchResult:
        """Execute the pipeline for already-validated parameters."""
        key = make_cache_key(params.page, params.limit, symbol=params.symbol, category=params.category)

        articles = self.cache.lookup(key)
        if articles is None:
            articles = self._fetch_and_annotate(params)
            self.cache.store(key, articles, self.settings.cache_ttl_seconds)

        return paginate(articles, params.page, params.limit)

    def get_quote(self, symbol: Optional[str]) -> QuoteSnapshot:
        """Return a quote snapshot, served from a short-lived memory cache when possible."""
        symbol = validate_symbol(symbol, self.settings)
        key = make_quote_key(symbol)

        quote = self.quote_cache.get(key)
        if quote is None:
            quote = self.news_provider.fetch_quote(symbol)
            self.quote_cache.set(key, quote, self.settings.quote_ttl_seconds)
        return quote

    # ── internal ──────────────────────────────────────────────────────────────

    def _fetch_and_annotate(self, params: SearchParams) -> Sequence[Article]:
        now = self._clock()
        if params.symbol:
            to_date = now.date()
            from_date = to_date - timedelta(days=self.settings.company_lookback_days)
            with log_duration(f"Fetch company news {params.symbol} via {self.news_provider.name}"):
                raw = self.news_provider.fetch_company_news(params.symbol, from_date, to_date)
            subject = params.symbol
        else:
            with log_duration(f"Fetch {params.category} news via {self.news_provider.name}"):
                raw = self.news_provider.fetch_general_news(params.category)
            subject = params.category

        articles = annotate_articles(raw, self.sentiment, now)
        logger.info(
            f"NewsQueryPipeline: annotated {len(articles)} articles for {subject} "
            f"via {self.news_provider.name}"
        )
        return articles


def paginate(articles: Sequence[Article], page: int, limit: int) -> SearchResult:
    """Slice one page out of the full result set."""
    start = (page - 1) * limit
    total = len(articles)
    return SearchResult(
        articles=tuple(articles[start:start + limit]),
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            has_more=page * limit < total,
        ),
    )
