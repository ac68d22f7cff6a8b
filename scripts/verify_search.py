"""
Manual verification — runs one search (and one quote) through the full
pipeline and prints the annotated page plus cache behaviour on a repeat call.

Run with:
    PYTHONPATH=. python scripts/verify_search.py AAPL
    PYTHONPATH=. python scripts/verify_search.py --category crypto
"""

import argparse
import logging
import time

from dotenv import load_dotenv

load_dotenv()

# Show INFO logs on console for verification
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%H:%M:%S",
)

from stocknews.core.cache import MemoryCache, SQLiteCache
from stocknews.core.cache_tier import CacheTier
from stocknews.core.config import Settings, load_config
from stocknews.core.database import Database
from stocknews.pipeline.engine import NewsQueryPipeline
from stocknews.providers.news import select_news_provider
from stocknews.providers.sentiment import select_sentiment_provider

DIVIDER = "=" * 70


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("query", nargs="?", help="ticker symbol, e.g. AAPL")
    parser.add_argument("--category", default=None)
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, default=10)
    args = parser.parse_args()

    settings = Settings.from_config(load_config())
    database = Database(settings.db_path)
    pipeline = NewsQueryPipeline(
        settings=settings,
        news_provider=select_news_provider(settings),
        sentiment=select_sentiment_provider(settings),
        cache=CacheTier(MemoryCache(settings.cache_max_entries), SQLiteCache(database)),
    )

    subject = args.query or args.category or "general"
    print(f"\n{DIVIDER}")
    print(f"  Search verification  |  {subject}  |  provider={pipeline.news_provider.name}")
    print(DIVIDER)

    started = time.perf_counter()
    result = pipeline.search(query=args.query, category=args.category, page=args.page, limit=args.limit)
    first_ms = (time.perf_counter() - started) * 1000

    for article in result.articles:
        disp = article.title[:52] + ".." if len(article.title) > 54 else article.title
        print(
            f"  [{article.impact:6}] [{article.sentiment:8} {article.sentiment_score:+.2f}]  "
            f"{disp}"
        )

    p = result.pagination
    print(f"\n  page={p.page} limit={p.limit} total={p.total} hasMore={p.has_more}")

    started = time.perf_counter()
    pipeline.search(query=args.query, category=args.category, page=args.page, limit=args.limit)
    second_ms = (time.perf_counter() - started) * 1000
    print(f"  first call {first_ms:.1f} ms, cached call {second_ms:.1f} ms")

    if args.query:
        quote = pipeline.get_quote(args.query)
        print(f"\n  QUOTE {quote.symbol}: {quote.current_price:.2f} "
              f"(open {quote.open_price:.2f}, prev close {quote.previous_close:.2f})")
    print()


if __name__ == "__main__":
    main()
