"""Utility helpers for the news service: clock, timestamps and cache keys."""

from datetime import datetime, timezone
from typing import Callable, Optional

# SQLite stores timestamps as UTC text in this format so that string
# comparison matches chronological order.
SQLITE_TS_FMT = "%Y-%m-%d %H:%M:%S.%f"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_sqlite_ts(value: datetime) -> str:
    """Format an aware datetime for storage in a SQLite TEXT column."""
    return value.astimezone(timezone.utc).strftime(SQLITE_TS_FMT)


def from_sqlite_ts(value: str) -> datetime:
    """Parse a timestamp written by :func:`to_sqlite_ts`."""
    return datetime.strptime(value, SQLITE_TS_FMT).replace(tzinfo=timezone.utc)


def epoch_to_datetime(epoch_seconds: Optional[float]) -> datetime:
    """Convert provider epoch seconds to an aware UTC datetime (``None`` → epoch 0)."""
    return datetime.fromtimestamp(float(epoch_seconds or 0), tz=timezone.utc)


def hours_since(moment: datetime, now: datetime) -> float:
    """Return how many hours ``moment`` lies before ``now`` (negative if in the future)."""
    return (now - moment).total_seconds() / 3600.0


def normalize_symbol(symbol: str) -> str:
    """Trim and upper-case a ticker symbol (e.g. ``" aapl "`` → ``"AAPL"``)."""
    return symbol.strip().upper()


def make_cache_key(
    page: int,
    limit: int,
    symbol: Optional[str] = None,
    category: Optional[str] = None,
) -> str:
    """Derive the news cache key from the effective query parameters.

    Symbol and category searches live in separate namespaces so that a ticker
    named like a category never shares an entry with it.

    Examples:
        ``make_cache_key(1, 20, symbol="AAPL")`` → ``"news:symbol:AAPL:1:20"``
        ``make_cache_key(2, 10, category="crypto")`` → ``"news:category:crypto:2:10"``
    """
    if symbol:
        return f"news:symbol:{symbol}:{page}:{limit}"
    return f"news:category:{category}:{page}:{limit}"


def make_quote_key(symbol: str) -> str:
    return f"stock:{symbol}"
