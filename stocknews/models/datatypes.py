"""Data structures for the news search service."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

SENTIMENT_LABELS = ("positive", "neutral", "negative")
IMPACT_TIERS = ("high", "medium", "low")


def to_iso(value: datetime) -> str:
    """Render a datetime as a UTC ISO 8601 string with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def from_iso(value: str) -> datetime:
    """Parse the output of :func:`to_iso` (or any ISO 8601 string) into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class RawArticle:
    """
    A news item as returned by a news provider, before annotation.
    """
    headline: str
    source: str
    published_at: datetime
    summary: str = ""
    url: str = ""
    image: str = ""
    category: str = ""


@dataclass(frozen=True)
class SentimentResult:
    """Output of a single sentiment scoring call.

    Attributes:
        score: Sum of lexicon weights (unbounded integer).
        comparative: ``score`` divided by token count, 0 for empty text.
        label: ``"positive"``, ``"neutral"`` or ``"negative"``.
    """
    score: int
    comparative: float
    label: str


@dataclass(frozen=True)
class Article:
    """
    An annotated article. Immutable; a re-fetch produces a new value.
    """
    title: str
    source: str
    published_at: datetime
    description: str
    url: str
    sentiment: str
    sentiment_score: float
    impact: str
    image: str = ""
    category: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "source": self.source,
            "publishedAt": to_iso(self.published_at),
            "description": self.description,
            "url": self.url,
            "image": self.image,
            "category": self.category,
            "sentiment": self.sentiment,
            "sentimentScore": self.sentiment_score,
            "impact": self.impact,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        return cls(
            title=data["title"],
            source=data["source"],
            published_at=from_iso(data["publishedAt"]),
            description=data.get("description", ""),
            url=data.get("url", ""),
            image=data.get("image") or "",
            category=data.get("category") or "",
            sentiment=data["sentiment"],
            sentiment_score=float(data["sentimentScore"]),
            impact=data["impact"],
        )


@dataclass(frozen=True)
class QuoteSnapshot:
    """Point-in-time price snapshot for a symbol."""
    symbol: str
    current_price: float
    high_price: float
    low_price: float
    open_price: float
    previous_close: float
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "currentPrice": self.current_price,
            "highPrice": self.high_price,
            "lowPrice": self.low_price,
            "openPrice": self.open_price,
            "previousClose": self.previous_close,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SearchParams:
    """
    Validated, normalised search request. Exactly one of ``symbol`` or
    ``category`` is set.
    """
    page: int
    limit: int
    symbol: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    has_more: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "hasMore": self.has_more,
        }


@dataclass(frozen=True)
class SearchResult:
    """One page of annotated articles plus pagination metadata."""
    articles: Tuple[Article, ...]
    pagination: Pagination

    def to_dict(self) -> Dict[str, Any]:
        return {
            "articles": [article.to_dict() for article in self.articles],
            "pagination": self.pagination.to_dict(),
        }


@dataclass(frozen=True)
class User:
    id: int
    username: str
    email: str
    created_at: str
    password_hash: str = field(default="", repr=False)


@dataclass(frozen=True)
class SavedSearch:
    id: int
    user_id: int
    query: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "query": self.query, "createdAt": self.created_at}


@dataclass(frozen=True)
class Bookmark:
    id: int
    user_id: int
    article_url: str
    article_title: str
    article_source: Optional[str]
    article_published_at: Optional[str]
    bookmarked_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "articleUrl": self.article_url,
            "articleTitle": self.article_title,
            "articleSource": self.article_source,
            "articlePublishedAt": self.article_published_at,
            "bookmarkedAt": self.bookmarked_at,
        }
