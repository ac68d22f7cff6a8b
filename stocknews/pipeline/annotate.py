"""Article annotation: sentiment label/score plus impact tier per raw article."""

from datetime import datetime
from typing import Iterable, Tuple

from stocknews.core.news_utils import hours_since
from stocknews.models.datatypes import Article, RawArticle
from stocknews.providers.base import SentimentProvider

HIGH_IMPACT_HOURS = 2
HIGH_IMPACT_MAGNITUDE = 0.3
MEDIUM_IMPACT_HOURS = 12
MEDIUM_IMPACT_MAGNITUDE = 0.1


def classify_impact(published_at: datetime, sentiment_score: float, now: datetime) -> str:
    """Return "high", "medium" or "low" from article age and sentiment magnitude.

    Examples:
        1h old, |score| 0.4   → "high"
        1h old, |score| 0.05  → "low"  (too weak)
        20h old, |score| 0.9  → "low"  (too old)
    """
    hours_ago = hours_since(published_at, now)
    magnitude = abs(sentiment_score or 0.0)

    if hours_ago < HIGH_IMPACT_HOURS and magnitude > HIGH_IMPACT_MAGNITUDE:
        return "high"
    if hours_ago < MEDIUM_IMPACT_HOURS and magnitude > MEDIUM_IMPACT_MAGNITUDE:
        return "medium"
    return "low"


def annotate_article(raw: RawArticle, sentiment: SentimentProvider, now: datetime) -> Article:
    """Score one raw article (headline + summary) and classify its impact."""
    description = raw.summary or raw.headline
    result = sentiment.analyze(f"{raw.headline} {raw.summary}".strip())
    return Article(
        title=raw.headline,
        source=raw.source,
        published_at=raw.published_at,
        description=description,
        url=raw.url,
        image=raw.image,
        category=raw.category,
        sentiment=result.label,
        sentiment_score=result.comparative,
        impact=classify_impact(raw.published_at, result.comparative, now),
    )


def annotate_articles(
    raw_articles: Iterable[RawArticle],
    sentiment: SentimentProvider,
    now: datetime,
) -> Tuple[Article, ...]:
    """Annotate articles in provider order."""
    return tuple(annotate_article(raw, sentiment, now) for raw in raw_articles)
