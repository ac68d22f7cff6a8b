"""News and quote providers.

Two implementations of :class:`NewsProvider`:
  1. FinnhubProvider      — live REST calls, bounded by a request timeout.
  2. OfflineNewsProvider  — deterministic mock data for demo/offline runs.

``select_news_provider`` picks one from settings: no usable Finnhub key means
offline mode. The pipeline never needs to know which one it was handed.
"""

import random
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import requests

from stocknews.core.config import Settings
from stocknews.core.errors import ProviderFailure
from stocknews.core.logger import logger
from stocknews.core.news_utils import Clock, epoch_to_datetime, utc_now
from stocknews.models.datatypes import QuoteSnapshot, RawArticle
from stocknews.providers.base import NewsProvider

_FINNHUB_BASE_URL = "https://finnhub.io/api/v1"


# ── FinnhubProvider ───────────────────────────────────────────────────────────

class FinnhubProvider(NewsProvider):
    """Finnhub.io REST provider (``/news``, ``/company-news``, ``/quote``).

    Every call is a single attempt: errors and timeouts surface immediately as
    :class:`ProviderFailure`, there is no retry loop.
    """

    name = "finnhub"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        base_url: str = _FINNHUB_BASE_URL,
    ) -> None:
        """Args:
            api_key: Finnhub API token, sent as ``X-Finnhub-Token``.
            timeout: Per-request timeout in seconds.
            base_url: API root (overridable for tests).
        """
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    def fetch_general_news(self, category: str) -> List[RawArticle]:
        logger.info(f"FinnhubProvider: fetching general news (category={category})")
        data = self._call_api("/news", {"category": category})
        return self._parse_articles(data, f"category={category}")

    def fetch_company_news(self, symbol: str, from_date: date, to_date: date) -> List[RawArticle]:
        logger.info(f"FinnhubProvider: fetching company news for {symbol} ({from_date} → {to_date})")
        data = self._call_api(
            "/company-news",
            {
                "symbol": symbol.upper(),
                "from": from_date.isoformat(),
                "to": to_date.isoformat(),
            },
        )
        return self._parse_articles(data, f"symbol={symbol}")

    def fetch_quote(self, symbol: str) -> QuoteSnapshot:
        logger.info(f"FinnhubProvider: fetching quote for {symbol}")
        data = self._call_api("/quote", {"symbol": symbol.upper()})
        if not isinstance(data, dict):
            raise ProviderFailure(f"Unexpected quote payload for {symbol}")
        # Finnhub answers unknown symbols with an all-zero quote.
        if not data.get("c") and not data.get("t"):
            raise ProviderFailure(f"No quote data available for {symbol}")
        try:
            return QuoteSnapshot(
                symbol=symbol.upper(),
                current_price=float(data["c"]),
                high_price=float(data.get("h") or 0.0),
                low_price=float(data.get("l") or 0.0),
                open_price=float(data.get("o") or 0.0),
                previous_close=float(data.get("pc") or 0.0),
                timestamp=int(data.get("t") or 0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderFailure(f"Malformed quote payload for {symbol}: {exc}") from exc

    # ── internal ──────────────────────────────────────────────────────────────

    def _call_api(self, path: str, params: Dict[str, Any]) -> Any:
        """GET ``path`` and return decoded JSON, or raise ProviderFailure."""
        url = f"{self.base_url}{path}"
        try:
            resp = requests.get(
                url,
                params=params,
                headers={"X-Finnhub-Token": self.api_key},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.error(f"FinnhubProvider: timeout after {self.timeout}s on {path}: {exc}")
            raise ProviderFailure(f"News provider timed out on {path}") from exc
        except requests.RequestException as exc:
            logger.error(f"FinnhubProvider: request failed on {path}: {exc}")
            raise ProviderFailure(f"News provider request failed on {path}") from exc

        if resp.status_code != 200:
            logger.error(
                f"FinnhubProvider: HTTP {resp.status_code} on {path}: {resp.text[:200]}"
            )
            raise ProviderFailure(f"News provider returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            logger.error(f"FinnhubProvider: invalid JSON on {path}: {exc}")
            raise ProviderFailure(f"News provider returned invalid JSON on {path}") from exc

    @staticmethod
    def _parse_articles(data: Any, context: str) -> List[RawArticle]:
        if not isinstance(data, list):
            raise ProviderFailure(f"Unexpected news payload ({context})")

        articles = []
        for item in data:
            if not isinstance(item, dict):
                continue
            headline = (item.get("headline") or "").strip()
            if not headline:
                logger.debug(f"FinnhubProvider: skipped item without headline ({context})")
                continue
            try:
                published_at = epoch_to_datetime(item.get("datetime"))
            except (TypeError, ValueError, OverflowError, OSError) as exc:
                logger.warning(
                    f"FinnhubProvider: skipped '{headline[:60]}' with bad datetime "
                    f"{item.get('datetime')!r} ({context}): {exc}"
                )
                continue
            articles.append(RawArticle(
                headline=headline,
                source=item.get("source") or "Finnhub",
                published_at=published_at,
                summary=item.get("summary") or "",
                url=item.get("url") or "",
                image=item.get("image") or "",
                category=item.get("category") or "",
            ))

        logger.info(f"FinnhubProvider: {len(articles)} articles ({context})")
        return articles


# ── OfflineNewsProvider ───────────────────────────────────────────────────────

_MOCK_SOURCES = ["Financial Times", "Bloomberg", "Reuters", "CNBC", "Wall Street Journal"]
_MOCK_MOVES = ["Surges", "Drops", "Holds Steady", "Rises", "Falls"]
_MOCK_COUNT = 15


class OfflineNewsProvider(NewsProvider):
    """Mock provider used when no Finnhub credential is configured.

    Output is seeded by the search term, so the same request always yields the
    same articles; publish times trail the clock by one hour per article.
    """

    name = "offline"

    def __init__(self, clock: Clock = utc_now, count: int = _MOCK_COUNT) -> None:
        self._clock = clock
        self.count = count

    def fetch_general_news(self, category: str) -> List[RawArticle]:
        subject = "Market" if category == "general" else category.capitalize()
        return self._mock_articles(subject, category)

    def fetch_company_news(self, symbol: str, from_date: date, to_date: date) -> List[RawArticle]:
        return self._mock_articles(symbol.upper(), "company")

    def fetch_quote(self, symbol: str) -> QuoteSnapshot:
        rng = random.Random(f"quote:{symbol.upper()}")
        base = round(100 + rng.random() * 400, 2)
        return QuoteSnapshot(
            symbol=symbol.upper(),
            current_price=base,
            high_price=round(base * 1.05, 2),
            low_price=round(base * 0.95, 2),
            open_price=round(base * 0.98, 2),
            previous_close=round(base * 0.97, 2),
            timestamp=int(self._clock().timestamp()),
        )

    def _mock_articles(self, subject: str, category: str) -> List[RawArticle]:
        rng = random.Random(f"news:{subject}")
        now: datetime = self._clock().replace(microsecond=0)
        slug = subject.lower().replace(" ", "-")
        articles = []
        for i in range(self.count):
            move = _MOCK_MOVES[i % len(_MOCK_MOVES)]
            articles.append(RawArticle(
                headline=f"{subject} {move} {rng.randint(1, 19)}% on Market News",
                source=_MOCK_SOURCES[i % len(_MOCK_SOURCES)],
                published_at=now - timedelta(hours=i),
                summary=(
                    f"{subject} experienced significant movement in today's trading "
                    f"session following recent developments in the market."
                ),
                url=f"https://example.com/news/{slug}/{i}",
                category=category,
            ))
        logger.info(f"OfflineNewsProvider: generated {len(articles)} mock articles for {subject}")
        return articles


def select_news_provider(settings: Settings, clock: Optional[Clock] = None) -> NewsProvider:
    """Return the live Finnhub provider, or the offline one when no key is configured."""
    if settings.offline:
        logger.warning("FINNHUB_API_KEY not set — serving offline mock news")
        return OfflineNewsProvider(clock=clock or utc_now)
    return FinnhubProvider(
        api_key=settings.finnhub_api_key,
        timeout=settings.request_timeout_seconds,
    )
