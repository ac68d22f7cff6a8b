"""Financial sentiment scoring.

Pipeline:
    text (str) → tokenize → sum lexicon weights → SentimentResult

Scoring:
    score       = sum of per-token weights (unmatched tokens weigh 0)
    comparative = score / token count (0 when there are no tokens)
    label       = "positive" if comparative >  0.5
                  "negative" if comparative < -0.5
                  "neutral"  otherwise

Normalising by length biases long passages toward "neutral": one strong word
in a short headline crosses the threshold, the same word in a paragraph does not.

``OpenRouterSentimentProvider`` is an optional model-backed scorer that asks a
chat model for a label; it falls back to the lexicon on any failure.
"""

import json
import re
from typing import Dict, List, Optional

import requests

from stocknews.core.config import Settings
from stocknews.core.logger import logger
from stocknews.models.datatypes import SENTIMENT_LABELS, SentimentResult
from stocknews.providers.base import SentimentProvider

POSITIVE_THRESHOLD = 0.5
NEGATIVE_THRESHOLD = -0.5

_TOKEN_RE = re.compile(r"[^\W\d_]+", re.UNICODE)

# Weights follow the AFINN convention (-5 … +5), restricted to market vocabulary.
FINANCIAL_LEXICON: Dict[str, int] = {
    # bullish
    "soar": 3, "soars": 3, "soared": 3, "soaring": 3,
    "surge": 3, "surges": 3, "surged": 3, "surging": 3,
    "rally": 3, "rallies": 3, "rallied": 3,
    "jump": 2, "jumps": 2, "jumped": 2,
    "gain": 2, "gains": 2, "gained": 2,
    "climb": 2, "climbs": 2, "climbed": 2,
    "rise": 1, "rises": 1, "rose": 1, "rising": 1,
    "beat": 2, "beats": 2,
    "exceed": 2, "exceeds": 2, "exceeded": 2,
    "profit": 2, "profits": 2, "profitable": 2,
    "growth": 2, "grow": 1, "grows": 1,
    "strong": 2, "stronger": 2, "strength": 2, "robust": 2,
    "bullish": 3, "upbeat": 2, "optimism": 2, "optimistic": 2,
    "upgrade": 3, "upgrades": 3, "upgraded": 3,
    "outperform": 3, "outperforms": 3,
    "boost": 2, "boosts": 2, "boosted": 2,
    "breakthrough": 3, "innovative": 2, "revolutionize": 2,
    "success": 3, "successful": 3, "win": 3, "wins": 3,
    "recovery": 2, "recover": 2, "recovers": 2,
    "rebound": 2, "rebounds": 2,
    "approve": 2, "approved": 2, "approval": 2,
    "hope": 2, "hopes": 2, "confident": 2, "confidence": 2,
    "positive": 2, "good": 3, "great": 3, "excellent": 3, "best": 3,
    # bearish
    "plunge": -3, "plunges": -3, "plunged": -3,
    "plummet": -3, "plummets": -3, "plummeted": -3,
    "crash": -3, "crashes": -3, "crashed": -3,
    "slump": -3, "slumps": -3, "tumble": -3, "tumbles": -3, "tumbled": -3,
    "selloff": -3,
    "drop": -2, "drops": -2, "dropped": -2,
    "fall": -2, "falls": -2, "fell": -2,
    "decline": -2, "declines": -2, "declined": -2,
    "sink": -2, "sinks": -2, "sank": -2,
    "loss": -3, "losses": -3, "lose": -2, "loses": -2, "lost": -2,
    "miss": -2, "misses": -2, "missed": -2,
    "weak": -2, "weaker": -2, "weakness": -2,
    "bearish": -3,
    "downgrade": -3, "downgrades": -3, "downgraded": -3,
    "layoff": -2, "layoffs": -2,
    "lawsuit": -2, "investigation": -2, "penalty": -2, "scandal": -3,
    "fraud": -4, "bankrupt": -4, "bankruptcy": -4,
    "recession": -3, "crisis": -3,
    "fear": -2, "fears": -2, "concern": -2, "concerns": -2,
    "warning": -2, "warns": -2,
    "disappointing": -2, "disappointed": -2,
    "struggle": -2, "struggles": -2, "challenges": -1,
    "risk": -1, "risks": -1, "uncertainty": -1, "volatile": -1, "volatility": -1,
    "cut": -1, "cuts": -1, "debt": -1, "decrease": -1,
    "negative": -2, "bad": -3, "worse": -3, "worst": -3,
}

_NEUTRAL = SentimentResult(score=0, comparative=0.0, label="neutral")


def tokenize(text: str) -> List[str]:
    """Lower-case ``text`` and split it on anything that is not a letter."""
    return _TOKEN_RE.findall(text.lower())


def classify_sentiment(comparative: float) -> str:
    """Map a comparative score to a label; both thresholds are exclusive."""
    if comparative > POSITIVE_THRESHOLD:
        return "positive"
    if comparative < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


def analyze_sentiment(text: Optional[str], lexicon: Dict[str, int] = FINANCIAL_LEXICON) -> SentimentResult:
    """Score ``text`` against ``lexicon``. Empty or None input yields a neutral zero result."""
    if not text:
        return _NEUTRAL
    tokens = tokenize(str(text))
    if not tokens:
        return _NEUTRAL
    score = sum(lexicon.get(token, 0) for token in tokens)
    comparative = score / len(tokens)
    return SentimentResult(score=score, comparative=comparative, label=classify_sentiment(comparative))


class LexiconSentimentProvider(SentimentProvider):
    """Keyword-polarity scorer over :data:`FINANCIAL_LEXICON`."""

    def __init__(self, lexicon: Optional[Dict[str, int]] = None) -> None:
        self.lexicon = lexicon or FINANCIAL_LEXICON

    def analyze(self, text: Optional[str]) -> SentimentResult:
        return analyze_sentiment(text, self.lexicon)


# ── OpenRouterSentimentProvider ───────────────────────────────────────────────

_OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
_SYSTEM_PROMPT = (
    "You are a financial sentiment analyzer. Analyze the sentiment of news headlines "
    "and summaries. Respond with ONLY a JSON object in this exact format: "
    '{"label": "positive|neutral|negative", "score": <number between -1 and 1>, '
    '"reasoning": "<brief explanation>"}. Do not include any other text.'
)
_JSON_OBJECT_RE = re.compile(r"\{[^}]+\}")


class OpenRouterSentimentProvider(SentimentProvider):
    """Chat-model sentiment via the OpenRouter completions API.

    The model's ``score`` in [-1, 1] becomes ``comparative``; ``score`` is the
    same value scaled to an integer in [-100, 100]. Any network error, timeout
    or unusable reply falls back to the lexicon scorer.

    Args:
        api_key: OpenRouter (or DeepSeek) API key.
        model: OpenRouter model identifier.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "deepseek/deepseek-chat",
        timeout: float = 10.0,
        fallback: Optional[SentimentProvider] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.fallback = fallback or LexiconSentimentProvider()

    def analyze(self, text: Optional[str]) -> SentimentResult:
        if not text:
            return _NEUTRAL
        try:
            return self._ask_model(text)
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning(f"OpenRouterSentimentProvider: falling back to lexicon: {exc}")
            return self.fallback.analyze(text)

    def _ask_model(self, text: str) -> SentimentResult:
        resp = requests.post(
            _OPENROUTER_URL,
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Analyze the sentiment of this stock market news:\n\n{text}\n\nRespond with JSON only.",
                    },
                ],
                "temperature": 0.3,
                "max_tokens": 150,
            },
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        content = resp.json()["choices"][0]["message"]["content"].strip()

        match = _JSON_OBJECT_RE.search(content)
        reply = json.loads(match.group(0) if match else content)

        label = str(reply["label"]).lower()
        if label not in SENTIMENT_LABELS:
            raise ValueError(f"unknown label {label!r}")
        comparative = max(-1.0, min(1.0, float(reply.get("score") or 0.0)))
        logger.debug(f"OpenRouterSentimentProvider: [{label} / {comparative:+.3f}] {text[:60]!r}")
        return SentimentResult(score=round(comparative * 100), comparative=comparative, label=label)


def select_sentiment_provider(settings: Settings) -> SentimentProvider:
    """Return the configured sentiment provider (lexicon unless openrouter is set up)."""
    if settings.sentiment_provider == "openrouter":
        if settings.openrouter_api_key:
            return OpenRouterSentimentProvider(
                api_key=settings.openrouter_api_key,
                model=settings.sentiment_model,
                timeout=settings.request_timeout_seconds,
            )
        logger.warning("sentiment.provider=openrouter but no API key set — using lexicon")
    return LexiconSentimentProvider()
