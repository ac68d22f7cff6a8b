"""
Tests for stocknews.providers.sentiment
"""
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from stocknews.core.config import Settings
from stocknews.models.datatypes import SENTIMENT_LABELS, SentimentResult
from stocknews.providers.sentiment import (
    LexiconSentimentProvider,
    OpenRouterSentimentProvider,
    analyze_sentiment,
    classify_sentiment,
    select_sentiment_provider,
    tokenize,
)


# ── analyze_sentiment ─────────────────────────────────────────────────────────

def test_empty_string_is_exactly_neutral_zero():
    assert analyze_sentiment("") == SentimentResult(score=0, comparative=0, label="neutral")


def test_none_is_neutral_zero():
    result = analyze_sentiment(None)
    assert result.score == 0
    assert result.comparative == 0
    assert result.label == "neutral"


def test_bullish_headline_is_positive():
    # surge 3 + strong 2 + profit 2 + growth 2 over 6 tokens
    result = analyze_sentiment("Shares surge on strong profit growth")
    assert result.score == 9
    assert result.comparative == pytest.approx(1.5)
    assert result.label == "positive"


def test_bearish_headline_is_negative():
    result = analyze_sentiment("Stock plunges as company reports massive losses and layoffs")
    assert result.score == -8
    assert result.comparative == pytest.approx(-8 / 9)
    assert result.label == "negative"


def test_routine_news_is_neutral():
    result = analyze_sentiment("Company holds quarterly meeting to discuss regular operations")
    assert result.score == 0
    assert result.label == "neutral"


def test_one_positive_word_in_long_passage_stays_neutral():
    text = (
        "The company said on Tuesday that its board will meet next month "
        "to review the annual plan and good governance matters"
    )
    result = analyze_sentiment(text)
    assert result.score == 3
    assert result.comparative == pytest.approx(3 / 21)
    assert result.label == "neutral"


def test_matching_is_case_insensitive():
    assert analyze_sentiment("SURGE").score == analyze_sentiment("surge").score == 3


def test_symbols_and_emoji_are_ignored():
    result = analyze_sentiment("Stock up 10%! 📈🚀 Great news!!!")
    assert tokenize("Stock up 10%! 📈🚀 Great news!!!") == ["stock", "up", "great", "news"]
    assert result.score == 3
    assert result.label == "positive"


def test_non_latin_text_scores_zero_without_error():
    result = analyze_sentiment("株価が急騰 Ölpreis steigt")
    assert result.score == 0
    assert result.label == "neutral"


def test_text_without_letters_is_neutral_zero():
    assert analyze_sentiment("%%% $$$ 123 ...") == SentimentResult(0, 0.0, "neutral")


@pytest.mark.parametrize("text", [
    "", " ", "a", "!!!", "loss loss loss", "great great", "Ölpreis", "\n\t", "x" * 5000,
])
def test_label_is_always_valid(text):
    assert analyze_sentiment(text).label in SENTIMENT_LABELS


def test_hundred_articles_score_quickly():
    article = (
        "Shares of the company rallied after earnings beat expectations, although "
        "analysts warned of risks from weaker demand and rising debt. " * 8
    )
    started = time.perf_counter()
    for _ in range(100):
        analyze_sentiment(article)
    assert time.perf_counter() - started < 1.0


# ── classify_sentiment ────────────────────────────────────────────────────────

@pytest.mark.parametrize("comparative, expected", [
    (0.6, "positive"),
    (-0.6, "negative"),
    (0.4, "neutral"),
    (-0.4, "neutral"),
    (0.5, "neutral"),
    (-0.5, "neutral"),
    (0.0, "neutral"),
    (5.0, "positive"),
    (-5.0, "negative"),
])
def test_classify_thresholds_are_exclusive(comparative, expected):
    assert classify_sentiment(comparative) == expected


def test_lexicon_provider_matches_function():
    provider = LexiconSentimentProvider()
    text = "Tesla shares plummet following disappointing delivery numbers"
    assert provider.analyze(text) == analyze_sentiment(text)


def test_lexicon_provider_accepts_custom_lexicon():
    provider = LexiconSentimentProvider({"moon": 5})
    assert provider.analyze("moon").label == "positive"


# ── OpenRouterSentimentProvider ───────────────────────────────────────────────

def _model_reply(content: str) -> MagicMock:
    resp = MagicMock()
    resp.raise_for_status = MagicMock()
    resp.json.return_value = {"choices": [{"message": {"content": content}}]}
    return resp


def test_openrouter_parses_model_reply():
    reply = 'Sure: {"label": "Positive", "score": 0.8, "reasoning": "beat estimates"}'
    with patch("stocknews.providers.sentiment.requests.post", return_value=_model_reply(reply)) as post:
        result = OpenRouterSentimentProvider(api_key="k").analyze("Apple beats estimates")

    assert result == SentimentResult(score=80, comparative=0.8, label="positive")
    headers = post.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer k"
    assert post.call_args.kwargs["timeout"] == 10.0


def test_openrouter_falls_back_to_lexicon_on_timeout():
    text = "Market crash: Dow plunges 800 points on recession fears"
    with patch("stocknews.providers.sentiment.requests.post", side_effect=requests.Timeout("slow")):
        result = OpenRouterSentimentProvider(api_key="k").analyze(text)
    assert result == analyze_sentiment(text)


@pytest.mark.parametrize("reply", [
    "not json at all",
    '{"label": "bullish", "score": 0.9}',
    '{"score": 0.9}',
])
def test_openrouter_falls_back_on_unusable_reply(reply):
    text = "Shares surge on strong profit growth"
    with patch("stocknews.providers.sentiment.requests.post", return_value=_model_reply(reply)):
        result = OpenRouterSentimentProvider(api_key="k").analyze(text)
    assert result == analyze_sentiment(text)


def test_openrouter_empty_text_skips_network():
    with patch("stocknews.providers.sentiment.requests.post") as post:
        result = OpenRouterSentimentProvider(api_key="k").analyze("")
    post.assert_not_called()
    assert result.label == "neutral"


def test_select_provider_defaults_to_lexicon():
    assert isinstance(select_sentiment_provider(Settings()), LexiconSentimentProvider)


def test_select_openrouter_without_key_uses_lexicon():
    settings = Settings(sentiment_provider="openrouter", openrouter_api_key=None)
    assert isinstance(select_sentiment_provider(settings), LexiconSentimentProvider)


def test_select_openrouter_with_key():
    settings = Settings(sentiment_provider="openrouter", openrouter_api_key="k")
    assert isinstance(select_sentiment_provider(settings), OpenRouterSentimentProvider)
