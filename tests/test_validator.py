"""
Tests for stocknews.pipeline.validator
"""
import pytest

from stocknews.core.config import Settings
from stocknews.core.errors import ValidationFailure
from stocknews.models.datatypes import SearchParams
from stocknews.pipeline.validator import validate_search, validate_symbol

SETTINGS = Settings()


def test_defaults_to_general_news_first_page():
    assert validate_search(SETTINGS) == SearchParams(page=1, limit=20, category="general")


def test_query_is_normalised_and_wins_over_category():
    params = validate_search(SETTINGS, query=" aapl ", category="crypto")
    assert params.symbol == "AAPL"
    assert params.category is None


def test_numeric_strings_are_accepted():
    params = validate_search(SETTINGS, category="forex", page="3", limit="50")
    assert (params.page, params.limit, params.category) == (3, 50, "forex")


@pytest.mark.parametrize("kwargs, message", [
    ({"limit": 51}, "limit must be <= 50"),
    ({"limit": 0}, "limit must be >= 1"),
    ({"page": 0}, "page must be >= 1"),
    ({"page": -2}, "page must be >= 1"),
    ({"page": "abc"}, "page must be an integer"),
    ({"limit": "1.5"}, "limit must be an integer"),
    ({"query": "   "}, "query must not be empty"),
    ({"query": "ABCDEFGHIJK"}, "at most 10 characters"),
    ({"category": "sports"}, "category must be one of"),
])
def test_invalid_parameters_are_rejected(kwargs, message):
    with pytest.raises(ValidationFailure, match=message):
        validate_search(SETTINGS, **kwargs)


def test_blank_page_and_limit_use_defaults():
    params = validate_search(SETTINGS, page="", limit=None)
    assert (params.page, params.limit) == (1, 20)


def test_custom_limits_from_settings():
    settings = Settings(default_limit=5, max_limit=10)
    assert validate_search(settings).limit == 5
    with pytest.raises(ValidationFailure):
        validate_search(settings, limit=11)


@pytest.mark.parametrize("raw, expected", [
    ("aapl", "AAPL"),
    (" brk.b ", "BRK.B"),
    ("RDS-A", "RDS-A"),
])
def test_validate_symbol(raw, expected):
    assert validate_symbol(raw, SETTINGS) == expected


@pytest.mark.parametrize("raw", [None, "", "  ", "AAPL MSFT", "TOOLONGSYMBOL", "A$PL"])
def test_validate_symbol_rejects(raw):
    with pytest.raises(ValidationFailure):
        validate_symbol(raw, SETTINGS)
