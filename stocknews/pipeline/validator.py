"""Request validator — turns raw search/quote parameters into normalised values.

Checks (all raise ValidationFailure before any I/O happens):
  1. ``query`` — optional; when given, 1..max_query_length characters after trim.
  2. ``category`` — one of the configured categories; defaults to "general".
  3. ``page`` — integer >= 1, default 1.
  4. ``limit`` — integer 1..max_limit, default from settings.

A query takes precedence over a category: company news is fetched and the
category is ignored.
"""

import re
from typing import Any, Optional

from stocknews.core.config import Settings
from stocknews.core.errors import ValidationFailure
from stocknews.core.news_utils import normalize_symbol
from stocknews.models.datatypes import SearchParams

_SYMBOL_RE = re.compile(r"^[A-Z0-9.\-]+$")


def _parse_int(name: str, raw: Any, default: int) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    if isinstance(raw, bool):
        raise ValidationFailure(f"{name} must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{name} must be an integer, got {raw!r}")


def validate_symbol(raw: Optional[str], settings: Settings) -> str:
    """Validate a ticker symbol and return it upper-cased."""
    if raw is None or not str(raw).strip():
        raise ValidationFailure("symbol is required")
    symbol = normalize_symbol(str(raw))
    if len(symbol) > settings.max_query_length:
        raise ValidationFailure(
            f"symbol must be at most {settings.max_query_length} characters"
        )
    if not _SYMBOL_RE.match(symbol):
        raise ValidationFailure(f"symbol contains invalid characters: {raw!r}")
    return symbol


def validate_search(
    settings: Settings,
    query: Optional[str] = None,
    category: Optional[str] = None,
    page: Any = None,
    limit: Any = None,
) -> SearchParams:
    """Validate a search request.

    Args:
        settings: Resolved settings (limits and allowed categories).
        query: Free-text ticker/company search term.
        category: General-news category.
        page: 1-based page number (int or numeric string).
        limit: Page size (int or numeric string).

    Returns:
        SearchParams with exactly one of ``symbol`` / ``category`` set.
    """
    page_num = _parse_int("page", page, 1)
    if page_num < 1:
        raise ValidationFailure("page must be >= 1")

    page_size = _parse_int("limit", limit, settings.default_limit)
    if page_size < 1:
        raise ValidationFailure("limit must be >= 1")
    if page_size > settings.max_limit:
        raise ValidationFailure(f"limit must be <= {settings.max_limit}")

    if query is not None:
        term = query.strip()
        if not term:
            raise ValidationFailure("query must not be empty")
        if len(term) > settings.max_query_length:
            raise ValidationFailure(
                f"query must be at most {settings.max_query_length} characters"
            )
        return SearchParams(page=page_num, limit=page_size, symbol=normalize_symbol(term))

    chosen = (category or "general").strip().lower()
    if chosen not in settings.categories:
        raise ValidationFailure(
            f"category must be one of: {', '.join(settings.categories)}"
        )
    return SearchParams(page=page_num, limit=page_size, category=chosen)
