"""Configuration module for loading project settings and environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from stocknews.core.errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

_PLACEHOLDER_KEYS = {"", "your_finnhub_api_key_here"}
DEFAULT_CATEGORIES = ("general", "forex", "crypto", "merger")


def load_config(config_path: str | Path | None = None) -> Dict[str, Any]:
    """
    Load configuration from the specified YAML file.

    Args:
        config_path (str | Path | None): Path to the configuration file. Defaults to
            ``$CONFIG_PATH`` or "config.yaml".

    Returns:
        Dict[str, Any]: A dictionary containing the configuration settings.
    """
    config_file = Path(config_path or os.getenv("CONFIG_PATH", "config.yaml"))
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found at {config_file}")

    with open(config_file, "r", encoding="utf-8") as file:
        config_data = yaml.safe_load(file)

    if not config_data:
        raise ValueError(f"Configuration file {config_file} is empty or invalid.")

    return config_data


def _env_int(name: str, default: int) -> int:
    """Get an optional integer environment variable with a default."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")


def _positive(name: str, value: int) -> int:
    """Reject zero or negative sizes, windows and limits."""
    if value < 1:
        raise ConfigurationError(f"{name} must be >= 1, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings: config.yaml values with environment overrides applied."""

    host: str = "0.0.0.0"
    port: int = 3000
    db_path: str = "data/stocknews.db"
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 1000
    purge_interval_seconds: int = 300
    quote_ttl_seconds: int = 60
    default_limit: int = 20
    max_limit: int = 50
    company_lookback_days: int = 7
    max_query_length: int = 10
    categories: Tuple[str, ...] = DEFAULT_CATEGORIES
    request_timeout_seconds: float = 10.0
    sentiment_provider: str = "lexicon"
    sentiment_model: str = "deepseek/deepseek-chat"
    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = 900
    rate_limit_max_requests: int = 100
    api_rate_limit_window_seconds: int = 60
    api_rate_limit_max_requests: int = 30
    finnhub_api_key: Optional[str] = field(default=None, repr=False)
    openrouter_api_key: Optional[str] = field(default=None, repr=False)
    jwt_secret: Optional[str] = field(default=None, repr=False)

    @property
    def offline(self) -> bool:
        """True when no usable Finnhub credential is configured."""
        return (self.finnhub_api_key or "").strip() in _PLACEHOLDER_KEYS

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Settings":
        """
        Build settings from a parsed config.yaml dict.

        Environment variables win over file values: ``FINNHUB_API_KEY``,
        ``OPENROUTER_API_KEY`` (or ``DEEPSEEK_API_KEY``), ``CACHE_TTL_SECONDS``,
        ``DB_PATH``, ``PORT``, ``JWT_SECRET``, ``RATE_LIMIT_MAX_REQUESTS`` and
        ``RATE_LIMIT_WINDOW_MS`` (milliseconds).

        Args:
            config (Dict[str, Any]): Output of :func:`load_config`.

        Returns:
            Settings: The resolved settings.
        """
        server = config.get("server", {}) or {}
        database = config.get("database", {}) or {}
        cache = config.get("cache", {}) or {}
        news = config.get("news", {}) or {}
        sentiment = config.get("sentiment", {}) or {}
        rate_limit = config.get("rate_limit", {}) or {}

        provider = str(sentiment.get("provider", "lexicon")).lower()
        if provider not in ("lexicon", "openrouter"):
            raise ConfigurationError(f"Unknown sentiment provider: {provider}")

        window_ms = _env_int("RATE_LIMIT_WINDOW_MS", 0)
        window_seconds = window_ms // 1000 if window_ms else int(rate_limit.get("window_seconds", 900))

        return cls(
            host=server.get("host", "0.0.0.0"),
            port=_env_int("PORT", int(server.get("port", 3000))),
            db_path=os.getenv("DB_PATH") or database.get("path", "data/stocknews.db"),
            cache_ttl_seconds=_env_int("CACHE_TTL_SECONDS", int(cache.get("ttl_seconds", 300))),
            cache_max_entries=_positive("cache.max_entries", int(cache.get("max_entries", 1000))),
            purge_interval_seconds=_positive(
                "cache.purge_interval_seconds", int(cache.get("purge_interval_seconds", 300))
            ),
            quote_ttl_seconds=int(cache.get("quote_ttl_seconds", 60)),
            default_limit=int(news.get("default_limit", 20)),
            max_limit=int(news.get("max_limit", 50)),
            company_lookback_days=int(news.get("company_lookback_days", 7)),
            max_query_length=int(news.get("max_query_length", 10)),
            categories=tuple(news.get("categories") or DEFAULT_CATEGORIES),
            request_timeout_seconds=float(news.get("request_timeout_seconds", 10)),
            sentiment_provider=provider,
            sentiment_model=sentiment.get("model", "deepseek/deepseek-chat"),
            rate_limit_enabled=bool(rate_limit.get("enabled", True)),
            rate_limit_window_seconds=_positive("rate_limit.window_seconds", window_seconds),
            rate_limit_max_requests=_positive(
                "rate_limit.max_requests",
                _env_int("RATE_LIMIT_MAX_REQUESTS", int(rate_limit.get("max_requests", 100))),
            ),
            api_rate_limit_window_seconds=_positive(
                "rate_limit.api_window_seconds", int(rate_limit.get("api_window_seconds", 60))
            ),
            api_rate_limit_max_requests=_positive(
                "rate_limit.api_max_requests", int(rate_limit.get("api_max_requests", 30))
            ),
            finnhub_api_key=os.getenv("FINNHUB_API_KEY"),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or os.getenv("DEEPSEEK_API_KEY"),
            jwt_secret=os.getenv("JWT_SECRET") or None,
        )
