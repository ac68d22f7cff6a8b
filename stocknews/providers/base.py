"""Abstract base classes for data providers."""

from abc import ABC, abstractmethod
from datetime import date
from typing import List

from stocknews.models.datatypes import QuoteSnapshot, RawArticle, SentimentResult


class NewsProvider(ABC):
    """Abstract interface for fetching market news and quotes."""

    name: str = "abstract"

    @abstractmethod
    def fetch_general_news(self, category: str) -> List[RawArticle]:
        """
        Fetch general market news for a category.

        Args:
            category (str): One of the configured categories (e.g. "general").

        Returns:
            List[RawArticle]: Provider items in provider order.

        Raises:
            ProviderFailure: On network error, timeout or bad response.
        """
        pass

    @abstractmethod
    def fetch_company_news(self, symbol: str, from_date: date, to_date: date) -> List[RawArticle]:
        """
        Fetch company-specific news for a symbol within a date window.

        Args:
            symbol (str): Upper-case ticker symbol.
            from_date (date): First day of the window (inclusive).
            to_date (date): Last day of the window (inclusive).

        Returns:
            List[RawArticle]: Provider items in provider order.

        Raises:
            ProviderFailure: On network error, timeout or bad response.
        """
        pass

    @abstractmethod
    def fetch_quote(self, symbol: str) -> QuoteSnapshot:
        """
        Fetch the latest quote snapshot for a symbol.

        Raises:
            ProviderFailure: On network error, timeout, bad response or unknown symbol.
        """
        pass


class SentimentProvider(ABC):
    """Abstract interface for classifying financial text sentiment."""

    @abstractmethod
    def analyze(self, text: str) -> SentimentResult:
        """
        Analyze the sentiment of a given text. Must never raise.

        Args:
            text (str): The text to analyze (may be empty or None).

        Returns:
            SentimentResult: score, comparative score and label.
        """
        pass
