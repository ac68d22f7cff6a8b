"""Logging for the news service: one shared ``stocknews`` logger plus a timing helper."""

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

# Chatty dependencies that log every HTTP connection at INFO/DEBUG.
_QUIET_LOGGERS = ("urllib3", "httpx", "httpcore")


def setup_logger(
    name: str = "stocknews",
    log_file: str | None = None,
    level: str | None = None,
) -> logging.Logger:
    """
    Configure and return the service logger, writing to a file and the console.

    Args:
        name (str): The name of the logger.
        log_file (str | None): Log file path. Defaults to ``$LOG_FILE`` or
            "output/stocknews.log".
        level (str | None): Level name. Defaults to ``$LOG_LEVEL`` or "INFO".

    Returns:
        logging.Logger: The configured logger instance.
    """
    logger = logging.getLogger(name)
    if logger.hasHandlers():
        return logger

    log_path = Path(log_file or os.getenv("LOG_FILE", "output/stocknews.log"))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(module)s.%(funcName)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    for handler in (logging.FileHandler(log_path, encoding="utf-8"), logging.StreamHandler()):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for noisy in _QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


@contextmanager
def log_duration(label: str, level: int = logging.INFO) -> Iterator[None]:
    """Log how long the wrapped block took, whether it returned or raised.

    Example:
        >>> with log_duration("Fetch company news AAPL"):
        ...     provider.fetch_company_news("AAPL", start, end)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.log(level, f"{label} took {(time.perf_counter() - started) * 1000:.1f} ms")


logger = setup_logger()
