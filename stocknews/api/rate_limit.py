"""Per-client fixed-window request limiting.

Two limiters hang off ``app.state``:
    general_limiter — every /api/ route (100 requests / 15 min by default)
    api_limiter     — news and quote lookups on top of that (30 / min)

Either may be ``None`` when limiting is disabled in config.yaml.
"""

import math
import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import Request

from stocknews.core.errors import RateLimitExceeded
from stocknews.core.logger import logger

_MAX_TRACKED_CLIENTS = 10_000


class RateLimiter:
    """Counts requests per client inside fixed windows.

    A client's window opens on its first request and resets once
    ``window_seconds`` have elapsed. Requests past ``max_requests`` inside an
    open window raise :class:`RateLimitExceeded`.
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: float,
        message: str = "Too many requests, please try again later",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, client: str) -> int:
        """Count one request for ``client`` and return how many remain in its window."""
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(client, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0

            if count >= self.max_requests:
                retry_after = max(1, math.ceil(self.window_seconds - (now - started)))
                logger.warning(
                    f"RateLimiter[{self.name}]: {client} exceeded {self.max_requests} "
                    f"requests / {self.window_seconds}s (retry in {retry_after}s)"
                )
                raise RateLimitExceeded(self.message, retry_after)

            self._windows[client] = (started, count + 1)
            if len(self._windows) > _MAX_TRACKED_CLIENTS:
                self._forget_closed_windows(now)
            return self.max_requests - count - 1

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _forget_closed_windows(self, now: float) -> None:
        closed = [
            client for client, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for client in closed:
            del self._windows[client]


def client_key(request: Request) -> str:
    """Identify the caller by remote address."""
    return request.client.host if request.client else "unknown"


def enforce_general_limit(request: Request) -> None:
    limiter = getattr(request.app.state, "general_limiter", None)
    if limiter is not None:
        limiter.hit(client_key(request))


def enforce_api_limit(request: Request) -> None:
    """General window first, then the tighter lookup window."""
    enforce_general_limit(request)
    limiter = getattr(request.app.state, "api_limiter", None)
    if limiter is not None:
        limiter.hit(client_key(request))
