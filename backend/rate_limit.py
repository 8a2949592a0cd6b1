# backend/rate_limit.py
import logging
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional
from fastapi import Request

import config
from errors import RateLimitError

logger = logging.getLogger(__name__)

class SlidingWindowLimiter:
    """Allows at most `max_requests` per client within any `window_seconds` span."""

    def __init__(self, name: str, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep: Optional[float] = None
        logger.info(f"Initialized {name} limiter: {max_requests} requests per {window_seconds}s")

    def hit(self, client: str) -> bool:
        """Record a request; False when the client is over its cap.

        Runs without awaiting, so it is atomic on the event loop.
        """
        now = self._clock()
        cutoff = now - self.window_seconds
        if self._last_sweep is None or now - self._last_sweep >= self.window_seconds:
            self._sweep(cutoff)
            self._last_sweep = now
        hits = self._hits.setdefault(client, deque())
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if len(hits) >= self.max_requests:
            return False
        hits.append(now)
        return True

    def _sweep(self, cutoff: float) -> None:
        # Drop clients whose newest hit has already left the window.
        stale = [client for client, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for client in stale:
            del self._hits[client]

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = None

    async def __call__(self, request: Request) -> None:
        client = _client_address(request)
        if not self.hit(client):
            logger.warning(f"Rate limit exceeded on {self.name} for {client}")
            raise RateLimitError("Too many requests, please try again later")

def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"

auth_rate_limit = SlidingWindowLimiter("auth", config.AUTH_RATE_LIMIT, config.RATE_LIMIT_WINDOW)
post_rate_limit = SlidingWindowLimiter("posts", config.POST_RATE_LIMIT, config.RATE_LIMIT_WINDOW)

def reset_all() -> None:
    for limiter in (auth_rate_limit, post_rate_limit):
        limiter.reset()
