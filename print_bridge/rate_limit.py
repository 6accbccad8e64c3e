#!/usr/bin/env python3.11
"""
Fixed-window request limiting per client address.
"""
import math
import threading
import time
from functools import wraps
from typing import Callable, Dict, Tuple

from flask import current_app, request

from print_bridge.error_handling import RateLimitError


class RateLimiter:
    """Counts requests per client in fixed windows and rejects those over the limit."""

    def __init__(self, max_requests: int, window_seconds: float, message: str,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._lock = threading.Lock()
        # client -> (window start, requests seen in window)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()

    @property
    def retry_after(self) -> int:
        return int(math.ceil(self.window_seconds))

    def hit(self, client: str) -> bool:
        """Record a request; return False when the client is over its limit."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            start, count = self._windows.get(client, (now, 0))
            if now - start >= self.window_seconds:
                start, count = now, 0
            count += 1
            self._windows[client] = (start, count)
            return count <= self.max_requests

    def _sweep(self, now: float) -> None:
        """Drop clients whose window has expired. Caller holds the lock."""
        self._windows = {
            client: window for client, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }
        self._last_sweep = now

    def check(self, client: str) -> None:
        """Raise RateLimitError once the client's allowance is used up."""
        if not self.hit(client):
            raise RateLimitError(self.message, retry_after=self.retry_after)


def rate_limited(bucket: str) -> Callable:
    """Route decorator applying the application's limiter for `bucket`."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            limiter = current_app.extensions["rate_limiters"][bucket]
            limiter.check(request.remote_addr or "unknown")
            return func(*args, **kwargs)
        return wrapper
    return decorator
