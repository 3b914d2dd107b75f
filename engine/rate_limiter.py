"""
engine/rate_limiter.py — Fixed-window request limiter keyed by client.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config import Settings, get_settings
from engine.errors import RateLimitExceeded
from engine.pipeline_logger import PipelineLogger


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Allow ``limit`` requests per ``window_seconds`` for each client key."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._next_sweep = 0.0
        self._log = PipelineLogger("RateLimiter")

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "RateLimiter":
        settings = settings or get_settings()
        return cls(settings.rate_limit_requests, settings.rate_limit_window_seconds, clock)

    def hit(self, key: str) -> int:
        """Count one request for ``key``; return how many remain in the window.

        Raises:
            RateLimitExceeded: when the request is over budget.
        """
        key = key or "anon"
        now = self._clock()
        self._sweep(now)
        window = self._windows.get(key)
        if window is None or now > window.reset_at:
            window = _Window(count=0, reset_at=now + self.window_seconds)
            self._windows[key] = window

        window.count += 1
        if window.count > self.limit:
            retry_after = max(0.0, window.reset_at - now)
            self._log.warning(f"Rate limit hit for {key!r} ({window.count}/{self.limit})")
            raise RateLimitExceeded(key, retry_after)
        return self.limit - window.count

    def _sweep(self, now: float) -> None:
        # At most one pass per window length.
        if now < self._next_sweep:
            return
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for k in expired:
            del self._windows[k]
        if expired:
            self._log.debug(f"Evicted {len(expired)} expired windows")
        self._next_sweep = now + self.window_seconds

    @property
    def tracked_keys(self) -> int:
        """Number of client keys currently holding a window."""
        return len(self._windows)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)
