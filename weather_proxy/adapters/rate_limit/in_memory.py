"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: every read-modify-write of a client's window happens under one lock.
- Bounded: windows that have already ended are swept, at most once per window.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from weather_proxy.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _WindowState:
    window_start: int
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per client key.

    Windows are aligned on multiples of ``window_seconds`` since the epoch, so
    every client's window resets at the same instants (e.g. 60 requests per
    wall-clock minute).

    Important:
        This limiter is per-process only. With several Uvicorn workers each
        worker enforces its own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Size of the fixed window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._last_sweep_window: int | None = None

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def tracked_keys(self) -> int:
        """Number of client keys currently holding window state."""
        with self._lock:
            return len(self._state_by_key)

    def _window_start(self, now: float) -> int:
        return int(now // self._window_seconds) * self._window_seconds

    def _sweep_locked(self, window_start: int) -> None:
        """Drop state of clients whose window has already ended."""
        if self._last_sweep_window == window_start:
            return
        stale = [k for k, s in self._state_by_key.items() if s.window_start < window_start]
        for key in stale:
            del self._state_by_key[key]
        self._last_sweep_window = window_start

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        Checks the current window usage and, if the request fits, records it.
        A rejected request leaves the window count untouched.

        Args:
            key: Client identity (e.g. ``ip:203.0.113.7``).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        window_start = self._window_start(now)
        reset_at = window_start + self._window_seconds

        with self._lock:
            self._sweep_locked(window_start)

            state = self._state_by_key.get(key)
            if state is None or state.window_start != window_start:
                state = _WindowState(window_start=window_start, count=0)
                self._state_by_key[key] = state

            allowed = state.count + cost <= self._limit
            if allowed:
                state.count += cost
            remaining = max(0, self._limit - state.count)

        return RateLimitResult(
            allowed=allowed,
            limit=self._limit,
            remaining=remaining,
            reset_at=reset_at,
            retry_after_seconds=None if allowed else max(0, math.ceil(reset_at - now)),
        )
