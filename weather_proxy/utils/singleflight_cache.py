"""In-memory TTL cache with single-flight fetch deduplication.

Concurrent callers asking for the same missing key share one upstream fetch:
the first caller registers an in-flight future, runs the fetch in its own
task, and every caller (the first included) awaits that future. Failures are
delivered to all waiters and never cached.

The tables are guarded by a ``threading.RLock`` and the shared handle is a
``concurrent.futures.Future`` so callers on different event loops or threads
can join the same fetch. The fetch task lives on the initiator's loop; if that
loop shuts down mid-fetch, the fetch is abandoned and a waiter on a live loop
starts it again instead of being cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchAbandonedError(RuntimeError):
    """The fetch task was cancelled before producing a result.

    Delivered through the shared future only; waiters react by starting a
    new fetch, so it never reaches callers of ``get_or_fetch``.
    """


@dataclass
class CacheEntry(Generic[T]):
    """Stored value with its expiration (on the cache's clock)."""

    key: str
    value: T
    expires_at: float


class SingleFlightTTLCache(Generic[T]):
    """Thread-safe TTL cache whose misses trigger at most one fetch per key.

    Attributes:
        ttl_seconds: Time-to-live applied to every stored entry.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.RLock()
        # Strong references so fetch tasks are not garbage collected mid-flight
        self._tasks: set[asyncio.Task] = set()
        self._hits = 0
        self._misses = 0
        self._waits = 0
        self._failures = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SingleFlightTTLCache(ttl_seconds={self._ttl}, entries={len(self._entries)}, "
            f"in_flight={len(self._in_flight)}, hits={self._hits}, misses={self._misses})"
        )

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _fresh_entry_locked(self, key: str) -> CacheEntry[T] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        # now == expires_at counts as expired
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> T | None:
        """Return the cached value for ``key`` if still fresh, without fetching."""

        with self._lock:
            entry = self._fresh_entry_locked(key)
            return entry.value if entry is not None else None

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        *,
        timeout: float | None = None,
    ) -> T:
        """Return the fresh cached value or join/start the fetch for ``key``.

        Args:
            key: Cache key.
            fetch: Zero-argument coroutine function producing the value.
            timeout: Optional bound on how long this caller waits. On expiry
                this caller gets ``TimeoutError``; the fetch keeps running and
                still populates the cache.

        Returns:
            The cached or freshly fetched value.

        Raises:
            Exception: Whatever ``fetch`` raised, identical for every waiter.
            TimeoutError: When ``timeout`` elapses first.
            asyncio.CancelledError: When this caller is cancelled while waiting,
                or when this caller's own fetch was cancelled.
        """

        if timeout is None:
            return await self._join(key, fetch)
        return await asyncio.wait_for(self._join(key, fetch), timeout)

    async def _join(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        while True:
            with self._lock:
                entry = self._fresh_entry_locked(key)
                if entry is not None:
                    self._hits += 1
                    logger.debug("cache.hit", extra={"cache_key": key})
                    return entry.value

                future = self._in_flight.get(key)
                initiator = future is None
                if initiator:
                    future = Future()
                    self._in_flight[key] = future
                    self._misses += 1
                else:
                    self._waits += 1

            if initiator:
                logger.debug("cache.miss", extra={"cache_key": key})
                task = asyncio.get_running_loop().create_task(self._run_fetch(key, future, fetch))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            else:
                logger.debug("cache.wait", extra={"cache_key": key})

            try:
                # Shielded so a waiter's cancellation or timeout never cancels the fetch
                return await asyncio.shield(asyncio.wrap_future(future))
            except FetchAbandonedError:
                if initiator:
                    raise asyncio.CancelledError() from None
                logger.debug("cache.fetch_abandoned", extra={"cache_key": key})

    async def _run_fetch(
        self,
        key: str,
        future: Future,
        fetch: Callable[[], Awaitable[T]],
    ) -> None:
        try:
            value = await fetch()
        except asyncio.CancelledError:
            # Usually the owning loop shutting down; waiters elsewhere retry
            self._release(key, future, failed=False)
            future.set_exception(FetchAbandonedError(key))
            raise
        except BaseException as exc:
            self._release(key, future)
            future.set_exception(exc)
            if not isinstance(exc, Exception):
                raise
            return

        with self._lock:
            self._entries[key] = CacheEntry(
                key=key, value=value, expires_at=self._clock() + self._ttl
            )
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

        logger.debug("cache.set", extra={"cache_key": key, "ttl_s": self._ttl})
        future.set_result(value)

    def _release(self, key: str, future: Future, *, failed: bool = True) -> None:
        with self._lock:
            if failed:
                self._failures += 1
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def invalidate(self, key: str) -> None:
        """Drop the stored entry for ``key``; an in-flight fetch is untouched."""

        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all stored entries and reset counters.

        In-flight fetches are left to complete for their waiters.
        """

        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._waits = 0
            self._failures = 0

    def stats(self) -> dict[str, int | float]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "ttl_seconds": self._ttl,
                "entries": len(self._entries),
                "in_flight": len(self._in_flight),
                "hits": self._hits,
                "misses": self._misses,
                "waits": self._waits,
                "failures": self._failures,
            }
