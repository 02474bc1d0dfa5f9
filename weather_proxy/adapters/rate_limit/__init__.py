"""Rate limiting adapters.

The proxy ships an in-memory fixed-window limiter; the abstract interface
keeps the HTTP layer independent of where per-client counters live.
"""

from weather_proxy.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from weather_proxy.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = ["AbstractRateLimiter", "InMemoryFixedWindowRateLimiter", "RateLimitResult"]
