from __future__ import annotations

from dataclasses import dataclass

from ..core.exceptions import RateLimitExceededError
from .counter_store import CounterStore


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int


class RateLimiter:
    """Fixed-window limiter backed by an injected counter store."""

    def __init__(self, store: CounterStore, *, limit: int, window_seconds: float):
        self._store = store
        self._limit = int(limit)
        self._window = float(window_seconds)

    def hit(self, key: str) -> RateLimitResult:
        count = self._store.incr(f"rate:{key}", ttl_seconds=self._window)
        return RateLimitResult(
            allowed=count <= self._limit,
            limit=self._limit,
            remaining=max(self._limit - count, 0),
        )

    def check(self, key: str) -> RateLimitResult:
        result = self.hit(key)
        if not result.allowed:
            raise RateLimitExceededError("Too many requests, please try again later")
        return result
