"""
Per-user action rate limiting.

Supports an in-memory sliding window for tests/local runs and a Redis-backed
implementation for production.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Callable, Protocol

import redis
from redis import exceptions as redis_exceptions

from fratrank.errors import RateLimitedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    max: int
    window_minutes: int
    label: str

    @property
    def window_seconds(self) -> int:
        return self.window_minutes * 60


RATE_LIMITS = {
    "post": RateLimit(max=5, window_minutes=60, label="posts"),
    "comment": RateLimit(max=10, window_minutes=60, label="comments"),
    "vote": RateLimit(max=60, window_minutes=60, label="votes"),
    "report": RateLimit(max=5, window_minutes=60, label="reports"),
}


class RateLimiter(Protocol):
    """Minimal interface for checking and recording rate-limited actions."""

    def check(self, user_id: str, action: str) -> bool:
        ...

    def record(self, user_id: str, action: str) -> None:
        ...


@dataclass
class InMemoryRateLimiter:
    """Sliding-window limiter for testing/dev."""

    clock: Callable[[], float] = time.time
    events: dict = field(default_factory=lambda: defaultdict(deque))

    def _window(self, user_id: str, action: str) -> deque:
        limit = RATE_LIMITS[action]
        window = self.events[(user_id, action)]
        cutoff = self.clock() - limit.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window

    def check(self, user_id: str, action: str) -> bool:
        return len(self._window(user_id, action)) < RATE_LIMITS[action].max

    def record(self, user_id: str, action: str) -> None:
        self._window(user_id, action).append(self.clock())

    def reset(self) -> None:
        self.events.clear()


@dataclass
class RedisRateLimiter:
    """Redis-backed limiter using one sorted set per user and action."""

    url: str
    key_prefix: str = "fratrank:ratelimit"
    clock: Callable[[], float] = time.time

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, user_id: str, action: str) -> str:
        return f"{self.key_prefix}:{action}:{user_id}"

    def _reconnect(self) -> None:
        self.client = redis.Redis.from_url(self.url)

    def check(self, user_id: str, action: str) -> bool:
        limit = RATE_LIMITS[action]
        key = self._key(user_id, action)
        now = self.clock()
        try:
            self.client.zremrangebyscore(key, 0, now - limit.window_seconds)
            return self.client.zcard(key) < limit.max
        except redis_exceptions.RedisError as exc:
            # Allow on error, matching the client-side behaviour.
            logger.warning("Rate limit check failed for %s: %s", key, exc)
            self._reconnect()
            return True

    def record(self, user_id: str, action: str) -> None:
        limit = RATE_LIMITS[action]
        key = self._key(user_id, action)
        now = self.clock()
        try:
            self.client.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
            self.client.expire(key, limit.window_seconds)
        except redis_exceptions.RedisError as exc:
            logger.warning("Rate limit record failed for %s: %s", key, exc)
            self._reconnect()


def enforce_rate_limit(limiter: RateLimiter, user_id: str, action: str) -> None:
    """
    Raise RateLimitedError if ``action`` is over its limit. Callers record the
    action with ``limiter.record`` once it has succeeded.
    """
    limit = RATE_LIMITS[action]
    if not limiter.check(user_id, action):
        raise RateLimitedError(action, limit.max, limit.window_minutes, limit.label)
