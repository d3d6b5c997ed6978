"""Per-IP sliding-window rate limiter for the ``/api`` surface.

Every client IP gets a Redis sorted set of request timestamps under
``mc:rl:<ip>``.  A hit trims entries older than the window, counts what is
left, records itself and refreshes the key TTL in one pipeline.  The
resulting :class:`Quota` tells the middleware whether to answer 429 and
what to put in the ``X-RateLimit-*`` headers.

Without a reachable Redis every hit is allowed.

Usage::

    limiter = RateLimiter(max_requests=100, window_seconds=900)
    quota = limiter.hit("203.0.113.9")
    if not quota.allowed:
        ...
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "mc:rl:"


@dataclass(frozen=True)
class Quota:
    """Outcome of one rate-limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: int
    """Seconds until the oldest counted request leaves the window."""

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_after),
        }


class RateLimiter:
    """Redis sorted-set limiter keyed by client IP.

    Args:
        max_requests: Requests allowed per window.
        window_seconds: Window length.
        redis_url: Where to connect when *client* is not given.  ``None``
            disables limiting.
        client: Ready Redis client, used as-is (tests pass a mock here).
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 900,
        redis_url: str | None = None,
        client: Any = None,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._redis: Any = client
        if client is None and redis_url:
            self._redis = _connect(redis_url)

    @property
    def available(self) -> bool:
        return self._redis is not None

    def _unlimited(self) -> Quota:
        return Quota(True, self.max_requests, self.max_requests, self.window_seconds)

    def hit(self, client_ip: str) -> Quota:
        """Record one request from *client_ip* and report the quota after it."""
        if self._redis is None:
            return self._unlimited()

        key = KEY_PREFIX + client_ip
        now = time.time()
        pipe = self._redis.pipeline()
        pipe.zremrangebyscore(key, 0, now - self.window_seconds)
        pipe.zcard(key)
        pipe.zadd(key, {f"{now:.6f}": now})
        pipe.expire(key, self.window_seconds * 2)
        try:
            _, prior, _, _ = pipe.execute()
        except redis.RedisError as exc:
            logger.warning("Rate limiter skipped for %s: %s", client_ip, exc)
            return self._unlimited()

        used = int(prior) + 1
        if used > self.max_requests:
            logger.warning(
                "Client %s over limit (%d requests in %ds)",
                client_ip,
                used,
                self.window_seconds,
            )
        return Quota(
            allowed=used <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - used),
            reset_after=self._reset_after(key, now),
        )

    def allow(self, client_ip: str) -> bool:
        return self.hit(client_ip).allowed

    def remaining(self, client_ip: str) -> int:
        """Requests left for *client_ip* without recording a new one."""
        if self._redis is None:
            return self.max_requests
        key = KEY_PREFIX + client_ip
        try:
            self._redis.zremrangebyscore(key, 0, time.time() - self.window_seconds)
            used = int(self._redis.zcard(key))
        except redis.RedisError as exc:
            logger.warning("Rate limiter lookup failed for %s: %s", client_ip, exc)
            return self.max_requests
        return max(0, self.max_requests - used)

    def _reset_after(self, key: str, now: float) -> int:
        try:
            oldest = self._redis.zrange(key, 0, 0, withscores=True)
        except redis.RedisError:
            return self.window_seconds
        if not oldest:
            return self.window_seconds
        _, first_seen = oldest[0]
        return max(0, math.ceil(float(first_seen) + self.window_seconds - now))


def _connect(url: str) -> Any:
    try:
        client = redis.from_url(url, decode_responses=True, socket_timeout=0.5)
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis at %s unreachable, rate limiting disabled: %s", url, exc)
        return None
    return client
