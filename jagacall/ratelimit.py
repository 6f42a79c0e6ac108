# jagacall/ratelimit.py

"""
Per-IP fixed-window rate limit for /api/* routes, counted in Redis.

Without REDIS_URL, or while Redis is unreachable, every request is allowed.
X-Forwarded-For is only honoured when TRUST_PROXY is set.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis
from fastapi import Request

from jagacall.config import Settings
from jagacall.errors import RateLimited

logger = logging.getLogger("jagacall")

# checks run on the event loop; a hung Redis must fail fast
REDIS_SOCKET_TIMEOUT = 2


def get_client_ip(request: Request, trust_forwarded: bool = False) -> str:
    """Socket peer address; the first X-Forwarded-For hop only behind a trusted proxy."""
    xfwd = request.headers.get("x-forwarded-for") if trust_forwarded else None
    if xfwd:
        return xfwd.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RateLimiter:
    def __init__(self, client: Optional[redis.Redis], limit: int, window_seconds: int):
        self._client = client
        self.limit = limit
        self.window_seconds = window_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        client = None
        if settings.redis_url:
            client = redis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
                socket_timeout=REDIS_SOCKET_TIMEOUT,
            )
        return cls(client, settings.rate_limit_max, settings.rate_limit_window_seconds)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def check(self, ip: str) -> Optional[RateLimited]:
        """Count one request for `ip`; return the error to send back if over the limit."""
        if self._client is None:
            return None

        key = f"rate:api:{ip}"
        try:
            count = self._client.incr(key)
            if count == 1:
                self._client.expire(key, self.window_seconds)
            if count <= self.limit:
                return None
            ttl = self._client.ttl(key)
        except redis.RedisError as exc:
            logger.warning(json.dumps({"event": "rate_limit_unavailable", "error": str(exc)}))
            return None

        retry_after = ttl if isinstance(ttl, int) and ttl > 0 else self.window_seconds
        return RateLimited(retry_after)
