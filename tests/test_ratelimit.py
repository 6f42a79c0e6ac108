from __future__ import annotations

from dataclasses import replace

import redis
from fastapi.testclient import TestClient

from jagacall import ratelimit
from jagacall.main import create_app
from jagacall.ratelimit import RateLimiter


class FakeRedis:
    def __init__(self):
        self.counts = {}
        self.expiry = {}

    def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key, seconds):
        self.expiry[key] = seconds

    def ttl(self, key):
        return self.expiry.get(key, -1)


class BrokenRedis:
    def incr(self, key):
        raise redis.ConnectionError("redis down")


def test_allows_until_limit_then_blocks():
    fake = FakeRedis()
    limiter = RateLimiter(fake, limit=2, window_seconds=900)

    assert limiter.check("1.2.3.4") is None
    assert limiter.check("1.2.3.4") is None
    blocked = limiter.check("1.2.3.4")

    assert blocked is not None
    assert blocked.code == "RATE_LIMITED"
    assert blocked.status_code == 429
    assert blocked.retry_after == 900
    assert fake.expiry["rate:api:1.2.3.4"] == 900
    # other clients have their own window
    assert limiter.check("5.6.7.8") is None


def test_disabled_without_redis():
    limiter = RateLimiter(None, limit=1, window_seconds=60)
    assert not limiter.enabled
    assert all(limiter.check("1.2.3.4") is None for _ in range(5))


def test_redis_outage_lets_requests_through():
    limiter = RateLimiter(BrokenRedis(), limit=1, window_seconds=60)
    assert limiter.check("1.2.3.4") is None


def test_api_returns_rate_limited_envelope(settings, provider):
    app = create_app(settings, provider=provider, rate_limiter=RateLimiter(FakeRedis(), 1, 900))
    client = TestClient(app)

    assert client.get("/api/health").status_code == 200
    resp = client.get("/api/health")

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "900"
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "RATE_LIMITED"
    assert body["error"]["message"] == "Too many requests from this IP, please try again later."


def test_from_settings_bounds_redis_socket_waits(settings, monkeypatch):
    captured = {}

    def fake_from_url(url, **kwargs):
        captured.update(kwargs, url=url)
        return FakeRedis()

    monkeypatch.setattr(ratelimit.redis.Redis, "from_url", staticmethod(fake_from_url))
    limiter = RateLimiter.from_settings(replace(settings, redis_url="redis://cache:6379/0"))

    assert limiter.enabled
    assert captured["url"] == "redis://cache:6379/0"
    assert captured["socket_connect_timeout"] == ratelimit.REDIS_SOCKET_TIMEOUT
    assert captured["socket_timeout"] == ratelimit.REDIS_SOCKET_TIMEOUT


def test_redis_timeout_lets_requests_through():
    class HungRedis:
        def incr(self, key):
            raise redis.TimeoutError("Timeout reading from socket")

    assert RateLimiter(HungRedis(), limit=1, window_seconds=60).check("1.2.3.4") is None


def _limited_client(settings, provider):
    app = create_app(settings, provider=provider, rate_limiter=RateLimiter(FakeRedis(), 1, 900))
    return TestClient(app)


def test_forwarded_for_ignored_by_default(settings, provider):
    client = _limited_client(settings, provider)

    first = client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.1"})
    second = client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.2"})

    assert first.status_code == 200
    assert second.status_code == 429


def test_forwarded_for_honoured_behind_trusted_proxy(settings, provider):
    client = _limited_client(replace(settings, trust_proxy=True), provider)

    assert client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 200
    assert client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.2, 172.16.0.1"}).status_code == 200
    assert client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
