"""Tests for the identity step rate limit."""

import pytest
import redis.asyncio as redis
from httpx import AsyncClient

from app.config import settings
from app.middleware import rate_limit


class FakeRedis:
    """Just enough of the sorted-set API for the sliding window."""

    def __init__(self):
        self.sets: dict[str, dict[str, float]] = {}

    async def zremrangebyscore(self, key, low, high):
        members = self.sets.setdefault(key, {})
        for member, score in list(members.items()):
            if low <= score <= high:
                del members[member]

    async def zcard(self, key):
        return len(self.sets.get(key, {}))

    async def zrange(self, key, start, end, withscores=False):
        items = sorted(self.sets.get(key, {}).items(), key=lambda i: i[1])
        return items[start:end + 1]

    async def zadd(self, key, mapping):
        self.sets.setdefault(key, {}).update(mapping)

    async def expire(self, key, seconds):
        return True


class BrokenRedis:

    async def zremrangebyscore(self, *args, **kwargs):
        raise redis.ConnectionError("connection refused")


def _use_redis(monkeypatch, client_obj):
    async def fake_get_redis():
        return client_obj

    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    monkeypatch.setattr(rate_limit, "get_redis", fake_get_redis)


BAD_LOGIN = {"email": "nobody@example.com", "password": "x"}


@pytest.mark.api
@pytest.mark.asyncio
class TestIdentityRateLimit:

    async def test_blocks_after_limit(self, client: AsyncClient, monkeypatch):
        _use_redis(monkeypatch, FakeRedis())

        for _ in range(settings.identity_rate_limit):
            resp = await client.post("/api/identity/", json=BAD_LOGIN)
            assert resp.status_code == 422

        resp = await client.post("/api/identity/", json=BAD_LOGIN)
        assert resp.status_code == 429
        assert resp.json()["error"]["code"] == "RATE_LIMITED"
        assert "Retry-After" in resp.headers

    async def test_reads_not_limited(self, client: AsyncClient, monkeypatch):
        _use_redis(monkeypatch, FakeRedis())
        for _ in range(settings.identity_rate_limit + 2):
            resp = await client.get("/api/identity/email-status", params={"email": "a@b.co"})
            assert resp.status_code == 200

    async def test_fails_open(self, client: AsyncClient, monkeypatch):
        _use_redis(monkeypatch, BrokenRedis())
        for _ in range(settings.identity_rate_limit + 2):
            resp = await client.post("/api/identity/", json=BAD_LOGIN)
            assert resp.status_code == 422
