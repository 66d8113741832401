# tests/unit/infra/test_redis_store.py
"""
Redis-specific behaviour of RedisRefreshTokenStore (fakeredis).

Covers the key layout, the absence of TTLs and the WATCH retry path.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
import redis

from authcore.infra.redis import RedisRefreshTokenStore
from authcore.services._shared.errors import StorageError
from authcore.services._shared.ports import RefreshTokenRecord

NOW = datetime(2030, 1, 1, tzinfo=UTC)


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def store(fake_redis):
    return RedisRefreshTokenStore(r=fake_redis)


def _rec(token_hash: str = "a" * 64) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        id="rec-1",
        user_id="42",
        token_hash=token_hash,
        token_family="fam-1",
        expires_at=NOW + timedelta(days=7),
        created_at=NOW,
    )


def test_key_layout_and_no_ttl(store, fake_redis):
    rec = _rec()
    store.insert(rec)

    assert fake_redis.hget(f"rt:{rec.token_hash}", "user_id") == b"42"
    assert fake_redis.sismember("rt:f:fam-1", rec.token_hash)
    assert fake_redis.sismember("rt:u:42", rec.token_hash)
    assert fake_redis.ttl(f"rt:{rec.token_hash}") == -1


def test_claim_retries_after_watch_conflict(store, fake_redis, monkeypatch):
    """A concurrent write between WATCH and EXEC forces a re-read."""
    rec = _rec()
    store.insert(rec)
    original = fake_redis.pipeline
    interfered = {"done": False}

    def _pipeline(*args, **kwargs):
        pipe = original(*args, **kwargs)
        real_multi = pipe.multi

        def _multi():
            if not interfered["done"]:
                interfered["done"] = True
                # Another client wins the claim while we hold the WATCH.
                fake_redis.hset(f"rt:{rec.token_hash}", "used_at", NOW.isoformat())
            return real_multi()

        pipe.multi = _multi
        return pipe

    monkeypatch.setattr(fake_redis, "pipeline", _pipeline)

    before, claimed = store.claim_for_rotation(rec.token_hash, NOW + timedelta(seconds=5))

    assert claimed is False
    assert before.used_at == NOW


def test_redis_errors_become_storage_errors(store, fake_redis, monkeypatch):
    def _down(*args, **kwargs):
        raise redis.ConnectionError("connection refused")

    monkeypatch.setattr(fake_redis, "hgetall", _down)
    with pytest.raises(StorageError):
        store.find_by_hash("b" * 64)


def test_decoding_client_reads_records_back():
    store = RedisRefreshTokenStore(r=fakeredis.FakeRedis(decode_responses=True))
    rec = _rec()
    store.insert(rec)

    found = store.find_by_hash(rec.token_hash)
    assert found.expires_at == rec.expires_at
    assert found.used_at is None

    before, claimed = store.claim_for_rotation(rec.token_hash, NOW + timedelta(minutes=1))
    assert claimed is True
    assert before.user_id == "42"
    assert store.list_family("fam-1")[0].used_at == NOW + timedelta(minutes=1)
    assert store.revoke_family("fam-1", NOW + timedelta(minutes=2)) == 1
