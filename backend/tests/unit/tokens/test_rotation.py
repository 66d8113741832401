"""Tests for RotationEngine: rotation, reuse detection and family collapse."""

from __future__ import annotations

import threading
from datetime import timedelta

import fakeredis
import pytest

from authcore.core.container import build_token_services
from authcore.infra.redis import RedisRefreshTokenStore
from authcore.services._shared.errors import (
    InvalidTokenError,
    StorageError,
    TokenExpiredError,
    TokenReuseDetectedError,
    TokenRevokedError,
)
from authcore.services._shared.ports import (
    InMemoryRefreshTokenStore,
    Principal,
    StubTokenProvider,
    TokenState,
)
from authcore.services.tokens import AuthTokenConfig, IssuedTokens, hash_secret


def _state(store, issued: IssuedTokens, now) -> TokenState:
    return store.find_by_hash(hash_secret(issued.refresh_token)).state(now)


class TestSingleRotation:
    def test_rotate_returns_new_pair_in_same_family(self, services, store, alice, clock):
        r0 = services.issuer.issue(alice)
        clock.advance(minutes=5)

        r1 = services.rotation.rotate(r0.refresh_token)

        assert r1.refresh_token != r0.refresh_token
        assert r1.access_token != r0.access_token
        assert r1.record.token_family == r0.record.token_family
        assert r1.record.user_id == alice.user_id
        assert r1.record.expires_at == clock.now + timedelta(days=7)
        assert _state(store, r0, clock.now) is TokenState.USED
        assert store.find_by_hash(r0.record.token_hash).used_at == clock.now
        assert _state(store, r1, clock.now) is TokenState.ACTIVE

    def test_second_rotation_of_same_secret_is_reuse(self, services, alice):
        r0 = services.issuer.issue(alice)
        services.rotation.rotate(r0.refresh_token)

        with pytest.raises(TokenReuseDetectedError):
            services.rotation.rotate(r0.refresh_token)

    def test_every_later_replay_is_still_reuse(self, services, alice):
        r0 = services.issuer.issue(alice)
        services.rotation.rotate(r0.refresh_token)

        for _ in range(3):
            with pytest.raises(TokenReuseDetectedError):
                services.rotation.rotate(r0.refresh_token)

    def test_chain_of_rotations(self, services, store, alice, clock):
        current = services.issuer.issue(alice)
        family = current.record.token_family
        for _ in range(5):
            clock.advance(minutes=1)
            current = services.rotation.rotate(current.refresh_token)
        records = store.list_family(family)
        assert len(records) == 6
        assert [r.state(clock.now) for r in records] == [TokenState.USED] * 5 + [TokenState.ACTIVE]

    def test_rotation_picks_up_current_roles(self, services, principals, alice):
        r0 = services.issuer.issue(alice)
        principals.put(
            Principal(
                user_id=alice.user_id,
                email=alice.email,
                display_name=alice.display_name,
                roles=frozenset({"user", "admin"}),
            )
        )
        r1 = services.rotation.rotate(r0.refresh_token)
        payload = services.token_provider.decode(r1.access_token)
        assert payload["roles"] == ["admin", "user"]


class TestFamilyCollapse:
    def test_reuse_revokes_descendants(self, services, store, alice, clock):
        """Scenario: rotate R0, replay R0, then R1 is revoked."""
        r0 = services.issuer.issue(alice)
        r1 = services.rotation.rotate(r0.refresh_token)

        with pytest.raises(TokenReuseDetectedError):
            services.rotation.rotate(r0.refresh_token)

        with pytest.raises(TokenRevokedError):
            services.rotation.rotate(r1.refresh_token)
        for record in store.list_family(r0.record.token_family):
            assert record.revoked_at == clock.now

    def test_reuse_revokes_tokens_issued_after_legitimate_rotation(
        self, services, store, alice
    ):
        r0 = services.issuer.issue(alice)
        r1 = services.rotation.rotate(r0.refresh_token)
        r2 = services.rotation.rotate(r1.refresh_token)

        with pytest.raises(TokenReuseDetectedError):
            services.rotation.rotate(r1.refresh_token)

        assert store.find_by_hash(r2.record.token_hash).revoked_at is not None
        with pytest.raises(TokenRevokedError):
            services.rotation.rotate(r2.refresh_token)

    def test_reuse_leaves_other_families_alone(self, services, store, alice, clock):
        victim = services.issuer.issue(alice)
        other = services.issuer.issue(alice)
        services.rotation.rotate(victim.refresh_token)

        with pytest.raises(TokenReuseDetectedError):
            services.rotation.rotate(victim.refresh_token)

        assert _state(store, other, clock.now) is TokenState.ACTIVE
        services.rotation.rotate(other.refresh_token)

    def test_reuse_is_logged_as_error_without_secret(self, services, alice, caplog):
        r0 = services.issuer.issue(alice)
        services.rotation.rotate(r0.refresh_token)

        with caplog.at_level("WARNING", logger="authcore.services.tokens.rotation"):
            with pytest.raises(TokenReuseDetectedError):
                services.rotation.rotate(r0.refresh_token)

        errors = [r for r in caplog.records if r.levelname == "ERROR"]
        assert len(errors) == 1
        assert errors[0].event == "refresh.reuse_detected"
        assert errors[0].token_family == r0.record.token_family
        assert errors[0].affected == 2
        assert r0.refresh_token not in caplog.text
        assert r0.record.token_hash not in caplog.text


class TestRejections:
    def test_unknown_secret_is_invalid(self, services):
        with pytest.raises(InvalidTokenError):
            services.rotation.rotate("not-a-real-secret")

    @pytest.mark.parametrize("secret", ["", None, 42])
    def test_empty_or_non_string_secret_is_invalid(self, services, secret):
        with pytest.raises(InvalidTokenError):
            services.rotation.rotate(secret)

    def test_expired_exactly_at_boundary(self, services, alice, clock):
        r0 = services.issuer.issue(alice)
        clock.now = r0.record.expires_at

        with pytest.raises(TokenExpiredError):
            services.rotation.rotate(r0.refresh_token)

    def test_valid_just_before_boundary(self, services, alice, clock):
        r0 = services.issuer.issue(alice)
        clock.now = r0.record.expires_at - timedelta(microseconds=1)

        services.rotation.rotate(r0.refresh_token)

    def test_short_ttl_token_expires(self, store, principals, alice, clock):
        """Scenario: refresh TTL of 1s, rotate 2s later."""
        services = build_token_services(
            store=store,
            token_provider=StubTokenProvider(clock=clock),
            principals=principals,
            token_cfg=AuthTokenConfig(refresh_expires=timedelta(seconds=1)),
            clock=clock,
        )
        r0 = services.issuer.issue(alice)
        clock.advance(seconds=2)

        with pytest.raises(TokenExpiredError):
            services.rotation.rotate(r0.refresh_token)

    def test_expired_rejection_does_not_mark_used(self, services, store, alice, clock):
        r0 = services.issuer.issue(alice)
        clock.advance(days=8)

        with pytest.raises(TokenExpiredError):
            services.rotation.rotate(r0.refresh_token)
        assert store.find_by_hash(r0.record.token_hash).used_at is None

    def test_revoked_token_is_rejected(self, services, alice):
        r0 = services.issuer.issue(alice)
        services.revocation.revoke_family(r0.record.token_family)

        with pytest.raises(TokenRevokedError):
            services.rotation.rotate(r0.refresh_token)

    def test_missing_owner_spends_token_and_revokes_family(
        self, services, store, principals, alice
    ):
        r0 = services.issuer.issue(alice)
        principals.remove(alice.user_id)

        with pytest.raises(InvalidTokenError):
            services.rotation.rotate(r0.refresh_token)

        record = store.find_by_hash(r0.record.token_hash)
        assert record.used_at is not None
        assert record.revoked_at is not None

    def test_storage_failure_propagates_and_is_not_retried(self, services, alice, monkeypatch):
        r0 = services.issuer.issue(alice)
        calls = []

        def _boom(token_hash, now):
            calls.append(token_hash)
            raise StorageError("down")

        monkeypatch.setattr(services.store, "claim_for_rotation", _boom)

        with pytest.raises(StorageError):
            services.rotation.rotate(r0.refresh_token)
        assert len(calls) == 1


def _race(services, secret: str, workers: int):
    """Rotate ``secret`` from ``workers`` threads released together."""
    barrier = threading.Barrier(workers)
    successes: list[IssuedTokens] = []
    reuses: list[Exception] = []
    others: list[Exception] = []
    lock = threading.Lock()

    def _worker():
        barrier.wait()
        try:
            issued = services.rotation.rotate(secret)
        except TokenReuseDetectedError as exc:
            with lock:
                reuses.append(exc)
        except Exception as exc:  # noqa: BLE001 - collected for the assertion below
            with lock:
                others.append(exc)
        else:
            with lock:
                successes.append(issued)

    threads = [threading.Thread(target=_worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return successes, reuses, others


class TestConcurrency:
    @pytest.mark.parametrize("workers", [2, 5, 16])
    def test_concurrent_rotations_yield_exactly_one_success(
        self, services, store, alice, workers
    ):
        r0 = services.issuer.issue(alice)

        successes, reuses, others = _race(services, r0.refresh_token, workers)

        assert others == []
        assert len(successes) == 1
        assert len(reuses) == workers - 1
        # Any losing call revokes the family, including the winner's new token.
        winner = store.find_by_hash(successes[0].record.token_hash)
        assert winner.revoked_at is not None

    @pytest.mark.parametrize("workers", [5, 16])
    def test_concurrent_rotations_over_redis(self, alice, clock, principals, workers):
        store = RedisRefreshTokenStore(r=fakeredis.FakeRedis())
        services = build_token_services(
            store=store,
            token_provider=StubTokenProvider(clock=clock),
            principals=principals,
            clock=clock,
        )
        r0 = services.issuer.issue(alice)

        successes, reuses, others = _race(services, r0.refresh_token, workers)

        assert others == []
        assert len(successes) == 1
        assert len(reuses) == workers - 1
        assert store.find_by_hash(r0.record.token_hash).used_at == clock.now
        winner = store.find_by_hash(successes[0].record.token_hash)
        assert winner.revoked_at is not None

    def test_memory_store_claim_is_atomic(self, alice, clock, principals):
        store = InMemoryRefreshTokenStore()
        services = build_token_services(
            store=store,
            token_provider=StubTokenProvider(clock=clock),
            principals=principals,
            clock=clock,
        )
        r0 = services.issuer.issue(alice)
        results = []

        def _claim():
            results.append(store.claim_for_rotation(r0.record.token_hash, clock.now)[1])

        threads = [threading.Thread(target=_claim) for _ in range(32)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 1


class TestReplayDuringRotation:
    def test_replay_before_new_record_revokes_the_new_token(
        self, services, store, principals, alice, caplog, monkeypatch
    ):
        r0 = services.issuer.issue(alice)
        load = principals.load
        replays: list[TokenReuseDetectedError] = []

        def _load_then_replay(user_id):
            # The winner holds the claim but has not inserted its new record yet.
            if not replays:
                with pytest.raises(TokenReuseDetectedError) as exc:
                    services.rotation.rotate(r0.refresh_token)
                replays.append(exc.value)
            return load(user_id)

        monkeypatch.setattr(principals, "load", _load_then_replay)

        with caplog.at_level("INFO", logger="authcore.services.tokens.rotation"):
            r1 = services.rotation.rotate(r0.refresh_token)

        assert len(replays) == 1
        assert store.find_by_hash(r1.record.token_hash).revoked_at is not None
        events = [getattr(rec, "event", None) for rec in caplog.records]
        assert "refresh.issued_into_revoked_family" in events
        assert "refresh.rotated" not in events
        with pytest.raises(TokenRevokedError):
            services.rotation.rotate(r1.refresh_token)
