"""Tests for secret generation and hashing."""

from __future__ import annotations

import hashlib

from authcore.services.tokens.hasher import DIGEST_LENGTH, generate_secret, hash_secret


def test_hash_is_sha256_hex_of_utf8():
    assert hash_secret("abc") == hashlib.sha256(b"abc").hexdigest()
    assert hash_secret("ünï") == hashlib.sha256("ünï".encode()).hexdigest()


def test_hash_is_deterministic_and_lowercase():
    digest = hash_secret("same")
    assert digest == hash_secret("same")
    assert len(digest) == DIGEST_LENGTH
    assert digest == digest.lower()


def test_generated_secrets_are_unique_and_urlsafe():
    secrets = {generate_secret() for _ in range(200)}
    assert len(secrets) == 200
    for s in secrets:
        # 32 bytes -> 43 base64url chars, no padding
        assert len(s) == 43
        assert set(s) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")
