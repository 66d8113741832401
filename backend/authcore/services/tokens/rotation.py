"""Refresh-token rotation with reuse detection.

Per-record state machine::

    ACTIVE --rotate--> USED      (terminal)
    ACTIVE --revoke--> REVOKED   (terminal)
    ACTIVE --time----> EXPIRED   (derived from ``expires_at``, never stored)

The atomic ``claim_for_rotation`` is the only source of truth for "was this
token already used". The preceding read is a fast path for tokens that are
already known bad and is never trusted for the reuse decision.
"""

from __future__ import annotations

import logging

from authcore.services._shared.errors import (
    AuthenticationError,
    InvalidTokenError,
    TokenExpiredError,
    TokenReuseDetectedError,
    TokenRevokedError,
)
from authcore.services._shared.ports import (
    Clock,
    PrincipalLoader,
    RefreshTokenRecord,
    RefreshTokenStore,
    utc_now,
)
from authcore.services.tokens.dto import IssuedTokens
from authcore.services.tokens.hasher import hash_secret
from authcore.services.tokens.issuer import TokenIssuer

log = logging.getLogger(__name__)


class RotationEngine:
    """Exchange a refresh secret for a new pair in the same family."""

    def __init__(
        self,
        *,
        store: RefreshTokenStore,
        issuer: TokenIssuer,
        principals: PrincipalLoader,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.issuer = issuer
        self.principals = principals
        self.clock = clock

    def rotate(self, presented_secret: str) -> IssuedTokens:
        """
        Rotate ``presented_secret``.

        :param presented_secret: Raw refresh secret from the client.
        :returns: New access token and refresh secret (same family).
        :raises InvalidTokenError: Unknown secret, or its owner no longer exists.
        :raises TokenRevokedError: The record was revoked.
        :raises TokenExpiredError: ``now >= expires_at``.
        :raises TokenReuseDetectedError: The record was already claimed; the
            whole family has been revoked as a side effect.
        :raises StorageError: The store failed; never retried here.
        """
        if not isinstance(presented_secret, str) or not presented_secret:
            raise self._reject(InvalidTokenError("Empty refresh token."), None)

        digest = hash_secret(presented_secret)
        now = self.clock()

        record = self.store.find_by_hash(digest)
        if record is None:
            raise self._reject(InvalidTokenError(), None)
        # A spent token is reuse even once revoked or expired; the claim below reports it.
        if record.used_at is None:
            if record.revoked_at is not None:
                raise self._reject(TokenRevokedError(), record)
            if now >= record.expires_at:
                raise self._reject(TokenExpiredError(), record)

        before, claimed = self.store.claim_for_rotation(digest, now)
        if not claimed:
            # Lost the race, or the token was already used when first read.
            revoked = self.store.revoke_family(record.token_family, now)
            log.error(
                "refresh.reuse_detected",
                extra={
                    "event": "refresh.reuse_detected",
                    "reason": TokenReuseDetectedError.kind,
                    "user_id": record.user_id,
                    "token_family": record.token_family,
                    "affected": revoked,
                },
            )
            raise TokenReuseDetectedError()

        owner = before or record
        principal = self.principals.load(owner.user_id)
        if principal is None:
            # The claimed token is spent; nothing in the family may outlive its owner.
            self.store.revoke_family(owner.token_family, now)
            raise self._reject(InvalidTokenError("Token owner no longer exists."), owner)

        issued = self.issuer.issue(principal, family=owner.token_family)

        # A concurrent replay may have revoked the family before the new record existed.
        parent = self.store.find_by_hash(digest)
        if parent is not None and parent.revoked_at is not None:
            self.store.revoke_family(owner.token_family, now)
            log.error(
                "refresh.issued_into_revoked_family",
                extra={
                    "event": "refresh.issued_into_revoked_family",
                    "reason": TokenReuseDetectedError.kind,
                    "user_id": owner.user_id,
                    "token_family": owner.token_family,
                },
            )
            return issued

        log.info(
            "refresh.rotated",
            extra={
                "event": "refresh.rotated",
                "user_id": owner.user_id,
                "token_family": owner.token_family,
            },
        )
        return issued

    @staticmethod
    def _reject(
        exc: AuthenticationError, record: RefreshTokenRecord | None
    ) -> AuthenticationError:
        log.warning(
            "refresh.rejected",
            extra={
                "event": "refresh.rejected",
                "reason": exc.kind,
                "user_id": record.user_id if record else None,
                "token_family": record.token_family if record else None,
            },
        )
        return exc
