"""Issue access/refresh token pairs."""

from __future__ import annotations

import logging
from uuid import uuid4

from authcore.services._shared.ports import (
    Clock,
    Principal,
    RefreshTokenRecord,
    RefreshTokenStore,
    TokenProvider,
    utc_now,
)
from authcore.services.tokens.dto import AuthTokenConfig, IssuedTokens
from authcore.services.tokens.hasher import generate_secret, hash_secret

log = logging.getLogger(__name__)


def new_family_id() -> str:
    return str(uuid4())


class TokenIssuer:
    """
    Create a fresh access/refresh pair for a principal.

    The refresh record is persisted *before* the pair is returned, so a token
    never exists client-side without its server-side record.
    """

    def __init__(
        self,
        *,
        store: RefreshTokenStore,
        token_provider: TokenProvider,
        token_cfg: AuthTokenConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """
        :param store: Refresh-token persistence.
        :param token_provider: Access-token signer.
        :param token_cfg: Access/refresh lifetimes.
        :param clock: Source of "now".
        """
        self.store = store
        self.tokens = token_provider
        self.cfg = token_cfg or AuthTokenConfig()
        self.clock = clock

    def issue(self, principal: Principal, family: str | None = None) -> IssuedTokens:
        """
        Issue a pair, starting a new family unless ``family`` is given.

        :param principal: Identity and current roles to embed in the access token.
        :param family: Existing family to extend (rotation) or ``None`` (login).
        :returns: Signed access token, raw refresh secret and the stored record.
        :raises DuplicateTokenHashError: On a digest collision.
        :raises StorageError: When the store cannot persist the record.
        """
        now = self.clock()
        secret = generate_secret()
        record = RefreshTokenRecord(
            id=str(uuid4()),
            user_id=principal.user_id,
            token_hash=hash_secret(secret),
            token_family=family or new_family_id(),
            expires_at=now + self.cfg.refresh_expires,
            created_at=now,
        )
        self.store.insert(record)

        access = self.tokens.create_access_token(
            identity=principal.user_id,
            additional_claims={
                "email": principal.email,
                "name": principal.display_name,
                "roles": sorted(principal.roles),
            },
            expires_delta=self.cfg.access_expires,
        )
        log.info(
            "token.issued",
            extra={
                "event": "token.issued",
                "user_id": principal.user_id,
                "token_family": record.token_family,
            },
        )
        return IssuedTokens(
            access_token=access,
            refresh_token=secret,
            record=record,
            expires_in=int(self.cfg.access_expires.total_seconds()),
        )
