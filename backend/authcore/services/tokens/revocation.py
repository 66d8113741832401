"""Logout and family revocation."""

from __future__ import annotations

import logging

from authcore.services._shared.ports import Clock, RefreshTokenStore, utc_now

log = logging.getLogger(__name__)


class RevocationService:
    """
    Revoke refresh tokens by user or by family.

    Both operations are idempotent: already-revoked records are left as they
    are and simply not counted.
    """

    def __init__(self, *, store: RefreshTokenStore, clock: Clock = utc_now) -> None:
        self.store = store
        self.clock = clock

    def logout(self, user_id: str) -> int:
        """
        Revoke every active refresh token of ``user_id`` across all families.

        :returns: Number of records revoked by this call.
        """
        affected = self.store.revoke_all_for_user(str(user_id), self.clock())
        log.info(
            "token.logout",
            extra={"event": "token.logout", "user_id": str(user_id), "affected": affected},
        )
        return affected

    def revoke_family(self, family_id: str) -> int:
        """
        Revoke every unrevoked record of ``family_id``.

        :returns: Number of records revoked by this call.
        """
        affected = self.store.revoke_family(family_id, self.clock())
        log.warning(
            "token.family_revoked",
            extra={"event": "token.family_revoked", "token_family": family_id, "affected": affected},
        )
        return affected
