# authcore/services/auth/service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from authcore.core.container import TokenServices, get_token_services
from authcore.models.user import DEFAULT_ROLE, User
from authcore.repositories.user import UserRepository
from authcore.services._shared.base import BaseService, ServiceContext
from authcore.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    ServiceError,
)
from authcore.services._shared.ports import Principal
from authcore.services.auth.dto import LoginIn, RefreshIn, RegisterIn, UserOut, WhoAmIOut
from authcore.services.tokens.dto import AccessTokenClaims, IssuedTokens

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Authentication lifecycle facade (register / login / refresh / logout / whoami).

    Password checks live here; every token operation is delegated to the
    token services. Service errors are translated to API errors on the way
    out, so all token and credential failures surface as the same 401.
    """

    def __init__(
        self,
        *,
        tokens: TokenServices | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        :param tokens: Token services; defaults to those of the current app.
        :param ctx: Request-scoped context.
        """
        super().__init__(ctx=ctx)
        self.tokens = tokens or get_token_services()

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> UserOut:
        """
        Create a user with the default role.

        :raises Conflict: Email or username already taken.
        """
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_email_or_username(dto.email, dto.username):
                    raise ConflictError("User", "email or username already registered")
                user = User(
                    email=dto.email,
                    username=dto.username,
                    full_name=dto.full_name,
                    roles=DEFAULT_ROLE,
                )
                user.password = dto.password
                repo.add(user)
                out = self._to_user_out(user)
        except IntegrityError as exc:
            # Lost a race against a concurrent registration.
            raise self.translate_exceptions(
                ConflictError("User", "email or username already registered")
            ) from exc
        except ServiceError as exc:
            raise self.translate_exceptions(exc) from exc
        log.info("user.registered", extra={"event": "user.registered", "user_id": str(out.id)})
        return out

    # ------------------------------------------------------------------ #
    # Login / refresh
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> IssuedTokens:
        """
        Verify credentials and start a new token family.

        :raises Unauthorized: Unknown email or wrong password.
        """
        try:
            with self.ro_uow() as uow:
                user = uow.users.authenticate(dto.email, dto.password)
                if user is None:
                    log.warning(
                        "auth.login_failed",
                        extra={"event": "auth.login_failed", "reason": InvalidCredentialsError.kind},
                    )
                    raise InvalidCredentialsError()
                principal = self._to_principal(user)
            return self.tokens.issuer.issue(principal)
        except ServiceError as exc:
            raise self.translate_exceptions(exc) from exc

    def refresh(self, dto: RefreshIn) -> IssuedTokens:
        """
        Rotate a refresh secret.

        :raises Unauthorized: Invalid, expired, revoked or reused secret.
        :raises ServiceUnavailable: The token store failed.
        """
        try:
            return self.tokens.rotation.rotate(dto.refresh_token)
        except ServiceError as exc:
            raise self.translate_exceptions(exc) from exc

    # ------------------------------------------------------------------ #
    # Logout / identity
    # ------------------------------------------------------------------ #

    def logout(self, user_id: str) -> int:
        """Revoke every active refresh token of ``user_id``; returns the count."""
        try:
            return self.tokens.revocation.logout(user_id)
        except ServiceError as exc:
            raise self.translate_exceptions(exc) from exc

    def verify_access(self, access_token: str) -> AccessTokenClaims:
        """Validate a bearer access token without touching the store."""
        try:
            return self.tokens.validator.validate(access_token)
        except ServiceError as exc:
            log.warning(
                "auth.access_rejected",
                extra={"event": "auth.access_rejected", "reason": getattr(exc, "kind", None)},
            )
            raise self.translate_exceptions(exc) from exc

    def whoami(self, claims: AccessTokenClaims) -> WhoAmIOut:
        """Identity view of an already verified access token."""
        return WhoAmIOut(
            id=claims.subject,
            email=claims.email,
            name=claims.name,
            roles=sorted(claims.roles),
            expires_at=claims.expires_at,
        )

    # ------------------------------------------------------------------ #
    # Mapping helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _to_principal(user: User) -> Principal:
        return Principal(
            user_id=str(user.id),
            email=user.email,
            display_name=user.display_name,
            roles=user.role_set,
        )

    @staticmethod
    def _to_user_out(user: User) -> UserOut:
        return UserOut(
            id=user.id,
            email=user.email,
            username=user.username,
            full_name=user.full_name,
            roles=sorted(user.role_set),
        )
