"""Authentication endpoints using the service layer."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, request

from authcore.api.deps import current_claims, json_response, no_store, require_auth, timing
from authcore.schemas import (
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    TokenResponseSchema,
    UserSchema,
    WhoAmISchema,
)
from authcore.services.auth import AuthService, LoginIn, RefreshIn, RegisterIn
from authcore.services.tokens.dto import IssuedTokens

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
user_schema = UserSchema()
whoami_schema = WhoAmISchema()
token_schema = TokenResponseSchema()


def _token_response(issued: IssuedTokens):
    body = {
        "data": token_schema.dump(
            {
                "access_token": issued.access_token,
                "refresh_token": issued.refresh_token,
                "token_type": "bearer",
                "expires_in": issued.expires_in,
            }
        )
    }
    return no_store(json_response(body))


@bp.post("/register")
@timing
def register():
    """Register a new user and return the created representation."""

    payload = register_schema.load(request.get_json(silent=True) or {})
    user = AuthService().register(RegisterIn(**payload))
    return json_response({"data": user_schema.dump(asdict(user))}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue a new token pair (new family)."""

    data = login_schema.load(request.get_json(silent=True) or {})
    issued = AuthService().login(LoginIn(email=data["email"], password=data["password"]))
    return _token_response(issued)


@bp.post("/refresh")
@timing
def refresh():
    """Exchange a refresh secret for a rotated pair in the same family."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    issued = AuthService().refresh(RefreshIn(refresh_token=data["refresh_token"]))
    return _token_response(issued)


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke every active refresh token of the caller."""

    AuthService().logout(current_claims().subject)
    return "", 204


@bp.get("/whoami")
@require_auth
@timing
def whoami():
    """Return the identity carried by the access token."""

    out = AuthService().whoami(current_claims())
    return json_response({"data": whoami_schema.dump(asdict(out))})
