"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))
    full_name = fields.String(load_default=None, validate=validate.Length(max=100))


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload carrying an opaque refresh secret."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class TokenResponseSchema(Schema):
    """Response payload containing an access/refresh pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer(required=True)


class UserSchema(Schema):
    """Public representation of a registered user."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    username = fields.String(required=True)
    full_name = fields.String(allow_none=True)
    roles = fields.List(fields.String())


class WhoAmISchema(Schema):
    """Response payload exposing the identity carried by the access token."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    name = fields.String(required=True)
    roles = fields.List(fields.String())
    expires_at = fields.DateTime(format="iso")
