"""Version 1 of the HTTP API."""

from __future__ import annotations

from flask import Blueprint

API_VERSION = "v1"


def blueprints() -> list[tuple[Blueprint, str]]:
    """Blueprints of this version with their mount points, e.g. ``/api/v1/auth``."""
    from .auth import bp as auth_bp
    from .health import bp as health_bp

    return [(health_bp, ""), (auth_bp, "auth")]
