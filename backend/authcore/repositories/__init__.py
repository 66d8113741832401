"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from authcore.repositories.base import BaseRepository
from authcore.repositories.refresh_token import RefreshTokenRepository
from authcore.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
