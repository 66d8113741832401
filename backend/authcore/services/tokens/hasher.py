"""One-way digests for refresh secrets.

The raw secret is a capability: it is handed to the client once and only its
digest is ever persisted or compared.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Final

#: Bytes of entropy per refresh secret (256 bits).
SECRET_NBYTES: Final[int] = 32

#: Length of :func:`hash_secret` output (SHA-256, hex).
DIGEST_LENGTH: Final[int] = 64


def generate_secret() -> str:
    """Return a new URL-safe refresh secret carrying 256 bits of entropy."""
    return secrets.token_urlsafe(SECRET_NBYTES)


def hash_secret(raw_secret: str) -> str:
    """
    Deterministic SHA-256 digest of ``raw_secret`` (UTF-8), lower-case hex.

    :param raw_secret: Secret as presented by the client.
    :returns: 64-character hex digest.
    """
    return hashlib.sha256(raw_secret.encode("utf-8")).hexdigest()
