from __future__ import annotations

import hashlib

KEY_SALT = b"junkd-pk-salt"
KEY_ITERATIONS = 4096
KEY_LENGTH = 32


class KeyDerivationError(ValueError):
    """Raised when an application key cannot be derived."""


def derive_app_key(secret: str) -> bytes:
    """Derive the 32-byte application key seed from a shared secret."""
    if not secret:
        raise KeyDerivationError("app secret is required")
    return hashlib.pbkdf2_hmac(
        "sha256",
        secret.encode("utf-8"),
        KEY_SALT,
        KEY_ITERATIONS,
        dklen=KEY_LENGTH,
    )


__all__ = ["KeyDerivationError", "derive_app_key"]
