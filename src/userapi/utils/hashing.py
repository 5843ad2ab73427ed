"""
=============================================================================
PASSWORD HASHING & RANDOM IDS
=============================================================================

Passwords are never stored in plaintext. We store a keyed hash instead:

    hashedPassword = HMAC-SHA256(key=hashing_secret, msg=password).hexdigest()

The secret comes from ServerConfig (it differs per environment), so the
hasher is constructed once at startup and handed to the resources that
need it.

Token ids are random strings drawn from [a-z0-9] using the `secrets`
module (cryptographically strong randomness).

=============================================================================
"""

import hmac
import hashlib
import secrets
import string

TOKEN_ALPHABET = string.ascii_lowercase + string.digits


class PasswordHasher:
    """
    Deterministic keyed hash for passwords.

    Usage:
        hasher = PasswordHasher(config.hashing_secret)
        stored = hasher.hash("hunter2")
        hasher.verify("hunter2", stored)   # True
    """

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("hashing secret must not be empty")
        self._key = secret.encode("utf-8")

    def hash(self, password: str) -> str:
        """
        Hash a password.

        Returns an empty string for anything that is not a non-empty
        string; callers treat "" as a hashing failure.
        """
        if not isinstance(password, str) or not password:
            return ""
        return hmac.new(self._key, password.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, password: str, hashed: str) -> bool:
        """Compare a candidate password against a stored hash in constant time."""
        candidate = self.hash(password)
        if not candidate or not isinstance(hashed, str):
            return False
        return hmac.compare_digest(candidate, hashed)


def create_random_string(length: int) -> str:
    """Return a random string of `length` characters from [a-z0-9]."""
    if length <= 0:
        raise ValueError(f"length must be > 0, got {length}")
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
