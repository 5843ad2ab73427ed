"""
=============================================================================
DOMAIN MODELS
=============================================================================

The two records persisted by the API. Both are stored as JSON documents
using the camelCase field names seen on the wire:

    users/<phone>.json
        {"firstName": "A", "lastName": "B", "phone": "555",
         "hashedPassword": "<hex>", "tosAgreement": true}

    tokens/<id>.json
        {"phone": "555", "id": "k3j2...", "expires": 1767225600000}

`expires` is an absolute timestamp in milliseconds since the Unix epoch.

=============================================================================
"""

import time
from dataclasses import dataclass
from typing import Any, Dict

from .utils.hashing import create_random_string

USERS = "users"
TOKENS = "tokens"

TOKEN_ID_LENGTH = 20
TOKEN_TTL_MS = 60 * 60 * 1000  # 1 hour


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class User:
    """A registered user, keyed by phone number."""

    first_name: str
    last_name: str
    phone: str
    hashed_password: str
    tos_agreement: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "hashedPassword": self.hashed_password,
            "tosAgreement": self.tos_agreement,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Wire representation without the password hash."""
        data = self.to_dict()
        del data["hashedPassword"]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            phone=data.get("phone", ""),
            hashed_password=data.get("hashedPassword", ""),
            tos_agreement=bool(data.get("tosAgreement", False)),
        )


@dataclass
class Token:
    """
    A login session token.

    Tokens are valid while `expires` lies in the future. Expired tokens are
    not cleaned up; they stay on disk until explicitly deleted.
    """

    id: str
    phone: str
    expires: int

    @classmethod
    def issue(cls, phone: str, issued_at_ms: int) -> "Token":
        """Create a fresh token for `phone`, valid for TOKEN_TTL_MS."""
        return cls(
            id=create_random_string(TOKEN_ID_LENGTH),
            phone=phone,
            expires=issued_at_ms + TOKEN_TTL_MS,
        )

    def is_expired(self, at_ms: int) -> bool:
        return self.expires <= at_ms

    def extend(self, from_ms: int) -> None:
        self.expires = from_ms + TOKEN_TTL_MS

    def to_dict(self) -> Dict[str, Any]:
        return {"phone": self.phone, "id": self.id, "expires": self.expires}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        expires = data.get("expires", 0)
        return cls(
            id=data.get("id", ""),
            phone=data.get("phone", ""),
            expires=expires if isinstance(expires, (int, float)) else 0,
        )
