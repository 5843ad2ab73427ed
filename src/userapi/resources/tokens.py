"""
=============================================================================
TOKENS RESOURCE
=============================================================================

    POST    /tokens {phone, password}   → 200 token      login
    GET     /tokens?id=...              → 200 token
    PUT     /tokens {id, extend: true}  → 200 {}         push expiry to now+1h
    DELETE  /tokens?id=...              → 200 {}         logout

Token lifecycle:

    login ──► [valid] ──extend──► [valid] ──time passes──► [expired]
                 │                                            │
                 └────────────── delete ◄─────────────────────┘

Expired tokens are never extended and never reaped; they stay on disk
until deleted.

=============================================================================
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from ..errors import NotFoundError, StorageError, ValidationError
from ..http.dispatcher import RequestContext
from ..http.status_codes import HTTPStatus
from ..models import TOKENS, USERS, Token, User
from ..models import now_ms as current_ms
from ..storage import (
    FileStore,
    RecordDecodeError,
    RecordNotFoundError,
    StoreError,
)
from ..utils.hashing import PasswordHasher
from .base import Resource, key_field, require, string_field

logger = logging.getLogger(__name__)

Result = Tuple[int, Dict[str, Any]]
Clock = Callable[[], int]


def verify_token(
    store: FileStore,
    token_id: str,
    phone: str,
    now_ms: Optional[int] = None,
) -> bool:
    """
    Check that `token_id` belongs to `phone` and has not expired.

    Returns False rather than raising when the token is missing, corrupt
    or addressed by an unusable id.
    """
    if not FileStore.is_valid_name(token_id):
        return False
    try:
        token = Token.from_dict(store.read(TOKENS, token_id))
    except StoreError:
        return False

    if now_ms is None:
        now_ms = current_ms()
    return token.phone == phone and not token.is_expired(now_ms)


class TokensResource(Resource):
    """Login sessions: issue, inspect, extend, revoke."""

    base_path = TOKENS

    def __init__(self, store: FileStore, hasher: PasswordHasher, clock: Clock = current_ms):
        self.hasher = hasher
        self.clock = clock
        super().__init__(store)

    def routes(self) -> None:
        self.router.add_route("", self.post, "post")
        self.router.add_route("", self.get, "get")
        self.router.add_route("", self.put, "put")
        self.router.add_route("", self.delete, "delete")

    def verify(self, token_id: str, phone: str) -> bool:
        """verify_token() against this resource's store and clock."""
        return verify_token(self.store, token_id, phone, self.clock())

    def _load(self, token_id: str) -> Optional[Token]:
        try:
            return Token.from_dict(self.store.read(TOKENS, token_id))
        except RecordNotFoundError:
            return None
        except RecordDecodeError as e:
            raise StorageError("Could not read the specified token.") from e

    def _load_user(self, phone: str) -> Optional[User]:
        try:
            return User.from_dict(self.store.read(USERS, phone))
        except RecordNotFoundError:
            return None
        except RecordDecodeError as e:
            raise StorageError("Could not read the specified user.") from e

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def post(self, ctx: RequestContext) -> Result:
        """Required: phone, password."""
        phone = key_field(ctx.payload, "phone")
        password = string_field(ctx.payload, "password")
        require(phone, password)

        user = self._load_user(phone)
        if user is None:
            raise NotFoundError(
                "A user with that phone number does not exist.",
                status_code=HTTPStatus.BAD_REQUEST,
            )

        if not self.hasher.verify(password, user.hashed_password):
            raise ValidationError("User phone and/or password is not correct.")

        token = Token.issue(phone, self.clock())
        try:
            self.store.create(TOKENS, token.id, token.to_dict())
        except StoreError as e:
            raise StorageError("Could not create the new token.") from e

        logger.info(f"Issued token for {phone}")
        return HTTPStatus.OK, token.to_dict()

    def get(self, ctx: RequestContext) -> Result:
        """Required: query.id."""
        token_id = key_field(ctx.query, "id")
        require(token_id)

        token = self._load(token_id)
        if token is None:
            raise NotFoundError()
        return HTTPStatus.OK, token.to_dict()

    def put(self, ctx: RequestContext) -> Result:
        """Required: id, extend."""
        token_id = key_field(ctx.payload, "id")
        extend = bool(ctx.payload.get("extend"))
        require(token_id, extend)

        token = self._load(token_id)
        if token is None:
            raise NotFoundError(
                "The specified token does not exist.", status_code=HTTPStatus.BAD_REQUEST
            )

        now = self.clock()
        if token.is_expired(now):
            raise ValidationError("The token has already expired and cannot be extended.")

        token.extend(now)
        try:
            self.store.update(TOKENS, token_id, token.to_dict())
        except StoreError as e:
            raise StorageError("Could not update the token's expiration.") from e

        return HTTPStatus.OK, {}

    def delete(self, ctx: RequestContext) -> Result:
        """Required: query.id."""
        token_id = key_field(ctx.query, "id")
        require(token_id)

        if self._load(token_id) is None:
            raise NotFoundError(
                "Could not find the specified token.", status_code=HTTPStatus.BAD_REQUEST
            )

        try:
            self.store.delete(TOKENS, token_id)
        except StoreError as e:
            raise StorageError("Could not delete the specified token.") from e

        logger.info(f"Deleted token {token_id}")
        return HTTPStatus.OK, {}
