"""
=============================================================================
USERS RESOURCE
=============================================================================

    GET     /users?phone=555     → 200 user (without hashedPassword)
    POST    /users               → 200 {}      signup
    PUT     /users               → 200 {}      update names and/or password
    DELETE  /users?phone=555     → 200 {}

Users are stored under users/<phone>.json. The phone number is the
record key and cannot be changed.

=============================================================================
"""

import logging
from typing import Any, Dict, Optional, Tuple

from ..errors import ConflictError, NotFoundError, StorageError
from ..http.dispatcher import RequestContext
from ..http.status_codes import HTTPStatus
from ..models import USERS, User
from ..storage import (
    FileStore,
    RecordDecodeError,
    RecordExistsError,
    RecordNotFoundError,
    StoreError,
)
from ..utils.hashing import PasswordHasher
from .base import Resource, key_field, require, string_field

logger = logging.getLogger(__name__)

Result = Tuple[int, Dict[str, Any]]


class UsersResource(Resource):
    """CRUD handlers for users."""

    base_path = USERS

    def __init__(self, store: FileStore, hasher: PasswordHasher):
        self.hasher = hasher
        super().__init__(store)

    def routes(self) -> None:
        self.router.add_route("", self.get, "get")
        self.router.add_route("", self.post, "post")
        self.router.add_route("", self.put, "put")
        self.router.add_route("", self.delete, "delete")

    def _load(self, phone: str) -> Optional[User]:
        """
        Read a user, or None if there is no such record.

        Raises:
            StorageError: The record exists but cannot be decoded.
        """
        try:
            return User.from_dict(self.store.read(USERS, phone))
        except RecordNotFoundError:
            return None
        except RecordDecodeError as e:
            raise StorageError("Could not read the specified user.") from e

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def get(self, ctx: RequestContext) -> Result:
        """Required: query.phone."""
        phone = key_field(ctx.query, "phone")
        require(phone)

        user = self._load(phone)
        if user is None:
            raise NotFoundError()
        return HTTPStatus.OK, user.to_public_dict()

    def post(self, ctx: RequestContext) -> Result:
        """Required: firstName, lastName, phone, password, tosAgreement."""
        first_name = string_field(ctx.payload, "firstName")
        last_name = string_field(ctx.payload, "lastName")
        phone = key_field(ctx.payload, "phone")
        password = string_field(ctx.payload, "password")
        tos_agreement = bool(ctx.payload.get("tosAgreement"))
        require(first_name, last_name, phone, password, tos_agreement)

        if self._load(phone) is not None:
            raise ConflictError("A user with that phone number already exists.")

        hashed_password = self.hasher.hash(password)
        if not hashed_password:
            raise StorageError("Could not hash the user's password.")

        user = User(
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            hashed_password=hashed_password,
            tos_agreement=True,
        )
        try:
            self.store.create(USERS, phone, user.to_dict())
        except RecordExistsError as e:
            # Lost a race with a concurrent signup for the same phone
            raise ConflictError("A user with that phone number already exists.") from e
        except StoreError as e:
            raise StorageError("Could not create the new user.") from e

        logger.info(f"Created user {phone}")
        return HTTPStatus.OK, {}

    def put(self, ctx: RequestContext) -> Result:
        """Required: phone. Optional (at least one): firstName, lastName, password."""
        phone = key_field(ctx.payload, "phone")
        first_name = string_field(ctx.payload, "firstName")
        last_name = string_field(ctx.payload, "lastName")
        password = string_field(ctx.payload, "password")
        require(phone, first_name or last_name or password)

        user = self._load(phone)
        if user is None:
            raise NotFoundError(
                "The specified user does not exist.", status_code=HTTPStatus.BAD_REQUEST
            )

        if first_name:
            user.first_name = first_name
        if last_name:
            user.last_name = last_name
        if password:
            user.hashed_password = self.hasher.hash(password)

        try:
            self.store.update(USERS, phone, user.to_dict())
        except StoreError as e:
            raise StorageError("Could not update the user.") from e

        return HTTPStatus.OK, {}

    def delete(self, ctx: RequestContext) -> Result:
        """Required: query.phone."""
        phone = key_field(ctx.query, "phone")
        require(phone)

        if self._load(phone) is None:
            raise NotFoundError(
                "Could not find the specified user.", status_code=HTTPStatus.BAD_REQUEST
            )

        try:
            self.store.delete(USERS, phone)
        except StoreError as e:
            raise StorageError("Could not delete the specified user.") from e

        logger.info(f"Deleted user {phone}")
        return HTTPStatus.OK, {}
