"""
=============================================================================
API ERRORS
=============================================================================

Error taxonomy for resource handlers.

Handlers raise these exceptions; the Dispatcher catches them at the handler
boundary and turns them into an HTTP status plus a JSON body:

    ┌──────────────────┬────────┬──────────────────────────────────────────┐
    │ Exception        │ Status │ Raised when                              │
    ├──────────────────┼────────┼──────────────────────────────────────────┤
    │ ValidationError  │ 400    │ Missing or malformed input               │
    │ NotFoundError    │ 404    │ Direct lookup found nothing              │
    │                  │ 400    │ Existence precondition failed            │
    │ ConflictError    │ 400    │ Record already exists                    │
    │ StorageError     │ 500    │ File store failed                        │
    └──────────────────┴────────┴──────────────────────────────────────────┘

Response body:

    {"Error": "<message>"}     when a message is set
    {}                         when it is not (plain 404 lookups)

=============================================================================
"""

from typing import Optional

from .http.status_codes import HTTPStatus


class APIError(Exception):
    """
    Base class for errors that map onto an HTTP response.

    Subclasses set a default status; callers may override it per raise,
    e.g. NotFoundError(..., status_code=400) for precondition checks.
    """

    default_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or "")
        self.message = message
        self.status_code = int(status_code if status_code is not None else self.default_status)

    def to_body(self) -> dict:
        """Build the JSON body sent to the client."""
        if self.message:
            return {"Error": self.message}
        return {}


class ValidationError(APIError):
    """Missing or malformed request input."""

    default_status = HTTPStatus.BAD_REQUEST


class NotFoundError(APIError):
    """The addressed record does not exist."""

    default_status = HTTPStatus.NOT_FOUND


class ConflictError(APIError):
    """A record with the same key already exists."""

    default_status = HTTPStatus.BAD_REQUEST


class StorageError(APIError):
    """The file store could not complete the operation."""

    default_status = HTTPStatus.INTERNAL_SERVER_ERROR


MISSING_FIELDS = "Missing required fields."
