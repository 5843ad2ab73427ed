"""
Shared plumbing for resource handlers.

A resource owns a Router whose routes are bound methods of the resource,
so every handler sees the same store and hasher:

    class UsersResource(Resource):
        base_path = "users"

        def routes(self):
            self.router.get("")(self.get)
"""

from typing import Any, Dict, Optional
import logging

from ..errors import MISSING_FIELDS, ValidationError
from ..http.router import Router
from ..storage import FileStore

logger = logging.getLogger(__name__)


def string_field(data: Dict[str, Any], name: str) -> Optional[str]:
    """
    Trimmed string value of `name`, or None.

    A field is present only if it is a str that is non-empty once
    surrounding whitespace is removed.
    """
    value = data.get(name)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def key_field(data: Dict[str, Any], name: str) -> Optional[str]:
    """Like string_field, but the value must also be usable as a record key."""
    value = string_field(data, name)
    if value is None or not FileStore.is_valid_name(value):
        return None
    return value


def require(*values: Any) -> None:
    """Raise a 400 "Missing required fields." if any value is falsy."""
    if not all(values):
        raise ValidationError(MISSING_FIELDS)


class Resource:
    """Base class: holds the store and builds the router."""

    base_path = ""

    def __init__(self, store: FileStore):
        self.store = store
        self.router = Router(self.base_path)
        self.routes()

    def routes(self) -> None:
        raise NotImplementedError
