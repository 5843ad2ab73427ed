"""
Resource handlers: the business logic behind each API endpoint.

    UsersResource    /users   signup, profile, update, delete
    TokensResource   /tokens  login, inspect, extend, logout
"""

from .base import Resource
from .users import UsersResource
from .tokens import TokensResource, verify_token

__all__ = [
    "Resource",
    "UsersResource",
    "TokensResource",
    "verify_token",
]
