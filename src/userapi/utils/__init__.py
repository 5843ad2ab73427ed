"""
Small shared helpers: password hashing and random identifiers.
"""

from .hashing import PasswordHasher, create_random_string

__all__ = [
    "PasswordHasher",
    "create_random_string",
]
