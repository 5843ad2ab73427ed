"""
=============================================================================
STORAGE PACKAGE
=============================================================================

File-based record persistence:

    FileStore             create / read / update / delete JSON records
    StoreError            base class of every storage failure
    RecordExistsError     create() on an existing key
    RecordNotFoundError   read/update/delete of a missing key
    RecordDecodeError     stored bytes are not JSON
    StoreIOError          any other filesystem failure
    InvalidKeyError       key or collection is not a plain file name

=============================================================================
"""

from .file_store import (
    FileStore,
    StoreError,
    RecordExistsError,
    RecordNotFoundError,
    RecordDecodeError,
    StoreIOError,
    InvalidKeyError,
)

__all__ = [
    "FileStore",
    "StoreError",
    "RecordExistsError",
    "RecordNotFoundError",
    "RecordDecodeError",
    "StoreIOError",
    "InvalidKeyError",
]
