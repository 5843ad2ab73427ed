"""
=============================================================================
FILE STORE
=============================================================================

One-file-per-record JSON persistence.

=============================================================================
ON-DISK LAYOUT
=============================================================================

    <base_dir>/
    ├── users/
    │   ├── 5551234.json        ← key = phone
    │   └── 5559876.json
    └── tokens/
        ├── k3j2h1g0f9e8d7c6b5a4.json   ← key = token id
        └── ...

A collection is a directory; a record key is a file name. There are no
indexes, so every lookup must know the exact key.

=============================================================================
OPERATIONS
=============================================================================

    create(collection, key, data)   open "x" → write → close
                                    RecordExistsError if the file exists
    read(collection, key)           RecordNotFoundError if absent/unreadable
                                    RecordDecodeError if not a JSON object
    update(collection, key, data)   open "r+" → truncate → write → close
                                    RecordNotFoundError if absent
    delete(collection, key)         unlink
                                    RecordNotFoundError if absent

Every failure derives from StoreError, so callers can catch the family or a
specific case.

=============================================================================
CONCURRENCY
=============================================================================

Each single operation holds a lock for its (collection, key) pair, so two
worker threads never interleave writes to the same file. A caller's
read-modify-write sequence spans several operations and is NOT atomic:
two concurrent updates of one record can still lose one of the writes.

=============================================================================
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Tuple, Union

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for all file store failures."""

    def __init__(self, message: str, collection: str = "", key: str = ""):
        super().__init__(message)
        self.collection = collection
        self.key = key


class RecordExistsError(StoreError):
    """create() found a record with the same key."""


class RecordNotFoundError(StoreError):
    """The record does not exist or could not be opened."""


class RecordDecodeError(StoreError):
    """The stored bytes are not a valid JSON document."""


class StoreIOError(StoreError):
    """An unexpected filesystem error (permissions, disk full, ...)."""


class InvalidKeyError(StoreError, ValueError):
    """A collection name or key is not a plain file name."""


class FileStore:
    """
    JSON document store backed by the filesystem.

    Usage:
        store = FileStore(".data")
        store.create("users", "555", {"phone": "555"})
        store.read("users", "555")            # {"phone": "555"}
        store.update("users", "555", {...})
        store.delete("users", "555")
    """

    EXTENSION = ".json"

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()  # Protects _locks

    # =========================================================================
    # PATHS & LOCKS
    # =========================================================================

    @staticmethod
    def is_valid_name(value: str) -> bool:
        """True if `value` can be used as a collection name or record key."""
        if not isinstance(value, str) or not value:
            return False
        if value in (".", ".."):
            return False
        return not any(c in value for c in ("/", "\\", "\x00"))

    @classmethod
    def _check_name(cls, value: str, what: str) -> str:
        if not cls.is_valid_name(value):
            raise InvalidKeyError(f"Invalid {what}: {value!r}")
        return value

    def _path(self, collection: str, key: str) -> Path:
        self._check_name(collection, "collection")
        self._check_name(key, "key")
        return self.base_dir / collection / f"{key}{self.EXTENSION}"

    def _lock_for(self, collection: str, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get((collection, key))
            if lock is None:
                lock = threading.Lock()
                self._locks[(collection, key)] = lock
            return lock

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        """
        Persist a new record. Never overwrites an existing one.

        Raises:
            RecordExistsError: A file for `key` already exists.
            StoreIOError: The directory or file could not be written.
        """
        path = self._path(collection, key)
        payload = json.dumps(data)

        with self._lock_for(collection, key):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreIOError(
                    f"Error creating '{path.parent}' directory: {e}", collection, key
                ) from e

            try:
                # "x" = exclusive create, fails if the file exists
                with open(path, "x", encoding="utf-8") as f:
                    f.write(payload)
            except FileExistsError as e:
                raise RecordExistsError(
                    "Could not create a new file, it may already exist.", collection, key
                ) from e
            except OSError as e:
                raise StoreIOError(f"Error writing to new file: {e}", collection, key) from e

        logger.debug(f"Created {collection}/{key}")

    def read(self, collection: str, key: str) -> Dict[str, Any]:
        """
        Load a record.

        Raises:
            RecordNotFoundError: The file is absent or unreadable.
            RecordDecodeError: The file does not hold a JSON object.
        """
        path = self._path(collection, key)

        with self._lock_for(collection, key):
            try:
                raw = path.read_text(encoding="utf-8")
            except OSError as e:
                raise RecordNotFoundError(
                    f"Record {collection}/{key} not found", collection, key
                ) from e

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Corrupt record {collection}/{key}: {e}")
            raise RecordDecodeError(
                f"Record {collection}/{key} is not valid JSON", collection, key
            ) from e

        if not isinstance(data, dict):
            logger.warning(f"Corrupt record {collection}/{key}: {type(data).__name__} at top level")
            raise RecordDecodeError(
                f"Record {collection}/{key} is not a JSON object", collection, key
            )
        return data

    def update(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        """
        Replace a record's content entirely.

        Raises:
            RecordNotFoundError: There is no record to update.
            StoreIOError: Truncating or writing failed.
        """
        path = self._path(collection, key)
        payload = json.dumps(data)

        with self._lock_for(collection, key):
            try:
                f = open(path, "r+", encoding="utf-8")
            except FileNotFoundError as e:
                raise RecordNotFoundError(
                    "Could not open the file for updating, it may not exist yet.",
                    collection,
                    key,
                ) from e
            except OSError as e:
                raise StoreIOError(f"Error opening file: {e}", collection, key) from e

            with f:
                try:
                    f.truncate(0)
                    f.write(payload)
                except OSError as e:
                    raise StoreIOError(
                        f"Error writing to existing file: {e}", collection, key
                    ) from e

        logger.debug(f"Updated {collection}/{key}")

    def delete(self, collection: str, key: str) -> None:
        """
        Remove a record.

        Raises:
            RecordNotFoundError: There is no such record.
            StoreIOError: The file could not be removed.
        """
        path = self._path(collection, key)

        with self._lock_for(collection, key):
            try:
                path.unlink()
            except FileNotFoundError as e:
                raise RecordNotFoundError(
                    f"Record {collection}/{key} not found", collection, key
                ) from e
            except OSError as e:
                raise StoreIOError(f"Error deleting a file: {e}", collection, key) from e

        logger.debug(f"Deleted {collection}/{key}")

    def exists(self, collection: str, key: str) -> bool:
        """Check whether a record file is present."""
        return self._path(collection, key).is_file()
