"""
Unit tests for the JSON file store.
"""

import json
import threading

import pytest

from userapi.storage import (
    FileStore,
    StoreError,
    RecordExistsError,
    RecordNotFoundError,
    RecordDecodeError,
    InvalidKeyError,
)


class TestCreateRead:

    def test_create_then_read(self, store: FileStore):
        store.create("users", "555", {"phone": "555", "tosAgreement": True})

        assert store.read("users", "555") == {"phone": "555", "tosAgreement": True}

    def test_file_layout(self, store: FileStore):
        store.create("tokens", "abc", {"id": "abc"})

        path = store.base_dir / "tokens" / "abc.json"
        assert path.is_file()
        assert json.loads(path.read_text()) == {"id": "abc"}

    def test_create_existing(self, store: FileStore):
        store.create("users", "555", {"v": 1})

        with pytest.raises(RecordExistsError) as exc_info:
            store.create("users", "555", {"v": 2})

        assert exc_info.value.collection == "users"
        assert exc_info.value.key == "555"
        assert store.read("users", "555") == {"v": 1}

    def test_read_missing(self, store: FileStore):
        with pytest.raises(RecordNotFoundError):
            store.read("users", "nobody")

    def test_read_corrupt(self, store: FileStore):
        path = store.base_dir / "users" / "555.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        with pytest.raises(RecordDecodeError):
            store.read("users", "555")

    @pytest.mark.parametrize("content", ["[]", "3", "\"x\"", "null"])
    def test_read_non_object(self, store: FileStore, content):
        path = store.base_dir / "tokens" / "abc.json"
        path.parent.mkdir(parents=True)
        path.write_text(content)

        with pytest.raises(RecordDecodeError):
            store.read("tokens", "abc")

    def test_errors_share_base(self, store: FileStore):
        with pytest.raises(StoreError):
            store.read("users", "nobody")


class TestUpdateDelete:

    def test_update_replaces_content(self, store: FileStore):
        store.create("users", "555", {"firstName": "Alexandria", "extra": True})
        store.update("users", "555", {"firstName": "Al"})

        # Shorter content must not leave trailing bytes behind
        assert store.read("users", "555") == {"firstName": "Al"}

    def test_update_missing(self, store: FileStore):
        with pytest.raises(RecordNotFoundError):
            store.update("users", "nobody", {})

    def test_delete(self, store: FileStore):
        store.create("users", "555", {})
        store.delete("users", "555")

        assert not store.exists("users", "555")
        with pytest.raises(RecordNotFoundError):
            store.read("users", "555")

    def test_delete_missing(self, store: FileStore):
        with pytest.raises(RecordNotFoundError):
            store.delete("users", "nobody")


class TestNames:

    @pytest.mark.parametrize("key", ["", ".", "..", "a/b", "../x", "a\\b", "a\x00b"])
    def test_invalid_keys(self, store: FileStore, key: str):
        assert not FileStore.is_valid_name(key)
        with pytest.raises(InvalidKeyError):
            store.read("users", key)

    def test_invalid_key_is_value_error(self, store: FileStore):
        with pytest.raises(ValueError):
            store.create("users", "../escape", {})

    def test_invalid_collection(self, store: FileStore):
        with pytest.raises(InvalidKeyError):
            store.create("../etc", "key", {})

    @pytest.mark.parametrize("key", ["5551234567", "k3j2h1g0f9e8d7c6b5a4", "a.b"])
    def test_valid_keys(self, key: str):
        assert FileStore.is_valid_name(key)


class TestConcurrency:

    def test_concurrent_create_single_winner(self, store: FileStore):
        """Only one of many simultaneous creates of one key succeeds."""
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(8)

        def attempt(n):
            barrier.wait()
            try:
                store.create("users", "555", {"n": n})
                outcome = "created"
            except RecordExistsError:
                outcome = "exists"
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("created") == 1
        assert results.count("exists") == 7
