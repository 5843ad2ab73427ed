"""
Unit tests for the /users handlers, driven through the dispatcher.
"""

import pytest

from userapi.storage import FileStore
from userapi.utils import PasswordHasher


@pytest.fixture
def call(dispatcher, build_request):
    """call(method, query=..., payload=...) → (status, json body) on /users."""
    def _call(method, query=None, payload=None, raw_body=None):
        response = dispatcher(build_request(method, "/users", query, payload, raw_body))
        return response.status, response.json()
    return _call


@pytest.fixture
def existing_user(call, signup_payload):
    assert call("POST", payload=signup_payload) == (200, {})
    return signup_payload


class TestCreateUser:

    def test_create(self, call, store: FileStore, hasher: PasswordHasher, signup_payload):
        assert call("POST", payload=signup_payload) == (200, {})

        record = store.read("users", "5551234567")
        assert record == {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "phone": "5551234567",
            "hashedPassword": hasher.hash("hunter2"),
            "tosAgreement": True,
        }

    def test_fields_are_trimmed(self, call, store: FileStore, signup_payload):
        signup_payload.update(firstName="  Ada ", phone=" 5551234567 ")
        call("POST", payload=signup_payload)

        record = store.read("users", "5551234567")
        assert record["firstName"] == "Ada"

    @pytest.mark.parametrize("field, value", [
        ("firstName", None),
        ("firstName", "   "),
        ("lastName", ""),
        ("phone", 5551234567),
        ("phone", "../../etc"),
        ("password", ""),
        ("tosAgreement", False),
        ("tosAgreement", None),
    ])
    def test_missing_fields(self, call, signup_payload, field, value):
        signup_payload[field] = value

        assert call("POST", payload=signup_payload) == (400, {"Error": "Missing required fields."})

    def test_malformed_json(self, call):
        assert call("POST", raw_body=b"{nope") == (400, {"Error": "Missing required fields."})

    def test_duplicate(self, call, store: FileStore, existing_user):
        original = store.read("users", "5551234567")
        status, body = call("POST", payload={
            **existing_user,
            "firstName": "Grace",
            "lastName": "Hopper",
            "password": "different",
        })

        assert status == 400
        assert body == {"Error": "A user with that phone number already exists."}
        assert store.read("users", "5551234567") == original


class TestGetUser:

    def test_get(self, call, existing_user):
        status, body = call("GET", query={"phone": "5551234567"})

        assert status == 200
        assert body == {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "phone": "5551234567",
            "tosAgreement": True,
        }

    def test_get_missing(self, call):
        assert call("GET", query={"phone": "5550000000"}) == (404, {})

    def test_get_no_phone(self, call):
        assert call("GET") == (400, {"Error": "Missing required fields."})

    def test_get_corrupt_record(self, call, store: FileStore):
        path = store.base_dir / "users" / "555.json"
        path.parent.mkdir(parents=True)
        path.write_text("not json")

        status, body = call("GET", query={"phone": "555"})

        assert status == 500
        assert "Error" in body


class TestUpdateUser:

    def test_update_names(self, call, existing_user, store: FileStore, hasher: PasswordHasher):
        assert call("PUT", payload={"phone": "5551234567", "lastName": "King"}) == (200, {})

        record = store.read("users", "5551234567")
        assert record["lastName"] == "King"
        assert record["firstName"] == "Ada"
        assert record["hashedPassword"] == hasher.hash("hunter2")

    def test_update_password(self, call, existing_user, store: FileStore, hasher: PasswordHasher):
        call("PUT", payload={"phone": "5551234567", "password": "s3cret"})

        assert store.read("users", "5551234567")["hashedPassword"] == hasher.hash("s3cret")

    def test_phone_is_immutable(self, call, existing_user, store: FileStore):
        call("PUT", payload={"phone": "5551234567", "firstName": "Augusta"})

        assert store.read("users", "5551234567")["phone"] == "5551234567"

    def test_nothing_to_update(self, call, existing_user):
        assert call("PUT", payload={"phone": "5551234567"}) == (
            400, {"Error": "Missing required fields."}
        )

    def test_no_phone(self, call):
        assert call("PUT", payload={"firstName": "Ada"}) == (
            400, {"Error": "Missing required fields."}
        )

    def test_unknown_user(self, call):
        assert call("PUT", payload={"phone": "5550000000", "firstName": "Ada"}) == (
            400, {"Error": "The specified user does not exist."}
        )


class TestDeleteUser:

    def test_delete(self, call, existing_user, store: FileStore):
        assert call("DELETE", query={"phone": "5551234567"}) == (200, {})
        assert not store.exists("users", "5551234567")
        assert call("GET", query={"phone": "5551234567"}) == (404, {})

    def test_delete_missing(self, call):
        assert call("DELETE", query={"phone": "5550000000"}) == (
            400, {"Error": "Could not find the specified user."}
        )

    def test_delete_no_phone(self, call):
        assert call("DELETE") == (400, {"Error": "Missing required fields."})
