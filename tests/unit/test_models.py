"""
Unit tests for the User and Token records.
"""

from userapi.models import User, Token, TOKEN_TTL_MS, TOKEN_ID_LENGTH


class TestUser:

    def test_wire_names(self):
        user = User("Ada", "Lovelace", "555", "abc123")

        assert user.to_dict() == {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "phone": "555",
            "hashedPassword": "abc123",
            "tosAgreement": True,
        }

    def test_public_dict_hides_hash(self):
        user = User("Ada", "Lovelace", "555", "abc123")

        assert "hashedPassword" not in user.to_public_dict()
        assert "hashedPassword" in user.to_dict()

    def test_from_dict(self):
        user = User.from_dict({"firstName": "Ada", "phone": "555"})

        assert user.first_name == "Ada"
        assert user.last_name == ""
        assert user.tos_agreement is False


class TestToken:

    def test_issue(self):
        token = Token.issue("555", 1_000)

        assert len(token.id) == TOKEN_ID_LENGTH
        assert token.phone == "555"
        assert token.expires == 1_000 + TOKEN_TTL_MS

    def test_expiry_boundary(self):
        token = Token(id="abc", phone="555", expires=5_000)

        assert not token.is_expired(4_999)
        assert token.is_expired(5_000)
        assert token.is_expired(5_001)

    def test_extend(self):
        token = Token(id="abc", phone="555", expires=5_000)
        token.extend(4_000)

        assert token.expires == 4_000 + TOKEN_TTL_MS

    def test_from_dict_bad_expires(self):
        token = Token.from_dict({"id": "abc", "phone": "555", "expires": "soon"})

        assert token.expires == 0
        assert token.is_expired(1)
