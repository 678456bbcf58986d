"""
tests/test_identity.py -- Normalising provider users into the local User model.

Covers:
  - Role from custom:role when it names a known role, default otherwise
  - Email from the sign-in id before the email attribute
  - name / given_name / family_name / picture mapping
  - identity_from_claims() for hosted-UI id_token claims
  - attributes_from_list() flattening
"""

from __future__ import annotations

from auth.identity import ROLE_ATTRIBUTE, attributes_from_list, identity_from_claims, map_identity_user
from auth.models import IdentityUser


def _identity(**attrs) -> IdentityUser:
    return IdentityUser(username="b1f2-uuid", user_id="sub-123", login_id="", attributes=dict(attrs))


class TestMapIdentityUser:
    def test_known_role_attribute_is_used(self) -> None:
        user = map_identity_user(_identity(**{ROLE_ATTRIBUTE: "guest"}), {}, "admin")
        assert user.role == "guest"

    def test_missing_role_falls_back_to_default(self) -> None:
        user = map_identity_user(_identity(), {}, "developer")
        assert user.role == "developer"

    def test_unknown_role_falls_back_to_default(self) -> None:
        user = map_identity_user(_identity(**{ROLE_ATTRIBUTE: "root"}), {}, "admin")
        assert user.role == "admin"

    def test_extra_attributes_override_provider_attributes(self) -> None:
        user = map_identity_user(_identity(**{ROLE_ATTRIBUTE: "guest"}), {ROLE_ATTRIBUTE: "developer"}, "admin")
        assert user.role == "developer"

    def test_login_id_wins_over_email_attribute(self) -> None:
        identity = _identity(email="attr@example.com")
        identity.login_id = "typed@example.com"
        assert map_identity_user(identity, {}, "admin").email == "typed@example.com"

    def test_email_attribute_used_without_login_id(self) -> None:
        user = map_identity_user(_identity(email="attr@example.com"), {}, "admin")
        assert user.email == "attr@example.com"

    def test_profile_fields(self) -> None:
        user = map_identity_user(
            _identity(given_name="Dana", family_name="Reyes", picture="https://cdn.example.com/d.png"),
            {},
            "admin",
        )
        assert user.id == user.username == "b1f2-uuid"
        assert user.cognito_id == "sub-123"
        assert user.name == "Dana"
        assert user.given_name == "Dana"
        assert user.family_name == "Reyes"
        assert user.avatar == "https://cdn.example.com/d.png"
        assert user.display_name == "Dana Reyes"

    def test_missing_profile_fields_are_empty(self) -> None:
        user = map_identity_user(_identity(), {}, "admin")
        assert user.name == ""
        assert user.family_name == ""
        assert user.avatar is None
        assert user.display_name == "b1f2-uuid"


class TestIdentityFromClaims:
    def test_cognito_username_claim_preferred(self) -> None:
        identity = identity_from_claims(
            {"sub": "sub-1", "cognito:username": "google_1234", "email": "dana@example.com", "exp": 1700000000}
        )
        assert identity.username == "google_1234"
        assert identity.user_id == "sub-1"
        assert identity.login_id == "dana@example.com"

    def test_falls_back_to_sub(self) -> None:
        assert identity_from_claims({"sub": "sub-1"}).username == "sub-1"

    def test_non_string_claims_dropped(self) -> None:
        identity = identity_from_claims({"sub": "s", "exp": 1, "identities": [{"providerName": "Google"}]})
        assert identity.attributes == {"sub": "s"}


def test_attributes_from_list() -> None:
    entries = [{"Name": "email", "Value": "a@example.com"}, {"Name": "email_verified"}, {"Value": "orphan"}]
    assert attributes_from_list(entries) == {"email": "a@example.com", "email_verified": ""}
