"""
tests/test_user_store.py -- UserStore users and auth_sessions tables.

Each test gets its own named in-memory database.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from auth.models import AuthSession, User
from auth.store import UserStore


@pytest.fixture()
def store():
    s = UserStore(db_url=f"sqlite:///file:userstore_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield s
    s.close()


def _user(username: str = "dana", **kw) -> User:
    defaults = {"id": username, "username": username, "email": f"{username}@example.com", "role": "admin"}
    defaults.update(kw)
    return User(**defaults)


def _session(username: str = "dana", session_id: str = "sid-1", hours: int = 1) -> AuthSession:
    return AuthSession(
        session_id=session_id,
        username=username,
        id_token="id-1",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=(datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat(),
    )


class TestUsers:
    def test_upsert_inserts_and_returns_stored_user(self, store: UserStore) -> None:
        user = store.upsert_user(_user(user_attributes={"custom:role": "admin"}))
        assert user.username == "dana"
        assert user.created_at is not None
        assert user.is_active is True
        assert user.user_attributes == {"custom:role": "admin"}

    def test_upsert_refreshes_profile_and_role(self, store: UserStore) -> None:
        store.upsert_user(_user(role="admin", name="Dana"))
        user = store.upsert_user(_user(role="guest", name="Danielle"))
        assert user.role == "guest"
        assert user.name == "Danielle"

    def test_upsert_preserves_deactivation(self, store: UserStore) -> None:
        store.upsert_user(_user())
        store.set_active("dana", False)
        assert store.upsert_user(_user(is_active=True)).is_active is False

    def test_get_unknown_user(self, store: UserStore) -> None:
        assert store.get_by_username("nobody") is None

    def test_list_users_ordered_by_email(self, store: UserStore) -> None:
        store.upsert_user(_user("zed", email="b@example.com"))
        store.upsert_user(_user("amy", email="c@example.com"))
        store.upsert_user(_user("bob", email="a@example.com"))
        assert [u.username for u in store.list_users()] == ["bob", "zed", "amy"]

    def test_set_active_unknown_user(self, store: UserStore) -> None:
        assert store.set_active("nobody", False) is False

    def test_deactivation_revokes_sessions(self, store: UserStore) -> None:
        store.upsert_user(_user())
        store.create_session(_session())
        assert store.set_active("dana", False) is True
        assert store.get_session("sid-1") is None

    def test_reactivation_does_not_restore_sessions(self, store: UserStore) -> None:
        store.upsert_user(_user())
        store.create_session(_session())
        store.set_active("dana", False)
        store.set_active("dana", True)
        assert store.get_by_username("dana").is_active is True
        assert store.get_session("sid-1") is None

    def test_update_last_login(self, store: UserStore) -> None:
        store.upsert_user(_user())
        store.update_last_login("dana")
        assert store.get_by_username("dana").last_login is not None


class TestSessions:
    def test_create_and_get(self, store: UserStore) -> None:
        row_id = store.create_session(_session())
        session = store.get_session("sid-1")
        assert session.id == row_id
        assert session.username == "dana"
        assert session.refresh_token == "refresh-1"
        assert session.profile == {}

    def test_expired_session_not_returned(self, store: UserStore) -> None:
        store.create_session(_session(hours=-1))
        assert store.get_session("sid-1") is None

    def test_revoked_session_not_returned(self, store: UserStore) -> None:
        store.create_session(_session())
        assert store.revoke_session("sid-1") is True
        assert store.get_session("sid-1") is None
        assert store.revoke_session("missing") is False

    def test_update_tokens_keeps_refresh_token_when_none(self, store: UserStore) -> None:
        store.create_session(_session())
        store.update_session_tokens("sid-1", "id-2", "access-2")
        session = store.get_session("sid-1")
        assert (session.id_token, session.access_token, session.refresh_token) == ("id-2", "access-2", "refresh-1")

    def test_update_profile(self, store: UserStore) -> None:
        store.create_session(_session())
        assert store.update_session_profile("sid-1", {"name": "Dee", "avatar": "https://x.example/a.png"}) is True
        assert store.get_session("sid-1").profile == {"name": "Dee", "avatar": "https://x.example/a.png"}

    def test_update_profile_rejects_unknown_fields(self, store: UserStore) -> None:
        store.create_session(_session())
        with pytest.raises(ValueError, match="role"):
            store.update_session_profile("sid-1", {"role": "admin"})

    def test_purge_expired(self, store: UserStore) -> None:
        store.create_session(_session(session_id="live"))
        store.create_session(_session(session_id="old", hours=-2))
        store.create_session(_session(session_id="revoked"))
        store.revoke_session("revoked")
        assert store.purge_expired() == 2
        assert store.get_session("live") is not None
