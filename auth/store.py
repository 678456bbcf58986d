"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as panel/store.py).
UserStore is the repository; _row_to_user / _row_to_session are the mappers.
Route and dependency code never touches SQL directly.

Two tables:
  users         -- one row per person who has signed in. The identity provider
                   owns credentials; this table only records the normalised
                   profile, the role seen at last sign-in, and is_active (the
                   local kill switch used by the users admin page).
  auth_sessions -- one row per app session. Holds the provider tokens so the
                   browser cookie only ever carries an opaque session_id.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Provider tokens are stored in plaintext; the DB file must be protected like
  the SECRET_KEY. Revoked and expired rows are removed by purge_expired().

DB path: auth/casinovizion_auth.db.

Layer rule: no imports from api/, web/, or panel/.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import AuthSession, User

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'casinovizion_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("username", String(255), primary_key=True),  # provider username
    Column("email", String(320), nullable=False, server_default=""),
    Column("role", String(30), nullable=False, server_default="guest"),
    Column("name", Text, nullable=False, server_default=""),
    Column("given_name", Text, nullable=False, server_default=""),
    Column("family_name", Text, nullable=False, server_default=""),
    Column("avatar", Text),
    Column("cognito_id", String(64)),  # provider "sub"
    Column("user_attributes", Text),  # JSON object, string -> string
    Column("created_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("last_login", String(32)),
)

_sessions = Table(
    "auth_sessions",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("session_id", String(64), nullable=False, unique=True),
    Column("username", String(255), nullable=False, index=True),
    Column("id_token", Text, nullable=False),
    Column("access_token", Text, nullable=False),
    Column("refresh_token", Text),
    Column("profile", Text),  # JSON object of per-session profile overrides
    Column("created_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump(mapping: dict | None) -> str:
    return json.dumps(mapping or {}, sort_keys=True)


def _load(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and AuthSession entities.

    Usage:
        store = UserStore()
        store.upsert_user(user)
        store.create_session(AuthSession(session_id=..., username=user.username, ...))
        store.close()
    """

    # Profile fields a session may override via UserContext.update_user().
    PROFILE_FIELDS: frozenset = frozenset({"name", "given_name", "family_name", "email", "avatar"})

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def upsert_user(self, user: User) -> User:
        """Insert or refresh a user from a fresh sign-in and return the stored record.

        Profile fields and role are overwritten with what the provider just
        reported. is_active and created_at are preserved for existing users --
        a deactivated user stays deactivated no matter how often they sign in.
        """
        values = {
            "email": user.email,
            "role": user.role,
            "name": user.name,
            "given_name": user.given_name,
            "family_name": user.family_name,
            "avatar": user.avatar,
            "cognito_id": user.cognito_id,
            "user_attributes": _dump(user.user_attributes),
        }
        with self.engine.connect() as conn:
            existing = conn.execute(_users.select().where(_users.c.username == user.username)).fetchone()
            if existing is None:
                conn.execute(
                    _users.insert().values(
                        username=user.username,
                        created_at=_now_iso(),
                        is_active=1 if user.is_active else 0,
                        **values,
                    )
                )
            else:
                conn.execute(_users.update().where(_users.c.username == user.username).values(**values))
            conn.commit()
            row = conn.execute(_users.select().where(_users.c.username == user.username)).fetchone()
        return _row_to_user(row)

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact provider username. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all recorded users ordered by email, then username."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.email, _users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def set_active(self, username: str, is_active: bool) -> bool:
        """Activate or deactivate a user. Returns False if the username is unknown.

        Deactivation also revokes every open session for that user so the
        change takes effect on the next request, not at token expiry.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.username == username).values(is_active=1 if is_active else 0)
            )
            if result.rowcount and not is_active:
                conn.execute(_sessions.update().where(_sessions.c.username == username).values(is_active=0))
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, username: str) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.username == username).values(last_login=_now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Session queries
    # ------------------------------------------------------------------

    def create_session(self, session: AuthSession) -> int:
        """Insert a new app session and return its row ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.insert().values(
                    session_id=session.session_id,
                    username=session.username,
                    id_token=session.id_token,
                    access_token=session.access_token,
                    refresh_token=session.refresh_token,
                    profile=_dump(session.profile),
                    created_at=_now_iso(),
                    expires_at=session.expires_at,
                    is_active=1,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_session(self, session_id: str) -> AuthSession | None:
        """Return the active, unexpired session for session_id, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _sessions.select().where(
                    (_sessions.c.session_id == session_id)
                    & (_sessions.c.is_active == 1)
                    & (_sessions.c.expires_at > _now_iso())
                )
            ).fetchone()
        return _row_to_session(row) if row is not None else None

    def update_session_tokens(
        self, session_id: str, id_token: str, access_token: str, refresh_token: str | None = None
    ) -> bool:
        """Replace the provider tokens on a session after a refresh.

        refresh_token=None keeps the stored refresh token.
        """
        values = {"id_token": id_token, "access_token": access_token}
        if refresh_token:
            values["refresh_token"] = refresh_token
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.update().where(_sessions.c.session_id == session_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def update_session_profile(self, session_id: str, profile: dict) -> bool:
        """Replace the per-session profile overrides.

        Only PROFILE_FIELDS are accepted. Unknown keys raise ValueError rather
        than being silently dropped.
        """
        unknown = set(profile) - self.PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update().where(_sessions.c.session_id == session_id).values(profile=_dump(profile))
            )
            conn.commit()
        return result.rowcount > 0

    def revoke_session(self, session_id: str) -> bool:
        """Mark a session inactive. Returns False if it did not exist."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.update().where(_sessions.c.session_id == session_id).values(is_active=0))
            conn.commit()
        return result.rowcount > 0

    def purge_expired(self) -> int:
        """Delete revoked and expired sessions. Returns the number removed.

        Called once per startup from the FastAPI lifespan.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.delete().where((_sessions.c.is_active == 0) | (_sessions.c.expires_at <= _now_iso()))
            )
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.username,
        username=row.username,
        email=row.email,
        role=row.role,
        name=row.name,
        given_name=row.given_name,
        family_name=row.family_name,
        avatar=row.avatar,
        cognito_id=row.cognito_id,
        user_attributes=_load(row.user_attributes),
        is_active=bool(row.is_active),
        created_at=row.created_at,
        last_login=row.last_login,
    )


def _row_to_session(row) -> AuthSession:
    return AuthSession(
        id=row.id,
        session_id=row.session_id,
        username=row.username,
        id_token=row.id_token,
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        profile=_load(row.profile),
        created_at=row.created_at,
        expires_at=row.expires_at,
        is_active=bool(row.is_active),
    )
