"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in core/models.py -- dataclasses own domain shape; stores and routes do the work.

Two user shapes exist on purpose:
  IdentityUser -- what the identity provider says about someone, verbatim.
  User         -- the application-local user every other module consumes.
auth/identity.map_identity_user() is the only bridge between them.

Layer rule: no imports from api/, web/, or panel/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class IdentityUser:
    """A user as reported by the identity provider.

    username is the provider's username (for Cognito, usually a UUID when the
    pool signs in by email). login_id is the identifier typed at sign-in, or
    the email claim for hosted-UI logins.
    """

    username: str
    user_id: str = ""  # provider "sub"
    login_id: str = ""
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class User:
    """The application-local user model."""

    id: str
    username: str
    email: str
    role: str  # "admin", "developer", "guest"
    name: str = ""
    given_name: str = ""
    family_name: str = ""
    avatar: str | None = None
    cognito_id: str | None = None
    user_attributes: dict[str, str] = field(default_factory=dict)
    is_active: bool = True
    created_at: str | None = None
    last_login: str | None = None

    @property
    def display_name(self) -> str:
        full = f"{self.name} {self.family_name}".strip()
        return full or self.email or self.username


@dataclass
class TokenBundle:
    """Tokens issued by the identity provider for one sign-in."""

    id_token: str
    access_token: str
    refresh_token: str | None = None
    expires_in: int = 3600


@dataclass
class SignInResult:
    """Outcome of a password sign-in attempt.

    is_signed_in=False with next_step set means the provider wants another
    step (e.g. "NEW_PASSWORD_REQUIRED"); challenge_session must be echoed back
    to complete it.
    """

    is_signed_in: bool
    tokens: TokenBundle | None = None
    next_step: str | None = None
    challenge_session: str | None = None


@dataclass
class AuthSession:
    """A server-side session row. The app session token only carries session_id.

    profile holds fields changed through UserContext.update_user() for this
    session; they overlay the stored User.
    """

    session_id: str
    username: str
    id_token: str
    access_token: str
    expires_at: str  # ISO 8601, app session expiry
    refresh_token: str | None = None
    profile: dict[str, str] = field(default_factory=dict)
    id: int | None = None
    created_at: str | None = None
    is_active: bool = True
