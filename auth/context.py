"""
auth/context.py -- Per-request authentication context.

AuthService is a thin adapter around the identity provider and the session
store. Every provider or storage failure is logged and reported as None or
False; nothing raises to the caller.

UserContext is what routes and templates work with: the current user, their
provider token, and the operations a signed-in user can perform on their own
session (logout, refresh, profile update, permission checks). One instance is
built per request by auth.dependencies.get_user_context().

Layer rule: no imports from api/, web/, or panel/.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError

from auth.cognito import CognitoClient, IdentityError
from auth.identity import map_identity_user
from auth.models import AuthSession, IdentityUser, TokenBundle, User
from auth.permissions import has_permission
from auth.store import UserStore
from auth.tokens import create_session_token, new_session_id, token_exp_valid
from core.config import Settings

logger = logging.getLogger("casinovizion.auth.context")


NEW_PASSWORD_REQUIRED = "NEW_PASSWORD_REQUIRED"

ACCOUNT_NOT_FOUND = "The email or password you entered is incorrect."
LOGIN_FAILED = "Login failed. Please check your credentials."
ACCOUNT_DISABLED = "This account has been deactivated. Contact an administrator."

_CHALLENGE_MESSAGES = {
    "SOFTWARE_TOKEN_MFA": "MFA code required. Authenticator sign-in is not supported by this panel yet.",
    "SMS_MFA": "SMS verification required. SMS sign-in is not supported by this panel yet.",
}


class InactiveUserError(Exception):
    """Raised by UserContext.login() when the local user record is deactivated."""


def challenge_message(next_step: str | None) -> str:
    """Message for a sign-in step this panel cannot complete."""
    return _CHALLENGE_MESSAGES.get(next_step or "", "Additional verification required.")


def sign_in_error_message(error: IdentityError) -> str:
    """Message for a failed password sign-in.

    Unknown user and wrong password read the same, so the form does not
    reveal which accounts exist.
    """
    if error.name in ("UserNotFoundException", "NotAuthorizedException"):
        return ACCOUNT_NOT_FOUND
    return error.message or LOGIN_FAILED


class AuthService:
    """Session operations against the identity provider and the local session store."""

    def __init__(self, identity: CognitoClient, store: UserStore) -> None:
        self.identity = identity
        self.store = store

    def get_current_user(self, session: AuthSession | TokenBundle) -> IdentityUser | None:
        """Look up the provider user behind an access token (a stored session or a fresh token bundle)."""
        try:
            return self.identity.get_user(session.access_token)
        except IdentityError as e:
            logger.warning("Error getting current user: %s", e.name)
            return None

    def get_session(self, session_id: str) -> AuthSession | None:
        try:
            return self.store.get_session(session_id)
        except SQLAlchemyError as e:
            logger.error("Error fetching session: %s", e)
            return None

    def sign_out(self, session: AuthSession) -> bool:
        """Sign out globally at the provider, then revoke the local session.

        The local session is revoked even when the provider call fails, so the
        browser is always logged out. Returns True only if both steps succeeded.
        """
        ok = True
        try:
            self.identity.global_sign_out(session.access_token)
        except IdentityError as e:
            logger.warning("Provider sign-out failed for %s: %s", session.username, e.name)
            ok = False
        try:
            self.store.revoke_session(session.session_id)
        except SQLAlchemyError as e:
            logger.error("Error revoking session: %s", e)
            ok = False
        return ok

    def refresh_session(self, session: AuthSession) -> str | None:
        """Force a token refresh. Returns the new id token, or None on any failure.

        On success the new tokens are persisted and copied onto session.
        """
        if not session.refresh_token:
            logger.info("No refresh token for session of %s", session.username)
            return None
        try:
            tokens = self.identity.refresh(session.refresh_token, session.username)
            self.store.update_session_tokens(
                session.session_id, tokens.id_token, tokens.access_token, tokens.refresh_token
            )
        except IdentityError as e:
            logger.warning("Error refreshing session: %s", e.name)
            return None
        except SQLAlchemyError as e:
            logger.error("Error storing refreshed tokens: %s", e)
            return None
        session.id_token = tokens.id_token
        session.access_token = tokens.access_token
        if tokens.refresh_token:
            session.refresh_token = tokens.refresh_token
        return tokens.id_token


class UserContext:
    """The signed-in user for one request, or an anonymous context.

    Usage:
        ctx = UserContext(auth_service, store, settings)
        token = ctx.login(identity_user, tokens)   # sign-in routes
        ctx.load(session_id)                       # every other request
        if ctx.has_permission("view_all"): ...
    """

    def __init__(
        self,
        auth_service: AuthService,
        store: UserStore,
        settings: Settings,
        user: User | None = None,
        session: AuthSession | None = None,
    ) -> None:
        self.auth_service = auth_service
        self.store = store
        self.settings = settings
        self.user = user
        self.session = session

    @property
    def token(self) -> str | None:
        return self.session.id_token if self.session else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def load(self, session_id: str) -> bool:
        """Resolve session_id to an active session and active user.

        Per-session profile overrides are laid over the stored user. Returns
        False (and leaves the context anonymous) when anything is missing.
        """
        session = self.auth_service.get_session(session_id)
        if session is None:
            return False
        user = self.store.get_by_username(session.username)
        if user is None or not user.is_active:
            return False
        self.session = session
        self.user = replace(user, **session.profile) if session.profile else user
        return True

    def login(
        self, identity_user: IdentityUser, tokens: TokenBundle, user_attributes: dict[str, str] | None = None
    ) -> str:
        """Record a successful provider sign-in and return a signed app session token.

        Raises InactiveUserError when the local record has been deactivated.
        """
        mapped = map_identity_user(identity_user, user_attributes or {}, self.settings.default_role)
        stored = self.store.get_by_username(mapped.username)
        if stored is not None and not stored.is_active:
            logger.warning("Sign-in refused for deactivated user %s", mapped.username)
            raise InactiveUserError(mapped.username)

        user = self.store.upsert_user(mapped)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.settings.token_expire_seconds)
        session = AuthSession(
            session_id=new_session_id(),
            username=user.username,
            id_token=tokens.id_token,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=expires_at.isoformat(),
        )
        self.store.create_session(session)
        self.store.update_last_login(user.username)
        logger.info("User %s signed in with role %s", user.username, user.role)

        self.user = user
        self.session = session
        return create_session_token(session.session_id, user.username, user.role)

    def complete_sign_in(self, tokens: TokenBundle, login_id: str = "") -> str:
        """Fetch the provider user for fresh tokens and log them in.

        login_id is the identifier typed into the form; it wins over the email
        attribute. Raises IdentityError when the provider user cannot be read,
        InactiveUserError when the account is disabled.
        """
        identity_user = self.auth_service.get_current_user(tokens)
        if identity_user is None:
            raise IdentityError("UserNotFoundException")
        if login_id:
            identity_user.login_id = login_id
        return self.login(identity_user, tokens)

    def logout(self) -> None:
        if self.session is not None:
            if not self.auth_service.sign_out(self.session):
                logger.warning("Sign-out for %s completed locally only", self.session.username)
        self.user = None
        self.session = None

    def update_user(self, **fields: str) -> None:
        """Shallow-merge profile fields into the current user for this session.

        No-op when there is no user. Only UserStore.PROFILE_FIELDS may be
        changed; anything else raises ValueError.
        """
        if self.user is None or self.session is None:
            return
        profile = {**self.session.profile, **fields}
        self.store.update_session_profile(self.session.session_id, profile)
        self.session.profile = profile
        self.user = replace(self.user, **fields)

    def has_permission(self, permission: str) -> bool:
        return has_permission(self.user, permission)

    def refresh_token(self) -> str | None:
        if self.session is None:
            return None
        return self.auth_service.refresh_session(self.session)

    def validate_token(self) -> bool:
        """True iff the provider id token has an exp claim later than now."""
        return token_exp_valid(self.token)
