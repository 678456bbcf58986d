"""
auth/tokens.py -- App session tokens and provider token inspection.

Token handling:
  App session token: python-jose with HS256. Tokens are signed with SECRET_KEY
       and carry the session_id, username (sub), role and expiry. They never
       contain provider tokens -- those stay server-side in auth_sessions.
       Verification returns None on any failure; the route layer turns that
       into a 401 or a login redirect.

  Provider tokens: token_exp_valid() reads the exp claim of a Cognito id token
       WITHOUT verifying its signature. It only answers "has this expired?"
       for a token we received directly from the provider over TLS and stored
       ourselves. It is never used to authenticate anything.

  SECRET_KEY: taken from get_settings(), which has already enforced the
       key policy (see core/config.py) before this module loads.

Layer rule: imports core/ only; never api/, web/, or panel/.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("casinovizion.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

COOKIE_NAME = "session_token"


def new_session_id() -> str:
    """Return an unguessable session identifier (256 bits, URL-safe)."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# App session JWT encode / decode
# ---------------------------------------------------------------------------


def create_session_token(session_id: str, username: str, role: str, expire_seconds: int = 0) -> str:
    """Encode a signed app session token.

    Args:
        session_id:     auth_sessions.session_id the token points at.
        username:       Stored as the JWT subject claim.
        role:           Role at sign-in time; informational only -- permission
                        checks always read the stored user.
        expire_seconds: Session duration. 0 (default) uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": username,
        "session_id": session_id,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_session_token(token: str) -> dict | None:
    """Decode and verify an app session token. Returns the payload or None."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
        if "session_id" not in payload or "sub" not in payload:
            return None
        return payload
    except JWTError:
        return None


# ---------------------------------------------------------------------------
# Provider id token inspection
# ---------------------------------------------------------------------------


def token_exp_valid(id_token: str | None, now: float | None = None) -> bool:
    """Return True iff id_token has an exp claim strictly later than now (seconds).

    Missing token, malformed token, missing or non-numeric exp -> False.
    """
    if not id_token:
        return False
    try:
        claims = jwt.get_unverified_claims(id_token)
        exp = float(claims["exp"])
    except (JWTError, KeyError, TypeError, ValueError) as e:
        logger.debug("Token validation failed: %s", e)
        return False
    current = time.time() if now is None else now
    return exp > current


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the app session token as an httpOnly cookie on the response.

    The cookie is httpOnly and SameSite=Lax, Secure when SECURE_COOKIES=true,
    and lives exactly as long as the JWT inside it.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME, httponly=True, samesite="lax", secure=_settings.secure_cookies)
