"""
auth/oauth.py -- Authlib OIDC client for the Cognito hosted UI.

Social sign-in (Google, Facebook, Apple) is federated by the Cognito user
pool: the app always talks to one OIDC client ("cognito") and asks the hosted
UI to jump straight to a provider with identity_provider=<name>.

The client is registered only when COGNITO_DOMAIN and COGNITO_CLIENT_ID are
configured; otherwise get_enabled_providers() returns [] and the login
template renders no social buttons.

OAuth state:
  The post-login return URL travels inside the OAuth state value:
      state = "<nonce>.<base64url(json {"returnUrl": ...})>"
  authlib stores the state in the Starlette session and rejects a callback
  whose state does not match, so the nonce keeps its CSRF role while the
  second half carries the return URL across the redirect. parse_oauth_state()
  always passes the URL through safe_return_url() before it is used.

Layer rule: no imports from api/, web/, or panel/. Import from core/
is allowed -- core/ is the kernel layer.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import secrets

from authlib.integrations.starlette_client import OAuth

from core.config import get_settings

logger = logging.getLogger("casinovizion.auth.oauth")

HOME_PATH = "/adminpanel"
LOGIN_PATH = "/adminpanel/login"

# Cognito identity provider name -> button label
_PROVIDER_LABELS = {
    "Google": "Google",
    "Facebook": "Facebook",
    "SignInWithApple": "Apple",
}

# ---------------------------------------------------------------------------
# Authlib OAuth registry
# ---------------------------------------------------------------------------

oauth = OAuth()

_cfg = get_settings()

if _cfg.cognito_domain and _cfg.cognito_client_id and _cfg.cognito_user_pool_id:
    oauth.register(
        name="cognito",
        client_id=_cfg.cognito_client_id,
        client_secret=_cfg.cognito_client_secret or None,
        server_metadata_url=_cfg.cognito_discovery_url,
        client_kwargs={"scope": "openid email profile"},
    )
    logger.info("Cognito hosted UI registered (%s)", _cfg.cognito_domain)


# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------


def get_enabled_providers() -> list[dict]:
    """Return {"name", "label"} for every social provider offered on the login page.

    Used by GET /api/v1/auth/providers and the login template. Empty when the
    hosted UI is not configured.
    """
    cfg = get_settings()
    if not (cfg.cognito_domain and cfg.cognito_client_id and cfg.cognito_user_pool_id):
        return []
    return [{"name": name, "label": _PROVIDER_LABELS.get(name, name)} for name in cfg.social_providers]


def is_enabled_provider(name: str) -> bool:
    return any(p["name"] == name for p in get_enabled_providers())


# ---------------------------------------------------------------------------
# Return-URL handling
# ---------------------------------------------------------------------------


def safe_return_url(url: str | None, default: str = HOME_PATH) -> str:
    """Return url only if it is a same-origin path, else default.

    Rejects absolute URLs, protocol-relative "//host" and backslash tricks.
    """
    if not url or not url.startswith("/") or url.startswith("//") or "\\" in url:
        return default
    return url


def build_oauth_state(return_url: str | None) -> str:
    """Encode a fresh nonce plus the return URL into an OAuth state value."""
    nonce = secrets.token_urlsafe(16)
    payload = json.dumps({"returnUrl": safe_return_url(return_url)}, separators=(",", ":"))
    encoded = base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")
    return f"{nonce}.{encoded}"


def parse_oauth_state(state: str | None) -> str:
    """Recover the return URL from an OAuth state value.

    Returns:
      the (safe) returnUrl when present,
      HOME_PATH when there is no state or it carries no usable returnUrl,
      LOGIN_PATH when a state is present but cannot be decoded.
    """
    if not state:
        return HOME_PATH
    if "." not in state:
        return LOGIN_PATH
    encoded = state.split(".", 1)[1]
    try:
        raw = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
        data = json.loads(raw)
    except (binascii.Error, ValueError) as e:
        logger.warning("Unreadable OAuth state: %s", e)
        return LOGIN_PATH
    if not isinstance(data, dict):
        return LOGIN_PATH
    return_url = data.get("returnUrl")
    return safe_return_url(return_url if isinstance(return_url, str) else None)
