"""
auth/identity.py -- Normalise identity-provider users into the local User model.

Two entry points feed the same mapper:
  map_identity_user()  -- password sign-in (GetUser response + sign-in id)
  identity_from_claims() -- hosted-UI sign-in (verified id_token claims)

Pure functions; no I/O.
"""

from __future__ import annotations

import logging

from auth.models import IdentityUser, User
from auth.permissions import ROLES

logger = logging.getLogger("casinovizion.auth.identity")

ROLE_ATTRIBUTE = "custom:role"


def map_identity_user(identity_user: IdentityUser, user_attributes: dict[str, str], default_role: str) -> User:
    """Build the application User from a provider user and its attributes.

    The role comes from the custom:role attribute when it names a known role;
    anything else (missing, empty, misspelled) falls back to default_role.
    """
    attributes = {**identity_user.attributes, **user_attributes}
    role = attributes.get(ROLE_ATTRIBUTE) or ""
    if role not in ROLES:
        if role:
            logger.warning("Ignoring unknown role %r for %s", role, identity_user.username)
        role = default_role
    given_name = attributes.get("given_name") or ""
    return User(
        id=identity_user.username,
        username=identity_user.username,
        email=identity_user.login_id or attributes.get("email") or "",
        role=role,
        cognito_id=identity_user.user_id or None,
        name=given_name,
        given_name=given_name,
        family_name=attributes.get("family_name") or "",
        avatar=attributes.get("picture") or None,
        user_attributes=attributes,
    )


def identity_from_claims(claims: dict) -> IdentityUser:
    """Build an IdentityUser from id_token claims issued by the hosted UI.

    Only string-valued claims become attributes; timestamps and nested
    structures (identities, groups) are dropped.
    """
    attributes = {k: v for k, v in claims.items() if isinstance(v, str)}
    username = claims.get("cognito:username") or claims.get("username") or claims.get("sub") or ""
    return IdentityUser(
        username=username,
        user_id=claims.get("sub") or "",
        login_id=claims.get("email") or "",
        attributes=attributes,
    )


def attributes_from_list(entries: list[dict]) -> dict[str, str]:
    """Flatten Cognito's [{"Name": ..., "Value": ...}] attribute list into a dict."""
    return {e["Name"]: e.get("Value", "") for e in entries if "Name" in e}
