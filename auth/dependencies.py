"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token carriers are checked in priority order:
  1. App session cookie ("session_token") -- set by the web UI login flows.
  2. Authorization: Bearer <token> header -- API clients.

Both carry the same app session JWT. It resolves to a server-side session row
and then to the locally recorded user; a revoked session or a deactivated user
is treated as unauthenticated.

get_user_context() is the soft variant (anonymous context on failure).
get_current_user() raises HTTP 401 if unauthenticated.
require_permission(p) additionally raises HTTP 403 without the permission.

Layer rule: no imports from web/, api/, or panel/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.context import UserContext
from auth.models import User
from auth.tokens import COOKIE_NAME, decode_session_token


def _request_token(request: Request) -> str | None:
    token: str | None = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def get_user_context(request: Request) -> UserContext:
    """Build the UserContext for this request.

    Cached on request.state so the API dependency chain and template globals
    resolve the session only once per request.
    """
    cached = getattr(request.state, "user_context", None)
    if cached is not None:
        return cached

    state = request.app.state
    ctx = UserContext(state.auth_service, state.user_store, state.settings)
    token = _request_token(request)
    if token:
        payload = decode_session_token(token)
        if payload:
            ctx.load(payload["session_id"])
    request.state.user_context = ctx
    return ctx


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None. Never raises."""
    return get_user_context(request).user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def require_permission(permission: str) -> Callable[[Request], User]:
    """Dependency factory: 401 if unauthenticated, 403 without `permission`.

    Use as a FastAPI dependency:
        @router.post("/casinos")
        async def route(user: User = Depends(require_permission("add_edit_records"))): ...
    """

    def dependency(request: Request) -> User:
        user = get_current_user(request)
        if not get_user_context(request).has_permission(permission):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": f"Permission '{permission}' required."},
            )
        return user

    return dependency
