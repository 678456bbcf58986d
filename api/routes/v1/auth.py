"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST  /api/v1/auth/login         -- password sign-in; sets session cookie
  POST  /api/v1/auth/new-password  -- complete a NEW_PASSWORD_REQUIRED challenge
  POST  /api/v1/auth/logout        -- provider global sign-out + local revoke
  GET   /api/v1/auth/providers     -- social sign-in providers (public)
  GET   /api/v1/auth/me            -- current user and permissions
  PATCH /api/v1/auth/me            -- update profile fields for this session
  POST  /api/v1/auth/refresh       -- force a provider token refresh
  GET   /api/v1/auth/validate      -- is the provider id token still unexpired?
  POST  /api/v1/auth/password      -- change password (edit_profile)

Security:
  POST /login and /new-password are rate-limited per IP (LOGIN_RATE_LIMIT).
  Unknown user and wrong password return the same error code and message.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    NewPasswordRequest,
    OAuthProviderInfo,
    PasswordChangeRequest,
    ProfileUpdate,
    TokenRefreshResponse,
    TokenValidResponse,
)
from auth.cognito import CognitoClient, IdentityError
from auth.context import (
    ACCOUNT_DISABLED,
    InactiveUserError,
    UserContext,
    challenge_message,
    sign_in_error_message,
)
from auth.dependencies import get_current_user, get_user_context, require_permission
from auth.models import SignInResult, User
from auth.oauth import get_enabled_providers
from auth.permissions import EDIT_PROFILE
from auth.tokens import clear_auth_cookie, set_auth_cookie
from core.config import get_settings
from core.passwords import check_new_password

logger = logging.getLogger("casinovizion.api.auth")

# Auth policy:
# - POST  /auth/login, /auth/new-password:  public -- sign-in endpoints
# - POST  /auth/logout:                     public -- anonymous logout is a no-op
# - GET   /auth/providers:                  public -- login page renders buttons from it
# - GET/PATCH /auth/me, /auth/refresh, /auth/validate: requires auth
# - POST  /auth/password:                   requires edit_profile
router = APIRouter()

_LOGIN_RATE_LIMIT = get_settings().login_rate_limit


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _signed_in_response(request: Request, result: SignInResult, login_id: str) -> JSONResponse:
    """Turn a provider sign-in result into the login response.

    Shared by /login and /new-password; both can end in a further challenge.
    """
    if not result.is_signed_in:
        resp = JSONResponse(
            content=LoginResponse(
                signed_in=False,
                next_step=result.next_step,
                challenge_session=result.challenge_session,
            ).model_dump()
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    ctx: UserContext = get_user_context(request)
    try:
        token = ctx.complete_sign_in(result.tokens, login_id=login_id)
    except InactiveUserError:
        return _error(403, "account_disabled", ACCOUNT_DISABLED)
    except IdentityError as e:
        return _error(401, "identity_error", sign_in_error_message(e))

    settings = get_settings()
    resp = JSONResponse(
        content=LoginResponse(
            signed_in=True,
            access_token=token,
            expires_in=settings.token_expire_seconds,
            username=ctx.user.username,
            role=ctx.user.role,
        ).model_dump()
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_LOGIN_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Sign in with username (email) and password.

    A NEW_PASSWORD_REQUIRED challenge returns 200 with signed_in=false; any
    other challenge is reported as 401 with a message, since this panel
    cannot complete it.
    """
    identity: CognitoClient = request.app.state.identity
    try:
        result = identity.sign_in(body.username, body.password)
    except IdentityError as e:
        code = "bad_credentials" if e.name in ("UserNotFoundException", "NotAuthorizedException") else "login_failed"
        return _error(401, code, sign_in_error_message(e))

    if not result.is_signed_in and result.next_step != "NEW_PASSWORD_REQUIRED":
        return _error(401, "unsupported_challenge", challenge_message(result.next_step))
    return _signed_in_response(request, result, login_id=body.username)


@limiter.limit(_LOGIN_RATE_LIMIT)
@router.post("/auth/new-password", response_model=LoginResponse)
def new_password(request: Request, body: NewPasswordRequest) -> JSONResponse:
    """Answer a NEW_PASSWORD_REQUIRED challenge and finish signing in."""
    problem = check_new_password(body.new_password, body.confirm_password)
    if problem:
        return _error(400, "weak_password", problem)

    identity: CognitoClient = request.app.state.identity
    try:
        result = identity.complete_new_password(body.username, body.new_password, body.challenge_session)
    except IdentityError as e:
        return _error(400, "challenge_failed", e.message or "Failed to set the new password.")
    if not result.is_signed_in and result.next_step != "NEW_PASSWORD_REQUIRED":
        return _error(401, "unsupported_challenge", challenge_message(result.next_step))
    return _signed_in_response(request, result, login_id=body.username)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Sign out at the provider, revoke the session and clear the cookie."""
    get_user_context(request).logout()
    resp = JSONResponse(content={"message": "Logged out."})
    clear_auth_cookie(resp)
    return resp


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
async def list_providers() -> list[OAuthProviderInfo]:
    """Return the social sign-in providers offered through the hosted UI."""
    return [OAuthProviderInfo(**p) for p in get_enabled_providers()]


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse.from_user(current_user)


@router.patch("/auth/me", response_model=MeResponse)
def update_me(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(require_permission(EDIT_PROFILE)),
) -> MeResponse:
    """Merge profile fields into the signed-in user for this session."""
    fields = body.model_dump(exclude_none=True)
    if not fields:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    ctx = get_user_context(request)
    ctx.update_user(**fields)
    return MeResponse.from_user(ctx.user)


@router.post("/auth/refresh", response_model=TokenRefreshResponse)
def refresh(request: Request, current_user: User = Depends(get_current_user)) -> JSONResponse:
    id_token = get_user_context(request).refresh_token()
    resp = JSONResponse(content=TokenRefreshResponse(refreshed=id_token is not None, id_token=id_token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/validate", response_model=TokenValidResponse)
def validate(request: Request, current_user: User = Depends(get_current_user)) -> TokenValidResponse:
    return TokenValidResponse(valid=get_user_context(request).validate_token())


@router.post("/auth/password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: PasswordChangeRequest,
    current_user: User = Depends(require_permission(EDIT_PROFILE)),
) -> MessageResponse:
    """Change the signed-in user's password at the provider."""
    problem = check_new_password(body.new_password, body.confirm_password)
    if problem:
        raise HTTPException(status_code=400, detail={"code": "weak_password", "message": problem})

    ctx = get_user_context(request)
    identity: CognitoClient = request.app.state.identity
    try:
        identity.change_password(ctx.session.access_token, body.old_password, body.new_password)
    except IdentityError as e:
        logger.info("Password change failed for %s: %s", current_user.username, e.name)
        raise HTTPException(
            status_code=400,
            detail={
                "code": "password_change_failed",
                "message": "Failed to update password. Please check your old password and try again.",
            },
        ) from e
    return MessageResponse(message="Your password has been changed successfully.")
