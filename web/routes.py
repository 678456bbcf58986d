"""
web/routes.py -- Jinja2 template routes for the CasinoVizion admin pages.

These routes serve server-rendered HTML under /adminpanel. They share
app.state with the API routes (same stores, identity client and venue
backend) but return HTML instead of JSON.

Route registration order matters. FastAPI resolves same-level paths in order:
  - GET /adminpanel/login/oauth/{provider} and /adminpanel/login/callback are
    registered before GET /adminpanel/login.
  - GET/POST /adminpanel/casinos/create is registered before the
    /adminpanel/casinos/{casino_id}/... routes.

Routes (permission in brackets; unauthenticated -> /adminpanel/login?next=):
  GET  /                                         -- redirect to the login page
  GET  /adminpanel/login/oauth/{provider}        -- hosted-UI redirect for social sign-in
  GET  /adminpanel/login/callback                -- OAuth callback
  GET  /adminpanel/login                         -- login form
  POST /adminpanel/login                         -- password sign-in
  GET  /adminpanel/updatepassword                -- new-password challenge form
  POST /adminpanel/updatepassword                -- answer the challenge
  POST /adminpanel/logout                        -- sign out, back to login
  GET  /adminpanel                               -- dashboard [view_all]
  GET  /adminpanel/casinos                       -- casino list + filters [view_all]
  GET  /adminpanel/casinos/create                -- create form [view_all]
  POST /adminpanel/casinos/create                -- submit [add_edit_records]
  POST /adminpanel/casinos/{id}/content          -- content toggle [add_edit_records]
  GET  /adminpanel/casinos/{id}/view             -- casino detail [view_all]
  GET  /adminpanel/users                         -- recorded users [add_edit_delete_users]
  POST /adminpanel/users/{username}/active       -- (de)activate [add_edit_delete_users]
  GET  /adminpanel/analytics                     -- analytics [view_all]
  GET  /adminpanel/settings                      -- settings tabs [edit_profile]
  POST /adminpanel/settings                      -- save a settings tab [edit_profile]
  POST /adminpanel/settings/password             -- change password [edit_profile]
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, File, Form, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from auth.cognito import CognitoClient, IdentityError
from auth.context import (
    ACCOUNT_DISABLED,
    NEW_PASSWORD_REQUIRED,
    InactiveUserError,
    UserContext,
    challenge_message,
    sign_in_error_message,
)
from auth.dependencies import get_user_context, try_get_current_user
from auth.identity import identity_from_claims
from auth.models import SignInResult, TokenBundle
from auth.oauth import (
    LOGIN_PATH,
    build_oauth_state,
    get_enabled_providers,
    is_enabled_provider,
    parse_oauth_state,
    safe_return_url,
)
from auth.permissions import ADD_EDIT_DELETE_USERS, ADD_EDIT_RECORDS, EDIT_PROFILE, VIEW_ALL
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, clear_auth_cookie, set_auth_cookie
from core.backend import BackendClient, BackendError
from core.dashboard import DASHBOARD_CARDS, QUICK_ACTIONS, RECENT_ACTIVITY, analytics_payload
from core.models import CASINO_STATUSES, DEFAULT_LATITUDE, DEFAULT_LONGITUDE, CasinoForm
from core.passwords import check_new_password
from panel.listing import filter_casinos
from panel.models import (
    API_RATE_LIMITS,
    CONTENT_FILTERS,
    CURRENCIES,
    EMAIL_FREQUENCIES,
    TIMEZONES,
    normalize_tab,
)
from panel.store import PanelStore

logger = logging.getLogger("casinovizion.web")


def _current_user(request: Request):
    return try_get_current_user(request)


def _can(request: Request, permission: str) -> bool:
    return get_user_context(request).has_permission(permission)


templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# Jinja2 globals so layout.html and every page can check the signed-in user
# and permissions without each handler adding them to the context.
templates.env.globals["current_user"] = _current_user
templates.env.globals["has_permission"] = _can
router = APIRouter()

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= query params on the login page.
# The raw query param is NEVER passed to templates -- only the message from
# this dict is. Prevents reflected XSS via crafted error query strings.
_ERROR_MESSAGES: dict[str, str] = {
    "social_failed": (
        "Social sign-in failed. Please check your browser's pop-up blocker or try again later."
    ),
    "account_disabled": ACCOUNT_DISABLED,
    "session_expired": "Your session has expired. Please sign in again.",
    "challenge_expired": "Your sign-in attempt has expired. Please sign in again.",
}

_NOTICE_MESSAGES: dict[str, str] = {
    "logged_out": "You have been signed out.",
    "password_updated": "Your password has been updated. Please sign in with your new password.",
}

# Key in the Starlette session holding a pending NEW_PASSWORD_REQUIRED challenge.
_PENDING_CHALLENGE = "pending_challenge"

_MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5 MB
_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def _require(request: Request, permission: str) -> Optional[Response]:
    """Gate a page on a permission.

    Returns a redirect to the login page when the request is not
    authenticated, a 403 page when the user lacks the permission, and None
    when the handler may proceed:
        if denied := _require(request, VIEW_ALL):
            return denied

    A session cookie that no longer resolves (expired, revoked, user
    deactivated) is deleted and the login page says the session expired.
    """
    ctx = get_user_context(request)
    if not ctx.is_authenticated:
        params = {"next": request.url.path}
        if request.cookies.get(COOKIE_NAME):
            params["error"] = "session_expired"
        resp = RedirectResponse(f"{LOGIN_PATH}?{urlencode(params)}", status_code=302)
        if request.cookies.get(COOKIE_NAME):
            clear_auth_cookie(resp)
        return resp
    if not ctx.has_permission(permission):
        logger.info("Denied %s to %s (role %s)", request.url.path, ctx.user.username, ctx.user.role)
        return templates.TemplateResponse(
            request,
            "forbidden.html",
            {"permission": permission},
            status_code=403,
        )
    return None


def _signed_in_redirect(token: str, next_url: str) -> RedirectResponse:
    resp = RedirectResponse(next_url, status_code=302)
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _login_page(
    request: Request,
    error: Optional[str],
    email: str = "",
    status_code: int = 200,
    notice: Optional[str] = None,
) -> HTMLResponse:
    resp = templates.TemplateResponse(
        request,
        "login.html",
        {
            "error_msg": error,
            "notice_msg": notice,
            "email": email,
            "next": safe_return_url(request.query_params.get("next")),
            "providers": get_enabled_providers(),
        },
        status_code=status_code,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _finish_sign_in(
    request: Request, result: SignInResult, email: str, next_url: str
) -> Response:
    """Act on a provider sign-in result: log in, start a challenge, or explain."""
    if result.is_signed_in:
        ctx: UserContext = get_user_context(request)
        try:
            token = ctx.complete_sign_in(result.tokens, login_id=email)
        except InactiveUserError:
            return _login_page(request, ACCOUNT_DISABLED, email, status_code=403)
        except IdentityError as e:
            return _login_page(request, sign_in_error_message(e), email, status_code=401)
        request.session.pop(_PENDING_CHALLENGE, None)
        return _signed_in_redirect(token, next_url)

    if result.next_step == NEW_PASSWORD_REQUIRED:
        request.session[_PENDING_CHALLENGE] = {
            "username": email,
            "session": result.challenge_session,
            "next": next_url,
        }
        return RedirectResponse("/adminpanel/updatepassword", status_code=302)

    return _login_page(request, challenge_message(result.next_step), email, status_code=401)


# ---------------------------------------------------------------------------
# GET / -- the panel lives under /adminpanel
# ---------------------------------------------------------------------------


@router.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    return RedirectResponse(LOGIN_PATH, status_code=302)


# ---------------------------------------------------------------------------
# Social sign-in through the Cognito hosted UI
# (registered BEFORE GET /adminpanel/login)
# ---------------------------------------------------------------------------


@router.get("/adminpanel/login/oauth/{provider}", response_class=HTMLResponse)
async def oauth_redirect(request: Request, provider: str) -> RedirectResponse:
    """Send the browser to the hosted UI, straight to the chosen provider.

    The provider name is checked against the enabled list so a crafted name
    cannot reach the hosted UI. The ?next= return URL rides in the OAuth state.
    """
    if not is_enabled_provider(provider):
        return RedirectResponse(f"{LOGIN_PATH}?error=social_failed", status_code=302)

    client = request.app.state.oauth.create_client("cognito")
    if client is None:
        return RedirectResponse(f"{LOGIN_PATH}?error=social_failed", status_code=302)
    redirect_uri = str(request.url_for("oauth_callback"))
    state = build_oauth_state(request.query_params.get("next"))
    return await client.authorize_redirect(request, redirect_uri, state=state, identity_provider=provider)


@router.get("/adminpanel/login/callback", response_class=HTMLResponse, name="oauth_callback")
async def oauth_callback(request: Request) -> RedirectResponse:
    """Handle the hosted-UI callback and issue the app session cookie.

    Flow:
      1. Provider error parameters -> fixed "social sign-in failed" message.
         The provider's own error text is logged, never shown.
      2. Exchange the code (authlib checks the state against the session).
      3. Normalise the id_token claims and log the user in.
      4. Redirect to the return URL carried in the state.
    """
    if request.query_params.get("error") or request.query_params.get("error_description"):
        logger.warning(
            "Social sign-in returned an error: %s", request.query_params.get("error", "")[:100]
        )
        return RedirectResponse(f"{LOGIN_PATH}?error=social_failed", status_code=302)

    client = request.app.state.oauth.create_client("cognito")
    if client is None:
        return RedirectResponse(f"{LOGIN_PATH}?error=social_failed", status_code=302)
    try:
        token = await client.authorize_access_token(request)
    except OAuthError:
        logger.exception("OAuth token exchange failed")
        return RedirectResponse(f"{LOGIN_PATH}?error=social_failed", status_code=302)

    claims = token.get("userinfo") or {}
    if not claims or not token.get("id_token") or not token.get("access_token"):
        logger.warning("OAuth token response without id_token claims")
        return RedirectResponse(f"{LOGIN_PATH}?error=social_failed", status_code=302)

    tokens = TokenBundle(
        id_token=token["id_token"],
        access_token=token["access_token"],
        refresh_token=token.get("refresh_token"),
        expires_in=int(token.get("expires_in") or 3600),
    )
    ctx: UserContext = get_user_context(request)
    try:
        session_token = ctx.login(identity_from_claims(claims), tokens)
    except InactiveUserError:
        return RedirectResponse(f"{LOGIN_PATH}?error=account_disabled", status_code=302)

    return _signed_in_redirect(session_token, parse_oauth_state(request.query_params.get("state")))


# ---------------------------------------------------------------------------
# Password sign-in
# ---------------------------------------------------------------------------


@router.get("/adminpanel/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page with the email/password form and social buttons."""
    if try_get_current_user(request) is not None:
        return RedirectResponse(safe_return_url(request.query_params.get("next")), status_code=302)

    return _login_page(
        request,
        _ERROR_MESSAGES.get(request.query_params.get("error", "")),
        notice=_NOTICE_MESSAGES.get(request.query_params.get("notice", "")),
    )


@router.post("/adminpanel/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
    next: str = Form(default=""),
) -> Response:
    """Handle the email/password form."""
    email = email.strip()
    next_url = safe_return_url(next or request.query_params.get("next"))
    if not email or not password.strip():
        return _login_page(request, "Please fill in all fields", email, status_code=400)

    identity: CognitoClient = request.app.state.identity
    try:
        result = identity.sign_in(email, password)
    except IdentityError as e:
        logger.info("Password sign-in failed for %s: %s", email, e.name)
        return _login_page(request, sign_in_error_message(e), email, status_code=401)
    return _finish_sign_in(request, result, email, next_url)


# ---------------------------------------------------------------------------
# New-password challenge
# ---------------------------------------------------------------------------


@router.get("/adminpanel/updatepassword", response_class=HTMLResponse)
def update_password_form(request: Request) -> HTMLResponse:
    pending = request.session.get(_PENDING_CHALLENGE)
    if not pending:
        return RedirectResponse(f"{LOGIN_PATH}?error=challenge_expired", status_code=302)
    return templates.TemplateResponse(
        request,
        "update_password.html",
        {"email": pending["username"], "error_msg": None},
        headers={"Cache-Control": "no-store"},
    )


@router.post("/adminpanel/updatepassword", response_class=HTMLResponse)
def update_password_post(
    request: Request,
    new_password: str = Form(default=""),
    confirm_password: str = Form(default=""),
) -> Response:
    """Answer the NEW_PASSWORD_REQUIRED challenge and finish signing in."""
    pending = request.session.get(_PENDING_CHALLENGE)
    if not pending:
        return RedirectResponse(f"{LOGIN_PATH}?error=challenge_expired", status_code=302)

    def _again(message: str, status_code: int = 400) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "update_password.html",
            {"email": pending["username"], "error_msg": message},
            status_code=status_code,
            headers={"Cache-Control": "no-store"},
        )

    problem = check_new_password(new_password, confirm_password)
    if problem:
        return _again(problem)

    identity: CognitoClient = request.app.state.identity
    try:
        result = identity.complete_new_password(pending["username"], new_password, pending["session"])
    except IdentityError as e:
        logger.info("New-password challenge failed for %s: %s", pending["username"], e.name)
        if e.name in ("NotAuthorizedException", "CodeMismatchException", "ExpiredCodeException"):
            request.session.pop(_PENDING_CHALLENGE, None)
            return RedirectResponse(f"{LOGIN_PATH}?error=challenge_expired", status_code=302)
        return _again(e.message or "Failed to update password. Please try again.")

    if not result.is_signed_in and result.next_step != NEW_PASSWORD_REQUIRED:
        request.session.pop(_PENDING_CHALLENGE, None)
        return RedirectResponse(f"{LOGIN_PATH}?notice=password_updated", status_code=302)
    return _finish_sign_in(request, result, pending["username"], safe_return_url(pending.get("next")))


@router.post("/adminpanel/logout")
def logout(request: Request) -> RedirectResponse:
    """Sign out at the provider, revoke the session and clear the cookie."""
    get_user_context(request).logout()
    request.session.pop(_PENDING_CHALLENGE, None)
    resp = RedirectResponse(f"{LOGIN_PATH}?notice=logged_out", status_code=302)
    clear_auth_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# GET /adminpanel -- dashboard
# ---------------------------------------------------------------------------


@router.get("/adminpanel", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    if denied := _require(request, VIEW_ALL):
        return denied
    ctx = get_user_context(request)
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "cards": [c for c in DASHBOARD_CARDS if ctx.has_permission(c.permission)],
            "quick_actions": [a for a in QUICK_ACTIONS if ctx.has_permission(a.permission)],
            "recent_activity": [a for a in RECENT_ACTIVITY if ctx.has_permission(a.permission)],
        },
    )


# ---------------------------------------------------------------------------
# Casinos
# ---------------------------------------------------------------------------


def _list_filters(search: str, status: str, content: str) -> dict:
    status = (status or "all").lower()
    if status != "all" and status not in {s.lower() for s in CASINO_STATUSES}:
        status = "all"
    if content not in CONTENT_FILTERS:
        content = "all"
    return {"q": (search or "").strip()[:255], "status": status, "content": content}


@router.get("/adminpanel/casinos", response_class=HTMLResponse)
def casino_list(
    request: Request,
    q: str = "",
    status: str = "all",
    content: str = "all",
    created: Optional[str] = None,
) -> HTMLResponse:
    if denied := _require(request, VIEW_ALL):
        return denied
    filters = _list_filters(q, status, content)
    backend: BackendClient = request.app.state.backend
    panel: PanelStore = request.app.state.panel

    casinos = []
    error = None
    try:
        casinos = backend.list_casinos(token=get_user_context(request).token)
    except BackendError:
        error = "Failed to fetch casinos. Please try again later."
    flags = panel.get_content_flags([c.id for c in casinos])
    rows = filter_casinos(
        casinos,
        search=filters["q"],
        status=filters["status"],
        content=filters["content"],
        content_enabled=flags,
    )
    return templates.TemplateResponse(
        request,
        "casinos.html",
        {
            "casinos": rows,
            "total": len(casinos),
            "flags": flags,
            "filters": filters,
            "filter_query": urlencode(filters),
            "statuses": CASINO_STATUSES,
            "error": error,
            "created": bool(created),
        },
    )


def _create_form_context(request: Request, form: CasinoForm, error: Optional[str]) -> dict:
    backend: BackendClient = request.app.state.backend
    token = get_user_context(request).token
    categories = []
    subcategories = []
    try:
        categories = backend.list_categories(token=token)
    except BackendError:
        error = error or "Could not load categories. Please try again later."
    if form.category:
        subcategories = backend.list_subcategories(form.category, token=token)
    return {
        "form": form,
        "error": error,
        "categories": categories,
        "subcategories": subcategories,
        "statuses": CASINO_STATUSES,
    }


@router.get("/adminpanel/casinos/create", response_class=HTMLResponse)
def casino_create_form(request: Request, category: str = "") -> HTMLResponse:
    """Render the create form. ?category= preloads that category's subcategories."""
    if denied := _require(request, VIEW_ALL):
        return denied
    form = CasinoForm(category=category.strip()[:64])
    return templates.TemplateResponse(request, "casino_create.html", _create_form_context(request, form, None))


def _coordinate(raw: Optional[str], default: float, limit: float) -> float:
    try:
        value = float(raw) if raw not in (None, "") else default
    except ValueError:
        return default
    return value if -limit <= value <= limit else default


@router.post("/adminpanel/casinos/create", response_class=HTMLResponse)
def casino_create(
    request: Request,
    name: str = Form(default=""),
    description: str = Form(default=""),
    address: str = Form(default=""),
    address2: str = Form(default=""),
    address3: str = Form(default=""),
    email: str = Form(default=""),
    latitude: Optional[str] = Form(default=None),
    longitude: Optional[str] = Form(default=None),
    category: str = Form(default=""),
    subcategories: Optional[list[str]] = Form(default=None),  # noqa: B008
    status: str = Form(default=""),
    image: Optional[UploadFile] = File(default=None),  # noqa: B008
) -> Response:
    """Submit a new casino to the backend. Redirects to the list on success."""
    if denied := _require(request, ADD_EDIT_RECORDS):
        return denied

    form = CasinoForm(
        name=name.strip()[:255],
        description=description.strip()[:5000],
        address=address.strip()[:255],
        address2=address2.strip()[:255],
        address3=address3.strip()[:255],
        email=email.strip()[:320],
        latitude=_coordinate(latitude, DEFAULT_LATITUDE, 90),
        longitude=_coordinate(longitude, DEFAULT_LONGITUDE, 180),
        category=category.strip()[:64],
        subcategories=[s for s in (subcategories or []) if s][:50],
        status=status if status in CASINO_STATUSES else "",
    )

    def _again(message: str, status_code: int = 400) -> HTMLResponse:
        return templates.TemplateResponse(
            request, "casino_create.html", _create_form_context(request, form, message), status_code=status_code
        )

    if form.missing_required():
        return _again("Please fill all required fields")

    upload = None
    if image is not None and image.filename:
        if image.content_type not in _IMAGE_TYPES:
            return _again("Image must be a JPEG, PNG, GIF or WebP file.")
        content = image.file.read(_MAX_IMAGE_BYTES + 1)
        if len(content) > _MAX_IMAGE_BYTES:
            return _again("Image must be 5 MB or smaller.")
        upload = (Path(image.filename).name, content, image.content_type)

    backend: BackendClient = request.app.state.backend
    try:
        backend.create_casino(form, image=upload, token=get_user_context(request).token)
    except BackendError:
        return _again("Failed to create casino. Please try again.", status_code=502)

    logger.info("Casino %r created by %s", form.name, get_user_context(request).user.username)
    return RedirectResponse("/adminpanel/casinos?created=1", status_code=303)


@router.post("/adminpanel/casinos/{casino_id}/content")
def casino_content_toggle(
    request: Request,
    casino_id: str,
    enabled: str = Form(default="0"),
    q: str = Form(default=""),
    status: str = Form(default="all"),
    content: str = Form(default="all"),
) -> Response:
    """Flip a casino's content toggle and return to the list with the same filters."""
    if denied := _require(request, ADD_EDIT_RECORDS):
        return denied
    panel: PanelStore = request.app.state.panel
    panel.set_content_enabled(casino_id[:64], enabled == "1")
    return RedirectResponse(f"/adminpanel/casinos?{urlencode(_list_filters(q, status, content))}", status_code=303)


@router.get("/adminpanel/casinos/{casino_id}/view", response_class=HTMLResponse)
def casino_view(request: Request, casino_id: str) -> HTMLResponse:
    if denied := _require(request, VIEW_ALL):
        return denied
    backend: BackendClient = request.app.state.backend
    panel: PanelStore = request.app.state.panel
    try:
        casino = backend.get_casino(casino_id, token=get_user_context(request).token)
    except BackendError:
        return templates.TemplateResponse(
            request,
            "casino_view.html",
            {"casino": None, "error": "Failed to fetch casino details."},
            status_code=502,
        )
    if casino is None:
        return templates.TemplateResponse(
            request,
            "casino_view.html",
            {"casino": None, "error": "Casino not found."},
            status_code=404,
        )
    return templates.TemplateResponse(
        request,
        "casino_view.html",
        {"casino": casino, "content_enabled": panel.is_content_enabled(casino.id), "error": None},
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

_USER_ERRORS = {
    "self_deactivation": "You cannot deactivate your own account.",
    "not_found": "User not found.",
}


@router.get("/adminpanel/users", response_class=HTMLResponse)
def users_page(request: Request) -> HTMLResponse:
    if denied := _require(request, ADD_EDIT_DELETE_USERS):
        return denied
    user_store: UserStore = request.app.state.user_store
    return templates.TemplateResponse(
        request,
        "users.html",
        {
            "users": user_store.list_users(),
            "error_msg": _USER_ERRORS.get(request.query_params.get("error", "")),
        },
    )


@router.post("/adminpanel/users/{username}/active")
def users_set_active(request: Request, username: str, is_active: str = Form(default="0")) -> Response:
    if denied := _require(request, ADD_EDIT_DELETE_USERS):
        return denied
    activate = is_active == "1"
    if not activate and username == get_user_context(request).user.username:
        return RedirectResponse("/adminpanel/users?error=self_deactivation", status_code=303)
    user_store: UserStore = request.app.state.user_store
    if not user_store.set_active(username, activate):
        return RedirectResponse("/adminpanel/users?error=not_found", status_code=303)
    logger.info("User %s %s", username, "activated" if activate else "deactivated")
    return RedirectResponse("/adminpanel/users", status_code=303)


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


@router.get("/adminpanel/analytics", response_class=HTMLResponse)
def analytics(request: Request, range_key: Optional[str] = Query(default=None, alias="range")) -> HTMLResponse:
    """Render the analytics page. Unknown ?range= values fall back to 30 days."""
    if denied := _require(request, VIEW_ALL):
        return denied
    payload = analytics_payload(range_key)
    payload["selected_range"] = payload.pop("range")
    return templates.TemplateResponse(request, "analytics.html", payload)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def _settings_context(request: Request, tab: str, error: Optional[str] = None, notice: Optional[str] = None) -> dict:
    panel: PanelStore = request.app.state.panel
    return {
        "tab": tab,
        "settings": panel.get_settings(),
        "timezones": TIMEZONES,
        "currencies": CURRENCIES,
        "email_frequencies": EMAIL_FREQUENCIES,
        "api_rate_limits": API_RATE_LIMITS,
        "error_msg": error,
        "notice_msg": notice,
    }


_SETTINGS_NOTICES = {
    "saved": "Settings saved successfully",
    "password": "Your password has been changed successfully.",
}


@router.get("/adminpanel/settings", response_class=HTMLResponse)
def settings_page(request: Request, tab: Optional[str] = None) -> HTMLResponse:
    """Render the settings tabs. Unknown ?tab= values fall back to general."""
    if denied := _require(request, EDIT_PROFILE):
        return denied
    notice = _SETTINGS_NOTICES.get(request.query_params.get("notice", ""))
    return templates.TemplateResponse(
        request, "settings.html", _settings_context(request, normalize_tab(tab), notice=notice)
    )


@router.post("/adminpanel/settings", response_class=HTMLResponse)
def settings_save(
    request: Request,
    tab: str = Form(default="general"),
    company_name: str = Form(default=""),
    admin_email: str = Form(default=""),
    timezone: str = Form(default=""),
    currency: str = Form(default=""),
    notifications: Optional[str] = Form(default=None),
    email_alerts: Optional[str] = Form(default=None),
    email_frequency: str = Form(default=""),
    two_factor_auth: Optional[str] = Form(default=None),
    maintenance_mode: Optional[str] = Form(default=None),
    api_rate_limit: str = Form(default=""),
) -> Response:
    """Save the fields of one tab. Checkboxes absent from the form are off."""
    if denied := _require(request, EDIT_PROFILE):
        return denied
    tab = normalize_tab(tab)

    updates: dict = {}
    if tab == "general":
        updates = {
            "company_name": company_name.strip()[:255],
            "admin_email": admin_email.strip()[:320],
            "timezone": timezone,
            "currency": currency,
        }
        if not updates["company_name"] or not updates["admin_email"]:
            return _settings_error(request, tab, "Company name and admin email are required.")
        if timezone not in TIMEZONES or currency not in CURRENCIES:
            return _settings_error(request, tab, "Please choose a timezone and currency from the list.")
    elif tab == "notifications":
        if email_frequency not in EMAIL_FREQUENCIES:
            return _settings_error(request, tab, "Please choose an email frequency from the list.")
        updates = {
            "notifications": notifications is not None,
            "email_alerts": email_alerts is not None,
            "email_frequency": email_frequency,
        }
    elif tab == "system":
        if api_rate_limit not in API_RATE_LIMITS:
            return _settings_error(request, tab, "Please choose an API rate limit from the list.")
        updates = {
            "two_factor_auth": two_factor_auth is not None,
            "maintenance_mode": maintenance_mode is not None,
            "api_rate_limit": api_rate_limit,
        }

    if updates:
        panel: PanelStore = request.app.state.panel
        panel.update_settings(**updates)
        logger.info("Settings tab %s saved by %s", tab, get_user_context(request).user.username)
    return RedirectResponse(f"/adminpanel/settings?tab={tab}&notice=saved", status_code=303)


def _settings_error(request: Request, tab: str, message: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request, "settings.html", _settings_context(request, tab, error=message), status_code=400
    )


@router.post("/adminpanel/settings/password", response_class=HTMLResponse)
def settings_password(
    request: Request,
    old_password: str = Form(default=""),
    new_password: str = Form(default=""),
    confirm_password: str = Form(default=""),
) -> Response:
    """Change the signed-in user's password at the identity provider."""
    if denied := _require(request, EDIT_PROFILE):
        return denied
    if not old_password:
        return _settings_error(request, "security", "Please enter your old password.")
    problem = check_new_password(new_password, confirm_password)
    if problem:
        return _settings_error(request, "security", problem)

    ctx = get_user_context(request)
    identity: CognitoClient = request.app.state.identity
    try:
        identity.change_password(ctx.session.access_token, old_password, new_password)
    except IdentityError as e:
        logger.info("Password change failed for %s: %s", ctx.user.username, e.name)
        return _settings_error(
            request, "security", "Failed to update password. Please check your old password and try again."
        )
    return RedirectResponse("/adminpanel/settings?tab=security&notice=password", status_code=303)
