"""
api/main.py -- FastAPI application entry point for the CasinoVizion admin panel.

Exposes the JSON API under /api/v1. The server-rendered admin pages under
/adminpanel share this app and its app.state collaborators; they are mounted
by asgi.py, not here.

Run with:      uvicorn asgi:app --reload

Middleware, outermost first:
  TrustedHost  -- Host header must be in ALLOWED_HOSTS
  CORS         -- browser origins from CORS_ORIGINS
  SlowAPI      -- @limiter.limit() budgets (login, casino create, dashboard)
  Session      -- signed cookie for OAuth state and pending challenges

Lifespan handles startup (stores, identity and backend clients) and shutdown
(close connections) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.casinos import router as casinos_router
from api.routes.v1.categories import router as categories_router
from api.routes.v1.dashboard import router as dashboard_router
from api.routes.v1.settings import router as settings_router
from api.routes.v1.users import router as users_router
from auth.cognito import CognitoClient
from auth.context import AuthService
from auth.dependencies import get_current_user
from auth.models import User
from auth.oauth import oauth as oauth_client
from auth.store import UserStore
from core.backend import BackendClient, BackendError
from core.config import get_settings
from panel.store import PanelStore

VERSION = "0.3.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("casinovizion.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open stores and clients on startup, close them on shutdown.

    Order:
      1. Stores first -- the auth service needs the user store.
      2. Identity client, then the auth service wrapping both.
      3. Venue backend client last -- nothing at startup depends on it.
    """
    logger.info("CasinoVizion admin panel starting up")
    app.state.settings = _settings

    app.state.user_store = UserStore()
    purged = app.state.user_store.purge_expired()
    app.state.panel = PanelStore()
    logger.info("Stores initialized (%d stale sessions purged)", purged)

    app.state.identity = CognitoClient(
        _settings.cognito_endpoint,
        _settings.cognito_client_id,
        _settings.cognito_client_secret,
        timeout=_settings.identity_timeout,
    )
    if not _settings.cognito_client_id:
        logger.warning("COGNITO_CLIENT_ID is not set -- password sign-in will fail")
    app.state.auth_service = AuthService(app.state.identity, app.state.user_store)
    app.state.oauth = oauth_client

    app.state.backend = BackendClient(_settings.api_base, _settings.media_base, timeout=_settings.backend_timeout)
    logger.info("Venue backend at %s", _settings.api_base)

    yield

    # Shutdown
    app.state.backend.close()
    app.state.identity.close()
    app.state.panel.close()
    app.state.user_store.close()
    logger.info("CasinoVizion admin panel shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CasinoVizion Admin API",
    description="Casino venue administration. Venue data from the CasinoVizion backend, identity from Cognito.",
    version=VERSION,
    lifespan=lifespan,
    # Built-in /docs and /redoc are replaced by auth-protected routes below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the app, so the LAST middleware added is the
# outermost. Register innermost-first: Session -> SlowAPI -> CORS -> TrustedHost.
# ---------------------------------------------------------------------------

# SessionMiddleware holds the authlib OAuth state between the authorization
# redirect and the callback, and the pending NEW_PASSWORD_REQUIRED challenge.
app.add_middleware(
    SessionMiddleware,
    secret_key=_settings.secret_key,
    session_cookie="casinovizion_session",
    same_site="lax",
    https_only=_settings.secure_cookies,
)

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_host_list)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------

# Load balancer polls; logged at DEBUG so they do not drown real traffic.
_QUIET_PATHS = frozenset({"/api/v1/health"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    level = logging.DEBUG if request.url.path in _QUIET_PATHS else logging.INFO
    logger.log(
        level,
        "%s %s -> %d in %.1fms (%s)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request.client.host if request.client else "-",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(casinos_router, prefix="/api/v1", tags=["Casinos"])
app.include_router(categories_router, prefix="/api/v1", tags=["Categories"])
app.include_router(dashboard_router, prefix="/api/v1", tags=["Dashboard"])
app.include_router(settings_router, prefix="/api/v1", tags=["Settings"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
# The /adminpanel pages are mounted in asgi.py; api/ never imports web/.


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(user: User = Depends(get_current_user)):
    """Swagger UI, signed-in users only."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="CasinoVizion Admin API")


@app.get("/redoc", include_in_schema=False)
async def redoc(user: User = Depends(get_current_user)):
    """ReDoc, signed-in users only."""
    return get_redoc_html(openapi_url="/openapi.json", title="CasinoVizion Admin API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error body is the ErrorResponse envelope:
#   {"error": {"code": ..., "message": ..., "detail": ...}}
# ---------------------------------------------------------------------------


def _error(
    status_code: int, code: str, message: str, detail: str | None = None, headers: dict | None = None
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with Retry-After. Login is the main limited route."""
    retry_after = int(getattr(exc, "retry_after", 60))
    logger.warning("Rate limit hit on %s from %s", request.url.path, request.client.host if request.client else "-")
    return _error(429, "rate_limited", "Too many requests.", str(exc), headers={"Retry-After": str(retry_after)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    """502 when the venue backend fails. The backend's own body is not echoed."""
    detail = f"upstream status {exc.status_code}" if exc.status_code else None
    return _error(502, "backend_error", "The venue backend could not complete the request.", detail)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Structured error for HTTPException.

    Routes raise with detail={"code", "message"}; that dict becomes the error
    object as-is. A plain string detail is wrapped with an http_<status> code.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unexpected failures: full traceback to the log, generic message to the client."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint (public, never rate limited)
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Liveness probe; reports the running version."""
    return HealthResponse(version=VERSION)
