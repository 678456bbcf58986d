"""
api/routes/v1/casinos.py -- Casino listing, detail, creation and content toggles.

Casino records live in the venue REST backend; this router proxies to it with
the caller's provider id token and overlays the panel-owned content toggle.

Routes:
  GET /api/v1/casinos                       -- filtered list (view_all)
  GET /api/v1/casinos/{casino_id}           -- single casino (view_all)
  POST /api/v1/casinos                      -- create (add_edit_records)
  PUT /api/v1/casinos/{casino_id}/content   -- set content toggle (add_edit_records)

BackendError propagates to the handler in api/main.py (502).
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.limiter import limiter
from api.models import (
    CasinoCreate,
    CasinoListResponse,
    CasinoResponse,
    ContentFilterEnum,
    ContentToggle,
    ContentToggleResponse,
)
from auth.dependencies import get_user_context, require_permission
from auth.models import User
from auth.permissions import ADD_EDIT_RECORDS, VIEW_ALL
from core.backend import BackendClient
from panel.listing import filter_casinos
from panel.store import PanelStore

# Auth policy:
# - GET routes:  view_all
# - POST / PUT:  add_edit_records
router = APIRouter()


@router.get("/casinos", response_model=CasinoListResponse)
def list_casinos(
    request: Request,
    search: str = Query(default="", max_length=255),
    status: str = Query(default="all", max_length=32),
    content: ContentFilterEnum = ContentFilterEnum.all,
    user: User = Depends(require_permission(VIEW_ALL)),
) -> CasinoListResponse:
    """List casinos with the same search/status/content filters as the casino list page."""
    backend: BackendClient = request.app.state.backend
    panel: PanelStore = request.app.state.panel
    casinos = backend.list_casinos(token=get_user_context(request).token)
    flags = panel.get_content_flags([c.id for c in casinos])
    filtered = filter_casinos(casinos, search=search, status=status, content=content.value, content_enabled=flags)
    return CasinoListResponse(
        total=len(casinos),
        returned=len(filtered),
        data=[CasinoResponse.from_casino(c, flags.get(c.id, True)) for c in filtered],
    )


@router.get("/casinos/{casino_id}", response_model=CasinoResponse)
def get_casino(
    request: Request,
    casino_id: str,
    user: User = Depends(require_permission(VIEW_ALL)),
) -> CasinoResponse:
    backend: BackendClient = request.app.state.backend
    panel: PanelStore = request.app.state.panel
    casino = backend.get_casino(casino_id, token=get_user_context(request).token)
    if casino is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": f"Casino {casino_id} not found."},
        )
    return CasinoResponse.from_casino(casino, panel.is_content_enabled(casino.id))


@limiter.limit("30/minute")
@router.post("/casinos", status_code=201)
def create_casino(
    request: Request,
    body: CasinoCreate,
    user: User = Depends(require_permission(ADD_EDIT_RECORDS)),
) -> dict:
    """Create a casino in the backend and return the backend's response body."""
    backend: BackendClient = request.app.state.backend
    return backend.create_casino(body.to_form(), token=get_user_context(request).token)


@router.put("/casinos/{casino_id}/content", response_model=ContentToggleResponse)
def set_content(
    request: Request,
    casino_id: str,
    body: ContentToggle,
    user: User = Depends(require_permission(ADD_EDIT_RECORDS)),
) -> ContentToggleResponse:
    panel: PanelStore = request.app.state.panel
    panel.set_content_enabled(casino_id, body.enabled)
    return ContentToggleResponse(casino_id=casino_id, enabled=body.enabled)
