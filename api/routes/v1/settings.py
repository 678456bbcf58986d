"""
api/routes/v1/settings.py -- Panel settings (general, notifications, system tabs).

Password changes (the security tab) go through POST /api/v1/auth/password.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import PanelSettingsPatch, PanelSettingsResponse
from auth.dependencies import require_permission
from auth.permissions import EDIT_PROFILE
from panel.store import PanelStore

# Auth policy:
# - GET/PATCH /settings: edit_profile (router-level), the same gate as the settings page
router = APIRouter(dependencies=[Depends(require_permission(EDIT_PROFILE))])


@router.get("/settings", response_model=PanelSettingsResponse)
def get_settings(request: Request) -> PanelSettingsResponse:
    panel: PanelStore = request.app.state.panel
    return PanelSettingsResponse.model_validate(panel.get_settings())


@router.patch("/settings", response_model=PanelSettingsResponse)
def update_settings(request: Request, body: PanelSettingsPatch) -> PanelSettingsResponse:
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    panel: PanelStore = request.app.state.panel
    return PanelSettingsResponse.model_validate(panel.update_settings(**updates))
