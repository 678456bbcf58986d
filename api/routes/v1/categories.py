"""
api/routes/v1/categories.py -- Category and subcategory dropdown data.

Both lists come straight from the venue backend. A category whose
subcategories cannot be fetched answers with an empty list, not an error.
"""

from fastapi import APIRouter, Depends, Request

from api.models import CategoryOptionOut
from auth.dependencies import get_user_context, require_permission
from auth.permissions import VIEW_ALL
from core.backend import BackendClient

# Auth policy:
# - GET /categories, /categories/{id}/subcategories: view_all (router-level)
router = APIRouter(dependencies=[Depends(require_permission(VIEW_ALL))])


@router.get("/categories", response_model=list[CategoryOptionOut])
def list_categories(request: Request) -> list[CategoryOptionOut]:
    backend: BackendClient = request.app.state.backend
    options = backend.list_categories(token=get_user_context(request).token)
    return [CategoryOptionOut.model_validate(o) for o in options]


@router.get("/categories/{category_id}/subcategories", response_model=list[CategoryOptionOut])
def list_subcategories(request: Request, category_id: str) -> list[CategoryOptionOut]:
    backend: BackendClient = request.app.state.backend
    options = backend.list_subcategories(category_id, token=get_user_context(request).token)
    return [CategoryOptionOut.model_validate(o) for o in options]
