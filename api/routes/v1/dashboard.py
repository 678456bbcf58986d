"""
api/routes/v1/dashboard.py -- Index-page widgets and analytics data.

Both payloads are static until the backend exposes reporting endpoints. The
dashboard payload is filtered per caller: entries that name a permission the
caller lacks are left out, exactly as the index page hides them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import limiter
from api.models import (
    ActivityOut,
    AnalyticsResponse,
    DashboardCardOut,
    DashboardResponse,
    KpiOut,
    QuickActionOut,
)
from auth.dependencies import require_permission
from auth.models import User
from auth.permissions import VIEW_ALL, has_permission
from core.dashboard import DASHBOARD_CARDS, QUICK_ACTIONS, RECENT_ACTIVITY, analytics_payload

# Auth policy:
# - GET /dashboard, /analytics: view_all
router = APIRouter()


def _visible(items, user: User) -> list:
    return [item for item in items if has_permission(user, item.permission)]


@limiter.limit("60/minute")
@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(request: Request, user: User = Depends(require_permission(VIEW_ALL))) -> DashboardResponse:
    """Return the cards, quick actions and recent activity visible to the caller."""
    return DashboardResponse(
        cards=[DashboardCardOut.model_validate(c) for c in _visible(DASHBOARD_CARDS, user)],
        quick_actions=[QuickActionOut.model_validate(a) for a in _visible(QUICK_ACTIONS, user)],
        recent_activity=[ActivityOut.model_validate(a) for a in _visible(RECENT_ACTIVITY, user)],
    )


@limiter.limit("60/minute")
@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(
    request: Request,
    range_key: Optional[str] = Query(default=None, alias="range", max_length=16),
    user: User = Depends(require_permission(VIEW_ALL)),
) -> AnalyticsResponse:
    """Return analytics figures. Unknown ranges fall back to 30days."""
    payload = analytics_payload(range_key)
    payload["kpis"] = [KpiOut.model_validate(k) for k in payload["kpis"]]
    return AnalyticsResponse(**payload)
