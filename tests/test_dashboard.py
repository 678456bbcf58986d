"""
tests/test_dashboard.py -- Static dashboard and analytics content.
"""

from __future__ import annotations

from auth.permissions import ADD_EDIT_DELETE_USERS, ROLE_PERMISSIONS
from core.dashboard import (
    ANALYTICS_RANGES,
    DASHBOARD_CARDS,
    DEFAULT_RANGE,
    QUICK_ACTIONS,
    RECENT_ACTIVITY,
    analytics_payload,
    normalize_range,
)


def test_every_entry_names_a_real_permission() -> None:
    known = set().union(*ROLE_PERMISSIONS.values())
    for item in (*DASHBOARD_CARDS, *QUICK_ACTIONS, *RECENT_ACTIVITY):
        assert item.permission in known


def test_user_management_entries_are_gated() -> None:
    users_card = next(c for c in DASHBOARD_CARDS if c.id == "users")
    assert users_card.permission == ADD_EDIT_DELETE_USERS
    assert any(a.href == "/adminpanel/users" and a.permission == ADD_EDIT_DELETE_USERS for a in QUICK_ACTIONS)


class TestAnalytics:
    def test_unknown_range_falls_back(self) -> None:
        assert normalize_range("forever") == DEFAULT_RANGE == "30days"
        assert normalize_range(None) == DEFAULT_RANGE

    def test_known_range_is_echoed(self) -> None:
        assert analytics_payload("7days")["range"] == "7days"

    def test_payload_shape(self) -> None:
        payload = analytics_payload()
        assert payload["ranges"] == ANALYTICS_RANGES
        assert len(payload["kpis"]) == 4
        assert max(row["pct"] for row in payload["revenue"]) == 100
        assert sum(c["value"] for c in payload["categories"]) == 100
