"""
tests/test_api_panel.py -- Integration tests for the casino, category,
dashboard, settings and users endpoints.

The venue backend is an autospec mock (conftest `api` fixture); the panel
and user stores are real in-memory databases.
"""

from __future__ import annotations

from auth.cognito import IdentityError
from auth.tokens import decode_session_token
from core.backend import BackendError
from core.models import Casino, CasinoForm, CategoryOption
from conftest import Harness

_CASINOS = [
    Casino(id="1", name="Bellagio", email="info@bellagio.example", phone="702-693-7111", status="Active"),
    Casino(id="2", name="MGM Grand", email="hello@mgm.example", phone="702-891-1111", status="Inactive"),
    Casino(id="3", name="Wynn", status="Pending"),
]


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestCasinos:
    def test_requires_auth(self, api: Harness) -> None:
        assert api.client.get("/api/v1/casinos").status_code == 401

    def test_list_all(self, api: Harness) -> None:
        api.backend.list_casinos.return_value = _CASINOS
        token = api.login_as("api-casino-list", role="guest")
        resp = api.client.get("/api/v1/casinos", headers=_bearer(token))
        assert resp.status_code == 200
        data = resp.json()
        assert (data["total"], data["returned"]) == (3, 3)
        assert [c["id"] for c in data["data"]] == ["1", "2", "3"]
        provider_id_token = api.user_store.get_session(decode_session_token(token)["session_id"]).id_token
        api.backend.list_casinos.assert_called_once_with(token=provider_id_token)

    def test_filters(self, api: Harness) -> None:
        api.backend.list_casinos.return_value = _CASINOS
        api.panel.set_content_enabled("2", False)
        token = api.login_as("api-casino-filter")
        params = {"search": "702", "status": "inactive", "content": "disable"}
        resp = api.client.get("/api/v1/casinos", headers=_bearer(token), params=params)
        data = resp.json()
        assert (data["total"], data["returned"]) == (3, 1)
        assert data["data"][0]["id"] == "2"
        assert data["data"][0]["content_enabled"] is False
        api.panel.set_content_enabled("2", True)

    def test_bad_content_filter_is_validation_error(self, api: Harness) -> None:
        token = api.login_as("api-casino-badfilter")
        resp = api.client.get("/api/v1/casinos", headers=_bearer(token), params={"content": "maybe"})
        assert resp.status_code == 422

    def test_backend_failure_is_502(self, api: Harness) -> None:
        api.backend.list_casinos.side_effect = BackendError("Server error: 500", status_code=500)
        token = api.login_as("api-casino-502")
        resp = api.client.get("/api/v1/casinos", headers=_bearer(token))
        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "backend_error"
        assert resp.json()["error"]["detail"] == "upstream status 500"

    def test_detail(self, api: Harness) -> None:
        api.backend.get_casino.return_value = _CASINOS[0]
        token = api.login_as("api-casino-detail")
        resp = api.client.get("/api/v1/casinos/1", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json()["name"] == "Bellagio"
        assert resp.json()["content_enabled"] is True

    def test_detail_not_found(self, api: Harness) -> None:
        api.backend.get_casino.return_value = None
        token = api.login_as("api-casino-404")
        resp = api.client.get("/api/v1/casinos/99", headers=_bearer(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_create(self, api: Harness) -> None:
        api.backend.create_casino.return_value = {"success": True, "casino_id": 10}
        token = api.login_as("api-casino-create", role="guest")
        body = {
            "name": "Aria",
            "email": "info@aria.example",
            "category": "3",
            "status": "Active",
            "subcategories": ["9"],
        }
        resp = api.client.post("/api/v1/casinos", headers=_bearer(token), json=body)
        assert resp.status_code == 201
        assert resp.json() == {"success": True, "casino_id": 10}
        form = api.backend.create_casino.call_args.args[0]
        assert isinstance(form, CasinoForm)
        assert (form.name, form.status, form.subcategories) == ("Aria", "Active", ["9"])

    def test_create_rejects_unknown_status(self, api: Harness) -> None:
        token = api.login_as("api-casino-badstatus")
        body = {"name": "Aria", "email": "info@aria.example", "category": "3", "status": "Closed"}
        assert api.client.post("/api/v1/casinos", headers=_bearer(token), json=body).status_code == 422
        api.backend.create_casino.assert_not_called()

    def test_content_toggle(self, api: Harness) -> None:
        token = api.login_as("api-casino-toggle")
        resp = api.client.put("/api/v1/casinos/77/content", headers=_bearer(token), json={"enabled": False})
        assert resp.json() == {"casino_id": "77", "enabled": False}
        assert api.panel.is_content_enabled("77") is False


class TestCategories:
    def test_categories(self, api: Harness) -> None:
        api.backend.list_categories.return_value = [CategoryOption(key="3", value="Luxury")]
        token = api.login_as("api-categories")
        assert api.client.get("/api/v1/categories", headers=_bearer(token)).json() == [{"key": "3", "value": "Luxury"}]

    def test_subcategories(self, api: Harness) -> None:
        api.backend.list_subcategories.return_value = [CategoryOption(key="9", value="Poker")]
        token = api.login_as("api-subcategories")
        resp = api.client.get("/api/v1/categories/3/subcategories", headers=_bearer(token))
        assert resp.json() == [{"key": "9", "value": "Poker"}]
        assert api.backend.list_subcategories.call_args.args[0] == "3"

    def test_requires_auth(self, api: Harness) -> None:
        assert api.client.get("/api/v1/categories").status_code == 401


class TestDashboard:
    def test_admin_sees_user_management(self, api: Harness) -> None:
        token = api.login_as("api-dash-admin", role="admin")
        data = api.client.get("/api/v1/dashboard", headers=_bearer(token)).json()
        assert "users" in [c["id"] for c in data["cards"]]
        assert "/adminpanel/users" in [a["href"] for a in data["quick_actions"]]

    def test_guest_does_not(self, api: Harness) -> None:
        token = api.login_as("api-dash-guest", role="guest")
        data = api.client.get("/api/v1/dashboard", headers=_bearer(token)).json()
        assert "users" not in [c["id"] for c in data["cards"]]
        assert "/adminpanel/users" not in [a["href"] for a in data["quick_actions"]]
        assert all("registered" not in a["message"] for a in data["recent_activity"])

    def test_analytics_range(self, api: Harness) -> None:
        token = api.login_as("api-analytics")
        assert api.client.get("/api/v1/analytics?range=7days", headers=_bearer(token)).json()["range"] == "7days"
        data = api.client.get("/api/v1/analytics?range=decade", headers=_bearer(token)).json()
        assert data["range"] == "30days"
        assert len(data["kpis"]) == 4


class TestSettings:
    def test_get(self, api: Harness) -> None:
        token = api.login_as("api-settings-get", role="guest")
        resp = api.client.get("/api/v1/settings", headers=_bearer(token))
        assert resp.status_code == 200
        assert "company_name" in resp.json()

    def test_patch(self, api: Harness) -> None:
        token = api.login_as("api-settings-patch")
        body = {"currency": "EUR", "notifications": False}
        resp = api.client.patch("/api/v1/settings", headers=_bearer(token), json=body)
        assert resp.status_code == 200
        assert (resp.json()["currency"], resp.json()["notifications"]) == ("EUR", False)
        assert api.panel.get_settings().currency == "EUR"

    def test_patch_rejects_unlisted_option(self, api: Harness) -> None:
        token = api.login_as("api-settings-bad")
        assert api.client.patch("/api/v1/settings", headers=_bearer(token), json={"currency": "JPY"}).status_code == 422

    def test_patch_rejects_unknown_field(self, api: Harness) -> None:
        token = api.login_as("api-settings-extra")
        assert api.client.patch("/api/v1/settings", headers=_bearer(token), json={"theme": "dark"}).status_code == 422

    def test_patch_requires_changes(self, api: Harness) -> None:
        token = api.login_as("api-settings-empty")
        resp = api.client.patch("/api/v1/settings", headers=_bearer(token), json={})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "no_changes"


class TestUsers:
    def test_developer_forbidden(self, api: Harness) -> None:
        token = api.login_as("api-users-dev", role="developer")
        resp = api.client.get("/api/v1/users", headers=_bearer(token))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_admin_lists_users(self, api: Harness) -> None:
        token = api.login_as("api-users-admin")
        usernames = [u["username"] for u in api.client.get("/api/v1/users", headers=_bearer(token)).json()]
        assert "api-users-admin" in usernames

    def test_deactivate_other_user_ends_their_session(self, api: Harness) -> None:
        admin = api.login_as("api-users-boss")
        victim = api.login_as("api-users-victim", role="guest")
        resp = api.client.patch("/api/v1/users/api-users-victim", headers=_bearer(admin), json={"is_active": False})
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        assert api.client.get("/api/v1/auth/me", headers=_bearer(victim)).status_code == 401

    def test_cannot_deactivate_self(self, api: Harness) -> None:
        token = api.login_as("api-users-self")
        resp = api.client.patch("/api/v1/users/api-users-self", headers=_bearer(token), json={"is_active": False})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "self_deactivation"

    def test_unknown_user(self, api: Harness) -> None:
        token = api.login_as("api-users-404")
        resp = api.client.patch("/api/v1/users/nobody-here", headers=_bearer(token), json={"is_active": True})
        assert resp.status_code == 404


def test_session_lookup_does_not_call_identity_provider(api: Harness) -> None:
    api.identity.get_user.side_effect = IdentityError("NetworkError")
    token = api.login_as("api-isolation")
    assert api.client.get("/api/v1/auth/me", headers=_bearer(token)).status_code == 200
