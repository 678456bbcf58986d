"""
tests/test_panel_store.py -- PanelStore settings row and content toggles.
"""

from __future__ import annotations

import uuid

import pytest

from panel.models import PanelSettings, normalize_tab
from panel.store import PanelStore


@pytest.fixture()
def store():
    s = PanelStore(db_url=f"sqlite:///file:panelstore_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield s
    s.close()


class TestSettings:
    def test_seeded_with_defaults(self, store: PanelStore) -> None:
        assert store.get_settings() == PanelSettings()

    def test_update_returns_stored_values(self, store: PanelStore) -> None:
        updated = store.update_settings(company_name="CasinoVizion West", maintenance_mode=True)
        assert updated.company_name == "CasinoVizion West"
        assert updated.maintenance_mode is True
        assert updated.currency == "USD"
        assert store.get_settings() == updated

    def test_unknown_key_rejected(self, store: PanelStore) -> None:
        with pytest.raises(ValueError, match="updated_at"):
            store.update_settings(updated_at="2020-01-01")

    def test_empty_update_is_a_no_op(self, store: PanelStore) -> None:
        assert store.update_settings() == PanelSettings()

    def test_second_store_on_same_db_keeps_row(self, store: PanelStore) -> None:
        store.update_settings(currency="EUR")
        store._ensure_settings_row()
        assert store.get_settings().currency == "EUR"


class TestContentToggles:
    def test_default_is_enabled(self, store: PanelStore) -> None:
        assert store.is_content_enabled("42") is True

    def test_toggle_off_and_on(self, store: PanelStore) -> None:
        store.set_content_enabled("42", False)
        assert store.is_content_enabled("42") is False
        store.set_content_enabled("42", True)
        assert store.is_content_enabled("42") is True

    def test_flags_only_stored_rows_without_ids(self, store: PanelStore) -> None:
        store.set_content_enabled("1", False)
        assert store.get_content_flags() == {"1": False}

    def test_flags_fill_requested_ids(self, store: PanelStore) -> None:
        store.set_content_enabled("1", False)
        assert store.get_content_flags(["1", "2"]) == {"1": False, "2": True}


@pytest.mark.parametrize("tab,expected", [("security", "security"), ("billing", "general"), (None, "general")])
def test_normalize_tab(tab, expected) -> None:
    assert normalize_tab(tab) == expected
