"""
panel/store.py -- SQLAlchemy Core persistence for panel-owned state.

Pattern: Repository + Data Mapper (same as auth/store.py).

Two tables:
  panel_settings  -- single-row settings table (id=1 enforced by CHECK
                     constraint). The row is seeded with PanelSettings()
                     defaults on first startup.
  casino_content  -- per-casino content toggle. A casino with no row is
                     enabled; only explicit toggles are stored.

Security:
  All queries use bound parameters. Settings column names come from the
  validated PanelSettings field whitelist, never from raw user input.

DB path: panel/casinovizion_panel.db.

Layer rule: no imports from api/, web/, or auth/.
"""

from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

from panel.models import PanelSettings

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'casinovizion_panel.db'}"

_DEFAULTS = PanelSettings()

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_panel_settings = Table(
    "panel_settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("company_name", String(255), nullable=False),
    Column("admin_email", String(320), nullable=False),
    Column("timezone", String(64), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("notifications", Boolean, nullable=False),
    Column("email_alerts", Boolean, nullable=False),
    Column("email_frequency", String(16), nullable=False),
    Column("two_factor_auth", Boolean, nullable=False),
    Column("maintenance_mode", Boolean, nullable=False),
    Column("api_rate_limit", String(16), nullable=False),
    Column("updated_at", String(32)),
    CheckConstraint("id = 1", name="ck_panel_settings_single_row"),
)

_casino_content = Table(
    "casino_content",
    metadata,
    Column("casino_id", String(64), primary_key=True),
    Column("enabled", Boolean, nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode. Set per-connection; PRAGMAs are not pooled."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PanelStore:
    """Repository for panel settings and casino content toggles.

    Usage:
        store = PanelStore()
        store.update_settings(company_name="CasinoVizion West", maintenance_mode=True)
        store.set_content_enabled("42", False)
        flags = store.get_content_flags()   # {"42": False}
        store.close()
    """

    # Known keys for panel_settings -- validated before any write.
    SETTINGS_KEYS: frozenset = frozenset(f.name for f in fields(PanelSettings))

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)
        self._ensure_settings_row()

    def _ensure_settings_row(self) -> None:
        """Seed the single settings row with defaults if it does not exist yet."""
        with self.engine.connect() as conn:
            row = conn.execute(_panel_settings.select().where(_panel_settings.c.id == 1)).fetchone()
            if row is None:
                conn.execute(_panel_settings.insert().values(id=1, updated_at=_now_iso(), **_DEFAULTS.to_dict()))
                conn.commit()

    # ------------------------------------------------------------------
    # Panel settings
    # ------------------------------------------------------------------

    def get_settings(self) -> PanelSettings:
        with self.engine.connect() as conn:
            row = conn.execute(_panel_settings.select().where(_panel_settings.c.id == 1)).fetchone()
        if row is None:
            # Should never happen; _ensure_settings_row() seeds this row.
            return PanelSettings()
        return _row_to_settings(row)

    def update_settings(self, **kwargs) -> PanelSettings:
        """Update one or more settings and return the stored result.

        Unknown keys raise ValueError rather than being silently ignored.
        Value validation (allowed timezones, currencies, ...) is the caller's
        job; this method only guards column names.
        """
        unknown = set(kwargs) - self.SETTINGS_KEYS
        if unknown:
            raise ValueError(f"Unknown panel settings keys: {sorted(unknown)!r}")
        if kwargs:
            with self.engine.connect() as conn:
                conn.execute(
                    _panel_settings.update().where(_panel_settings.c.id == 1).values(updated_at=_now_iso(), **kwargs)
                )
                conn.commit()
        return self.get_settings()

    # ------------------------------------------------------------------
    # Casino content toggles
    # ------------------------------------------------------------------

    def set_content_enabled(self, casino_id: str, enabled: bool) -> None:
        casino_id = str(casino_id)
        with self.engine.connect() as conn:
            exists = conn.execute(
                _casino_content.select().where(_casino_content.c.casino_id == casino_id)
            ).fetchone()
            if exists is None:
                conn.execute(
                    _casino_content.insert().values(casino_id=casino_id, enabled=enabled, updated_at=_now_iso())
                )
            else:
                conn.execute(
                    _casino_content.update()
                    .where(_casino_content.c.casino_id == casino_id)
                    .values(enabled=enabled, updated_at=_now_iso())
                )
            conn.commit()

    def is_content_enabled(self, casino_id: str) -> bool:
        """Return the stored toggle, defaulting to enabled."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _casino_content.select().where(_casino_content.c.casino_id == str(casino_id))
            ).fetchone()
        return True if row is None else bool(row.enabled)

    def get_content_flags(self, casino_ids: Optional[list[str]] = None) -> dict[str, bool]:
        """Return {casino_id: enabled} for stored toggles.

        With casino_ids, every requested id is present in the result, missing
        ones filled in as enabled.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(_casino_content.select()).fetchall()
        stored = {r.casino_id: bool(r.enabled) for r in rows}
        if casino_ids is None:
            return stored
        return {str(cid): stored.get(str(cid), True) for cid in casino_ids}

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_settings(row) -> PanelSettings:
    return PanelSettings(
        company_name=row.company_name,
        admin_email=row.admin_email,
        timezone=row.timezone,
        currency=row.currency,
        notifications=bool(row.notifications),
        email_alerts=bool(row.email_alerts),
        email_frequency=row.email_frequency,
        two_factor_auth=bool(row.two_factor_auth),
        maintenance_mode=bool(row.maintenance_mode),
        api_rate_limit=row.api_rate_limit,
    )
