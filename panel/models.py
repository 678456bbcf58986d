"""
panel/models.py -- Domain dataclasses and option lists for panel settings.

Pure data containers. Persistence lives in panel/store.py; the settings
routes validate submitted values against the option tuples below.
"""

from dataclasses import asdict, dataclass
from typing import Optional

SETTINGS_TABS = ("general", "security", "notifications", "system")

# value -> label, in display order
TIMEZONES = {
    "America/Los_Angeles": "Pacific Time (PT)",
    "America/Denver": "Mountain Time (MT)",
    "America/Chicago": "Central Time (CT)",
    "America/New_York": "Eastern Time (ET)",
}

CURRENCIES = {
    "USD": "USD - US Dollar",
    "EUR": "EUR - Euro",
    "GBP": "GBP - British Pound",
    "CAD": "CAD - Canadian Dollar",
}

EMAIL_FREQUENCIES = {
    "realtime": "Real-time",
    "hourly": "Hourly",
    "daily": "Daily",
    "weekly": "Weekly",
}

API_RATE_LIMITS = {
    "100": "100 requests/hour",
    "500": "500 requests/hour",
    "1000": "1000 requests/hour",
    "unlimited": "Unlimited",
}

CONTENT_FILTERS = ("all", "enable", "disable")


@dataclass
class PanelSettings:
    """The single row of panel-wide settings shown on the Settings page."""

    company_name: str = "CasinoVizion"
    admin_email: str = "admin@casinovizion.com"
    timezone: str = "America/Los_Angeles"
    currency: str = "USD"
    notifications: bool = True
    email_alerts: bool = True
    email_frequency: str = "daily"
    two_factor_auth: bool = False
    maintenance_mode: bool = False
    api_rate_limit: str = "1000"

    def to_dict(self) -> dict:
        return asdict(self)


def normalize_tab(tab: Optional[str]) -> str:
    """Unknown or missing tab names fall back to "general"."""
    return tab if tab in SETTINGS_TABS else "general"
