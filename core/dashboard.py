"""
core/dashboard.py -- Static content for the index and analytics pages.

The figures are placeholders until the backend exposes reporting endpoints.
Each entry that is not for everyone names the permission it needs; callers
filter with auth.permissions.has_permission (core/ does not import auth/).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DashboardCard:
    id: str
    title: str
    value: str
    change: str
    permission: str = "view_all"


@dataclass(frozen=True)
class QuickAction:
    title: str
    description: str
    href: str
    permission: str = "view_all"


@dataclass(frozen=True)
class ActivityItem:
    message: str
    when: str
    permission: str = "view_all"


DASHBOARD_CARDS: tuple[DashboardCard, ...] = (
    DashboardCard("casinos", "Total Casinos", "24", "+2 from last month"),
    DashboardCard("hotels", "Total Hotels", "18", "+3 from last month"),
    DashboardCard("restaurants", "Total Restaurants", "42", "+5 from last month"),
    DashboardCard("users", "Active Customers", "1,247", "+180 from last month", permission="add_edit_delete_users"),
)

QUICK_ACTIONS: tuple[QuickAction, ...] = (
    QuickAction("Manage Casinos", "View and edit casino details", "/adminpanel/casinos"),
    QuickAction("User Management", "Manage system users", "/adminpanel/users", permission="add_edit_delete_users"),
)

RECENT_ACTIVITY: tuple[ActivityItem, ...] = (
    ActivityItem("New casino added: Bellagio Las Vegas", "2 hours ago"),
    ActivityItem("Casino details updated: MGM Grand", "5 hours ago"),
    ActivityItem("New user registered", "1 day ago", permission="add_edit_delete_users"),
)

# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

ANALYTICS_RANGES: dict[str, str] = {
    "7days": "Last 7 days",
    "30days": "Last 30 days",
    "90days": "Last 90 days",
    "1year": "Last year",
}
DEFAULT_RANGE = "30days"


@dataclass(frozen=True)
class KpiCard:
    title: str
    value: str
    change: str
    color: Optional[str] = None


KPI_CARDS: tuple[KpiCard, ...] = (
    KpiCard("Total Revenue", "$328,000", "+15.2% from last month"),
    KpiCard("Active Casinos", "24", "+2 new this month"),
    KpiCard("Monthly Visitors", "125,847", "+8.3% from last month", color="#1A5935"),
    KpiCard("Growth Rate", "+18.7%", "+3.2% from last month", color="#E0B100"),
)

REVENUE_SERIES: tuple[dict, ...] = (
    {"month": "Jan", "revenue": 45000, "casinos": 20},
    {"month": "Feb", "revenue": 52000, "casinos": 21},
    {"month": "Mar", "revenue": 48000, "casinos": 22},
    {"month": "Apr", "revenue": 61000, "casinos": 23},
    {"month": "May", "revenue": 55000, "casinos": 24},
    {"month": "Jun", "revenue": 67000, "casinos": 24},
)

CATEGORY_SPLIT: tuple[dict, ...] = (
    {"name": "Luxury", "value": 40, "color": "#13294B"},
    {"name": "Entertainment", "value": 35, "color": "#7D1D28"},
    {"name": "Budget", "value": 25, "color": "#1A5935"},
)

PERFORMANCE_METRICS: tuple[tuple[str, str], ...] = (
    ("Average Rating", "4.6/5"),
    ("Customer Satisfaction", "92%"),
    ("Repeat Visitors", "68%"),
    ("Market Share", "23%"),
)


def normalize_range(value: Optional[str]) -> str:
    return value if value in ANALYTICS_RANGES else DEFAULT_RANGE


def analytics_payload(range_key: Optional[str] = None) -> dict:
    """Everything the analytics page shows, as plain data.

    The figures do not vary with the range yet; the selected range is echoed
    so the page can keep its selector in sync.
    """
    peak = max(row["revenue"] for row in REVENUE_SERIES)
    return {
        "range": normalize_range(range_key),
        "ranges": ANALYTICS_RANGES,
        "kpis": list(KPI_CARDS),
        "revenue": [dict(row, pct=round(row["revenue"] * 100 / peak)) for row in REVENUE_SERIES],
        "categories": list(CATEGORY_SPLIT),
        "metrics": list(PERFORMANCE_METRICS),
    }
