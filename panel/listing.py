"""
panel/listing.py -- Filtering rules for the casino list page.

Pure functions; no I/O. The routes fetch casinos from core.backend and content
flags from panel.store, then hand both here.
"""

from typing import Optional

from core.models import Casino
from panel.models import CONTENT_FILTERS


def matches_search(casino: Casino, search: str) -> bool:
    """Case-insensitive match on name or email; plain substring match on phone."""
    if not search:
        return True
    needle = search.lower()
    if needle in casino.name.lower():
        return True
    if casino.email and needle in casino.email.lower():
        return True
    return bool(casino.phone) and search in casino.phone


def filter_casinos(
    casinos: list[Casino],
    search: str = "",
    status: str = "all",
    content: str = "all",
    content_enabled: Optional[dict[str, bool]] = None,
) -> list[Casino]:
    """Apply the search, status and content filters of the casino list page.

    status  -- "all", or a status compared case-insensitively ("active" matches "Active")
    content -- "all", "enable" or "disable"; casinos absent from content_enabled
               count as enabled. Unknown values behave like "all".
    """
    content_enabled = content_enabled or {}
    status_key = (status or "all").lower()
    if content not in CONTENT_FILTERS:
        content = "all"

    result = []
    for casino in casinos:
        if not matches_search(casino, search.strip() if search else ""):
            continue
        if status_key != "all" and (casino.status or "").lower() != status_key:
            continue
        enabled = content_enabled.get(str(casino.id), True)
        if content == "enable" and not enabled:
            continue
        if content == "disable" and enabled:
            continue
        result.append(casino)
    return result
