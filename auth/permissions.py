"""
auth/permissions.py -- Static role -> permission table.

This is the only place roles map to permissions. Route dependencies
(auth.dependencies.require_permission), templates (has_permission global) and
the dashboard card filter all read from ROLE_PERMISSIONS.

Capability nests: admin ⊇ developer ⊇ guest.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from auth.models import User

VIEW_ALL = "view_all"
ADD_EDIT_DELETE_USERS = "add_edit_delete_users"
ADD_EDIT_RECORDS = "add_edit_records"
DELETE_RECORDS = "delete_records"
EDIT_PROFILE = "edit_profile"

ROLES = ("admin", "developer", "guest")

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": frozenset({VIEW_ALL, ADD_EDIT_DELETE_USERS, ADD_EDIT_RECORDS, DELETE_RECORDS, EDIT_PROFILE}),
    "developer": frozenset({VIEW_ALL, ADD_EDIT_RECORDS, DELETE_RECORDS, EDIT_PROFILE}),
    "guest": frozenset({VIEW_ALL, ADD_EDIT_RECORDS, EDIT_PROFILE}),
}


def permissions_for(role: str) -> frozenset[str]:
    """Return the permission set for a role. Unknown roles get nothing."""
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(user: User | None, permission: str) -> bool:
    if user is None:
        return False
    return permission in permissions_for(user.role)
