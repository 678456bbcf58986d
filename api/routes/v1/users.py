"""
api/routes/v1/users.py -- Administration of locally recorded users.

Accounts themselves live in the identity provider. The panel records everyone
who signs in and can switch a record off; a deactivated user's sessions are
revoked immediately and further sign-ins are refused.

Security:
  An admin cannot deactivate their own record (no self-lockout).
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import UserPatch, UserResponse
from auth.dependencies import require_permission
from auth.models import User
from auth.permissions import ADD_EDIT_DELETE_USERS
from auth.store import UserStore

# Auth policy:
# - GET /users, PATCH /users/{username}: add_edit_delete_users
router = APIRouter()

_require_user_admin = require_permission(ADD_EDIT_DELETE_USERS)


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, current_user: User = Depends(_require_user_admin)) -> list[UserResponse]:
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.patch("/users/{username}", response_model=UserResponse)
def update_user(
    request: Request,
    username: str,
    body: UserPatch,
    current_user: User = Depends(_require_user_admin),
) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    if not body.is_active and username == current_user.username:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_deactivation", "message": "You cannot deactivate your own account."},
        )
    if not user_store.set_active(username, body.is_active):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return UserResponse.from_user(user_store.get_by_username(username))
