"""Administrative user and login history endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from src.gatekeeper.api.http.deps import (
    get_login_audit_log,
    get_user_admin_service,
    require_permission,
)
from src.gatekeeper.api.http.schemas import (
    LoginHistoryResponse,
    MessageResponse,
    UpdateUserRequest,
    UserResponse,
)
from src.gatekeeper.core.services import permissions
from src.gatekeeper.core.services.audit import LoginAuditLog
from src.gatekeeper.core.services.user import UserAdministrationService

router = APIRouter(tags=["users"])


def _user_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="User not found")


@router.get(
    "/users",
    response_model=list[UserResponse],
    dependencies=[Depends(require_permission(permissions.USERS_READ))],
)
async def list_users(
    admin: UserAdministrationService = Depends(get_user_admin_service),
) -> list[UserResponse]:
    return [UserResponse.from_user(user) for user in admin.list_users()]


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(require_permission(permissions.USERS_READ))],
)
async def get_user(
    user_id: str, admin: UserAdministrationService = Depends(get_user_admin_service)
) -> UserResponse:
    user = admin.get_user(user_id)
    if user is None:
        raise _user_not_found()
    return UserResponse.from_user(user)


@router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(require_permission(permissions.USERS_UPDATE))],
)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    admin: UserAdministrationService = Depends(get_user_admin_service),
) -> UserResponse:
    """Change display name, email or role. The only way a role changes."""
    # fields left out of the body stay untouched; "" clears a text field
    user = admin.update_user(user_id, **body.model_dump(exclude_unset=True))
    if user is None:
        raise _user_not_found()
    return UserResponse.from_user(user)


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(permissions.USERS_DELETE))],
)
async def delete_user(
    user_id: str, admin: UserAdministrationService = Depends(get_user_admin_service)
) -> MessageResponse:
    if not admin.deactivate_user(user_id):
        raise _user_not_found()
    return MessageResponse(message="User deleted successfully")


@router.get(
    "/users/{user_id}/login-history",
    response_model=list[LoginHistoryResponse],
    dependencies=[Depends(require_permission(permissions.USERS_READ))],
)
async def user_login_history(
    user_id: str, audit: LoginAuditLog = Depends(get_login_audit_log)
) -> list[LoginHistoryResponse]:
    return [LoginHistoryResponse.from_entry(e) for e in audit.history_for_user(user_id)]


@router.get(
    "/login-history/recent",
    response_model=list[LoginHistoryResponse],
    dependencies=[Depends(require_permission(permissions.SYSTEM_ADMIN))],
)
async def recent_login_history(
    count: int = 10, audit: LoginAuditLog = Depends(get_login_audit_log)
) -> list[LoginHistoryResponse]:
    return [LoginHistoryResponse.from_entry(e) for e in audit.recent(max(1, min(count, 100)))]
