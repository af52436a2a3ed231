import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.api.dependencies import get_current_user, require_role
from elitetime.core.database import get_async_session
from elitetime.core.exceptions import NotFoundError
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import ActivityType, UserRole
from elitetime.schemas.auth.auth_schema import UserPermissionsResponse
from elitetime.schemas.auth.permission_schema import (
    GrantAllResponse,
    PermissionGrantRequest,
    PermissionResponse,
    SeedResponse,
    UserPermissionsDetail,
)
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.system.activity_log_service import ActivityLogService

router = APIRouter()
logger = logging.getLogger(__name__)

require_admin = require_role(UserRole.ADMIN)


@router.get("/user/permissions", response_model=UserPermissionsResponse)
async def get_my_permissions(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Effective permission names of the caller (every permission for admins)."""
    names = await PermissionService(session).get_effective_permission_names(current_user)
    return UserPermissionsResponse(permissions=names, role=current_user.role.value)


@router.get("/admin/permissions", response_model=List[PermissionResponse])
async def list_permissions(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_admin),
):
    return await PermissionService(session).list_permissions()


@router.post("/admin/permissions/seed", response_model=SeedResponse)
async def seed_permissions(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_admin),
):
    result = await PermissionService(session).seed_permissions()
    await ActivityLogService(session).create_activity_log(
        current_user.id,
        "Initialisation des permissions",
        f"{result['created']} créées, {result['updated']} mises à jour",
        ActivityType.SYSTEM,
    )
    return SeedResponse(created=result["created"], updated=result["updated"])


@router.post("/admin/permissions/grant-all", response_model=GrantAllResponse)
async def grant_all_permissions_to_admins(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_admin),
):
    result = await PermissionService(session).grant_all_permissions_to_admins(granted_by=current_user.id)
    return GrantAllResponse(updatedAdmins=result["updatedAdmins"], createdLinks=result["createdLinks"])


@router.get("/admin/users/{user_id}/permissions", response_model=UserPermissionsDetail)
async def get_user_permissions(
    user_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_admin),
):
    service = PermissionService(session)
    user = await service.get_user(user_id)
    if user is None:
        raise NotFoundError("Utilisateur introuvable")

    permissions = await service.list_permissions() if user.is_admin else await service.get_user_permissions(user_id)
    return UserPermissionsDetail(
        user_id=user.id,
        role=user.role.value,
        is_admin=user.is_admin,
        permissions=[PermissionResponse.model_validate(p, from_attributes=True) for p in permissions],
    )


@router.post("/admin/users/{user_id}/permissions")
async def grant_user_permission(
    user_id: int,
    body: PermissionGrantRequest,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_admin),
):
    service = PermissionService(session)
    await service.grant_permission(user_id, body.permission_id, granted_by=current_user.id)
    await ActivityLogService(session).create_activity_log(
        current_user.id,
        "Attribution de permission",
        f"Permission {body.permission_id} accordée à l'utilisateur {user_id}",
        ActivityType.USER,
    )
    return {"success": True}


@router.delete("/admin/users/{user_id}/permissions")
async def revoke_user_permission(
    user_id: int,
    body: PermissionGrantRequest,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_admin),
):
    removed = await PermissionService(session).revoke_permission(user_id, body.permission_id)
    if removed:
        await ActivityLogService(session).create_activity_log(
            current_user.id,
            "Retrait de permission",
            f"Permission {body.permission_id} retirée à l'utilisateur {user_id}",
            ActivityType.USER,
        )
    return {"success": True, "removed": removed}


@router.post("/admin/users/{user_id}/permissions/reset")
async def reset_user_permissions(
    user_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_admin),
):
    service = PermissionService(session)
    names = await service.reset_permissions_to_role_defaults(user_id, granted_by=current_user.id)
    target = await service.get_user(user_id)
    await ActivityLogService(session).create_activity_log(
        current_user.id,
        "Réinitialisation des permissions",
        f"Permissions de {target.full_name} (rôle: {target.role.value}) réinitialisées selon le rôle",
        ActivityType.USER,
    )
    return {"success": True, "permissions": names}
