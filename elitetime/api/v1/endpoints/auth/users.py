from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.api.dependencies import require_permission
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import ActivityType, UserRole, UserStatus
from elitetime.schemas.auth.user_schema import UserCreate, UserResponse, UserUpdate
from elitetime.schemas.common.pagination import PaginatedResponse
from elitetime.services.auth.user_service import UserService
from elitetime.services.system.activity_log_service import ActivityLogService

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[UserResponse])
async def get_users(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    status: Optional[UserStatus] = Query(None),
    department: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("view_employees")),
):
    """Get users with filtering"""
    service = UserService(session)
    return await service.get_users(page_index, page_size, search, role, status, department)


@router.get("/export")
async def export_users(
    status: Optional[UserStatus] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("view_employees")),
):
    """Export users to Excel"""
    return await UserService(session).export_users_excel(status)


@router.post("/", response_model=UserResponse)
async def create_user(
    user: UserCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("create_employees")),
):
    """Create a new user"""
    created = await UserService(session).create_user(user, created_by=current_user.id)
    await ActivityLogService(session).create_activity_log(
        current_user.id,
        "Création d'utilisateur",
        f"Utilisateur {created.username} créé ({created.role.value})",
        ActivityType.USER,
    )
    return created


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user: UserUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("edit_employees")),
):
    """Update user"""
    updated = await UserService(session).update_user(user_id, user, updated_by=current_user.id)
    await ActivityLogService(session).create_activity_log(
        current_user.id,
        "Modification d'utilisateur",
        f"Utilisateur {updated.username} modifié",
        ActivityType.USER,
    )
    return updated


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("delete_employees")),
):
    """Soft delete user"""
    deleted = await UserService(session).delete_user(user_id, deleted_by=current_user.id)
    await ActivityLogService(session).create_activity_log(
        current_user.id,
        "Suppression d'utilisateur",
        f"Utilisateur {deleted.username} supprimé",
        ActivityType.USER,
    )
    return {"message": "Utilisateur supprimé", "success": True}
