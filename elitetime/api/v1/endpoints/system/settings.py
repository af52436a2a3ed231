from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import require_permission
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import ActivityType
from elitetime.schemas.system.settings_schema import SystemSettingsResponse, SystemSettingsUpdate
from elitetime.services.system.activity_log_service import ActivityLogService
from elitetime.services.system.settings_service import SettingsService

router = APIRouter()


@router.get("/", response_model=SystemSettingsResponse)
async def get_settings(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("view_settings")),
):
    return await SettingsService(session).get_settings()


@router.put("/", response_model=SystemSettingsResponse)
async def update_settings(
    data: SystemSettingsUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("edit_settings")),
):
    updated = await SettingsService(session).update_settings(data)
    changed = ", ".join(sorted(data.dict(exclude_unset=True))) or "aucun champ"
    await ActivityLogService(session).create_activity_log(
        current_user.id, "Modification des paramètres", f"Champs modifiés: {changed}", ActivityType.SYSTEM
    )
    return updated
