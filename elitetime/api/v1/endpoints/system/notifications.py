from fastapi import APIRouter, Depends
from typing import Optional
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import get_realtime_hub, require_role
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import UserRole
from elitetime.realtime.hub import RealtimeHub
from elitetime.services.system.notification_service import NotificationService

router = APIRouter()


class BreakReminderRequest(BaseModel):
    message: Optional[str] = None


@router.post("/break-reminder")
async def send_break_reminder(
    body: Optional[BreakReminderRequest] = None,
    session: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    current_user: User = Depends(require_role(UserRole.MANAGER, UserRole.ADMIN)),
):
    """Push a break reminder to everyone clocked in today"""
    result = await NotificationService(session, hub).send_break_reminders(
        actor_id=current_user.id,
        message=body.message if body else None,
    )
    return {"success": True, **result}
