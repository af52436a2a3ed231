import logging
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.models.auth.user import User
from elitetime.models.hr.pointage import Pointage
from elitetime.models.shared.enums import ActivityType, UserStatus
from elitetime.realtime.hub import BREAK_REMINDER, RealtimeHub
from elitetime.services.system.activity_log_service import ActivityLogService
from elitetime.services.system.settings_service import SettingsService
from elitetime.utils.time_utils import local_now, utcnow

logger = logging.getLogger(__name__)

DEFAULT_BREAK_MESSAGE = "N'oubliez pas de prendre votre pause."


class NotificationService:
    """Pushes reminders through the realtime relay."""

    def __init__(self, session: AsyncSession, hub: RealtimeHub):
        self.session = session
        self.hub = hub

    async def send_break_reminders(
        self,
        actor_id: Optional[int] = None,
        message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Remind every active user currently clocked in today."""
        settings_row = await SettingsService(self.session).get_settings()
        if not settings_row.push_notifications:
            logger.info("Break reminders skipped: push notifications disabled")
            return {"notified": 0, "delivered": 0, "skipped": True}

        today = (now or local_now()).date()
        result = await self.session.execute(
            select(User.id)
            .join(Pointage, Pointage.user_id == User.id)
            .where(
                Pointage.date == today,
                Pointage.is_active == True,
                User.status == UserStatus.ACTIVE,
            )
            .distinct()
        )
        user_ids = list(result.scalars().all())

        text = message or DEFAULT_BREAK_MESSAGE
        timestamp = utcnow().isoformat()
        delivered = 0
        for user_id in user_ids:
            delivered += await self.hub.publish(
                BREAK_REMINDER, {"userId": user_id, "message": text, "timestamp": timestamp}
            )

        await ActivityLogService(self.session).create_activity_log(
            actor_id,
            "Rappel de pause",
            f"{len(user_ids)} employés notifiés, {delivered} messages remis",
            ActivityType.BREAK,
        )
        return {"notified": len(user_ids), "delivered": delivered, "skipped": False}
