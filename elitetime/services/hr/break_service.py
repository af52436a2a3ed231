import logging
from datetime import datetime
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.core.exceptions import InvalidOperationError, UnexpectedError
from elitetime.models.auth.user import User
from elitetime.models.hr.break_record import Break
from elitetime.models.shared.enums import ActivityType
from elitetime.services.system.activity_log_service import ActivityLogService
from elitetime.utils.time_utils import local_now, minutes_between

logger = logging.getLogger(__name__)


class BreakService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity = ActivityLogService(session)

    async def get_open_break(self, user_id: int) -> Optional[Break]:
        result = await self.session.execute(
            select(Break)
            .where(Break.user_id == user_id, Break.end_time.is_(None))
            .order_by(Break.date.desc(), Break.id.desc())
        )
        return result.scalars().first()

    async def get_today_breaks(self, user_id: int, now: Optional[datetime] = None) -> List[Break]:
        today = (now or local_now()).date()
        result = await self.session.execute(
            select(Break)
            .where(Break.user_id == user_id, Break.date == today)
            .order_by(Break.start_time.asc())
        )
        return list(result.scalars().all())

    async def start_break(self, user: User, now: Optional[datetime] = None) -> Break:
        now = now or local_now()
        try:
            if await self.get_open_break(user.id) is not None:
                raise InvalidOperationError("Une pause est déjà en cours")

            record = Break(
                user_id=user.id,
                date=now.date(),
                start_time=now.time().replace(second=0, microsecond=0),
                duration=0,
            )
            self.session.add(record)
            await self.session.commit()
            await self.session.refresh(record)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error starting break for user {user.id}: {e}")
            raise UnexpectedError("Erreur lors du début de la pause", details=str(e))

        await self.activity.create_activity_log(
            user.id, "Début de pause", f"{user.full_name} - {record.start_time.strftime('%H:%M')}", ActivityType.BREAK
        )
        return record

    async def end_break(self, user: User, now: Optional[datetime] = None) -> Break:
        now = now or local_now()
        try:
            record = await self.get_open_break(user.id)
            if record is None:
                raise InvalidOperationError("Aucune pause en cours")

            started = datetime.combine(record.date, record.start_time)
            ended = max(now, started)
            record.end_time = ended.time().replace(second=0, microsecond=0)
            record.duration = minutes_between(started, ended)
            await self.session.commit()
            await self.session.refresh(record)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error ending break for user {user.id}: {e}")
            raise UnexpectedError("Erreur lors de la fin de la pause", details=str(e))

        await self.activity.create_activity_log(
            user.id, "Fin de pause", f"{user.full_name} - {record.duration} min", ActivityType.BREAK
        )
        return record
