import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.core.exceptions import InvalidOperationError, NotFoundError, UnexpectedError
from elitetime.models.auth.user import User
from elitetime.models.hr.pointage import Pointage
from elitetime.models.shared.enums import ActivityType, PointageStatus
from elitetime.realtime.hub import LATE_ALERT, POINTAGE_UPDATE, RealtimeHub
from elitetime.schemas.hr.pointage_schema import ManualPointageCreate
from elitetime.services.system.activity_log_service import ActivityLogService
from elitetime.services.system.settings_service import SettingsService
from elitetime.utils.time_utils import local_now, minutes_between, to_time, utcnow

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
WEEKLY_HOURS = 40


def compute_worked_minutes(entry: datetime, end: datetime, break_duration: int) -> int:
    """Minutes from entry to end, minus the standard break when the day is longer than it."""
    minutes = minutes_between(entry, end)
    if minutes > break_duration:
        minutes -= break_duration
    return minutes


def is_late(entry: datetime, work_start_time: str) -> bool:
    start = to_time(work_start_time)
    return (entry.hour, entry.minute) > (start.hour, start.minute)


def format_duration(minutes: int) -> str:
    return f"{minutes // 60}h{minutes % 60:02d}m"


class PointageService:
    def __init__(self, session: AsyncSession, hub: Optional[RealtimeHub] = None):
        self.session = session
        self.hub = hub
        self.settings = SettingsService(session)
        self.activity = ActivityLogService(session)

    # ---------- Getters ----------
    async def get_active_pointage(self, user_id: int) -> Optional[Pointage]:
        result = await self.session.execute(
            select(Pointage)
            .where(Pointage.user_id == user_id, Pointage.is_active == True)
            .order_by(Pointage.date.desc(), Pointage.id.desc())
        )
        return result.scalars().first()

    async def get_today_pointage(self, user_id: int, now: Optional[datetime] = None) -> Optional[Pointage]:
        """Today's record; an open one past the session cutoff is closed first."""
        now = now or local_now()
        result = await self.session.execute(
            select(Pointage)
            .where(Pointage.user_id == user_id, Pointage.date == now.date())
            .order_by(Pointage.id.desc())
        )
        pointage = result.scalars().first()

        if pointage and pointage.is_active and pointage.entry_time:
            settings_row = await self.settings.get_settings()
            cutoff = datetime.combine(pointage.date, to_time(settings_row.max_session_end_time))
            if now > cutoff:
                closed = await self.end_pointage(user_id, now=now)
                return closed or pointage

        return pointage

    async def get_recent_pointages(
        self, user_id: int, days: int = RECENT_DAYS, now: Optional[datetime] = None
    ) -> List[Pointage]:
        since = (now or local_now()).date() - timedelta(days=days)
        result = await self.session.execute(
            select(Pointage)
            .where(Pointage.user_id == user_id, Pointage.date >= since)
            .order_by(Pointage.date.desc(), Pointage.id.desc())
        )
        return list(result.scalars().all())

    async def get_week_stats(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, int]:
        pointages = await self.get_recent_pointages(user_id, days=7, now=now)
        total_minutes = sum(p.duration or 0 for p in pointages)
        hours = total_minutes // 60
        return {
            "hours": hours,
            "lates": sum(1 for p in pointages if p.status == PointageStatus.LATE),
            "overtime": max(0, hours - WEEKLY_HOURS),
        }

    async def get_pointages_between(
        self, user_ids: List[int], start: date, end: date
    ) -> List[Pointage]:
        if not user_ids:
            return []
        result = await self.session.execute(
            select(Pointage)
            .where(Pointage.user_id.in_(user_ids), Pointage.date >= start, Pointage.date <= end)
            .order_by(Pointage.date, Pointage.user_id)
        )
        return list(result.scalars().all())

    # ---------- Clock in / out ----------
    async def start_pointage(self, user: User, now: Optional[datetime] = None) -> Pointage:
        now = now or local_now()
        try:
            settings_row = await self.settings.get_settings()

            active = await self.get_active_pointage(user.id)
            if active is not None:
                if active.date == now.date():
                    return active
                # Left open on an earlier day: close it at that day's cutoff
                self._close(active, self._cutoff(active, settings_row.max_session_end_time), settings_row.break_duration)
                logger.info(f"Stale pointage {active.id} of user {user.id} closed at cutoff")

            status = PointageStatus.LATE if is_late(now, settings_row.work_start_time) else PointageStatus.NORMAL
            pointage = Pointage(
                user_id=user.id,
                date=now.date(),
                entry_time=now.time().replace(second=0, microsecond=0),
                exit_time=None,
                duration=0,
                status=status,
                is_active=True,
            )
            self.session.add(pointage)
            await self.session.commit()
            await self.session.refresh(pointage)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error starting pointage for user {user.id}: {e}")
            raise UnexpectedError("Erreur lors du pointage d'entrée", details=str(e))

        label = "en retard" if status == PointageStatus.LATE else "à l'heure"
        await self.activity.create_activity_log(
            user.id,
            "Pointage d'entrée",
            f"{user.full_name} - {pointage.entry_time.strftime('%H:%M')} ({label})",
            ActivityType.POINTAGE,
        )
        await self._publish(POINTAGE_UPDATE, {"userId": user.id, "action": "entry"})
        if status == PointageStatus.LATE and settings_row.late_alerts:
            await self._publish(LATE_ALERT, {
                "userId": user.id,
                "userName": user.full_name,
                "entryTime": pointage.entry_time.strftime("%H:%M"),
            })
        return pointage

    async def end_pointage(self, user_id: int, now: Optional[datetime] = None) -> Optional[Pointage]:
        """Close the open record; returns None when there is nothing to close."""
        now = now or local_now()
        try:
            active = await self.get_active_pointage(user_id)
            if active is None or active.entry_time is None:
                return None

            settings_row = await self.settings.get_settings()
            cutoff = self._cutoff(active, settings_row.max_session_end_time)
            self._close(active, min(now, cutoff), settings_row.break_duration)
            await self.session.commit()
            await self.session.refresh(active)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error ending pointage for user {user_id}: {e}")
            raise UnexpectedError("Erreur lors du pointage de sortie", details=str(e))

        user = await self.session.get(User, user_id)
        name = user.full_name if user else str(user_id)
        await self.activity.create_activity_log(
            user_id,
            "Pointage de sortie",
            f"{name} - {active.exit_time.strftime('%H:%M')} (durée: {format_duration(active.duration)})",
            ActivityType.POINTAGE,
        )
        await self._publish(POINTAGE_UPDATE, {"userId": user_id, "action": "exit"})
        return active

    async def create_manual_pointage(self, data: ManualPointageCreate, actor: User) -> Pointage:
        try:
            user = await self.session.get(User, data.user_id)
            if user is None:
                raise NotFoundError("Employé introuvable")

            existing = await self.session.execute(
                select(Pointage.id).where(Pointage.user_id == data.user_id, Pointage.date == data.date).limit(1)
            )
            if existing.scalar_one_or_none() is not None:
                raise InvalidOperationError("Un pointage existe déjà pour cet employé à cette date")

            settings_row = await self.settings.get_settings()
            entry = datetime.combine(data.date, data.entry_time)
            pointage = Pointage(
                user_id=data.user_id,
                date=data.date,
                entry_time=data.entry_time,
                status=PointageStatus.LATE if is_late(entry, settings_row.work_start_time) else PointageStatus.NORMAL,
                duration=0,
                is_active=data.exit_time is None,
            )
            if data.exit_time is not None:
                pointage.exit_time = data.exit_time
                pointage.duration = compute_worked_minutes(
                    entry, datetime.combine(data.date, data.exit_time), settings_row.break_duration
                )

            self.session.add(pointage)
            await self.session.commit()
            await self.session.refresh(pointage)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating manual pointage: {e}")
            raise UnexpectedError("Erreur lors de la création du pointage", details=str(e))

        await self.activity.create_activity_log(
            actor.id,
            "Pointage manuel",
            f"Pointage du {data.date.isoformat()} saisi pour {user.full_name}",
            ActivityType.POINTAGE,
        )
        return pointage

    # ---------- Helpers ----------
    @staticmethod
    def _cutoff(pointage: Pointage, max_session_end_time: str) -> datetime:
        return datetime.combine(pointage.date, to_time(max_session_end_time))

    @staticmethod
    def _close(pointage: Pointage, end: datetime, break_duration: int) -> None:
        entry = datetime.combine(pointage.date, pointage.entry_time) if pointage.entry_time else None
        if entry is None:
            pointage.is_active = False
            return
        end = max(end, entry)
        pointage.exit_time = end.time().replace(second=0, microsecond=0)
        pointage.duration = compute_worked_minutes(entry, end, break_duration)
        pointage.is_active = False

    async def _publish(self, topic: str, payload: Dict[str, Any]) -> None:
        if self.hub is None:
            return
        payload = {**payload, "timestamp": utcnow().isoformat()}
        try:
            await self.hub.publish(topic, payload)
        except Exception as e:
            logger.error(f"Error publishing {topic}: {e}")
