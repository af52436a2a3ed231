import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.models.auth.user import User
from elitetime.models.hr.pointage import Pointage
from elitetime.models.shared.enums import PointageStatus, UserRole, UserStatus
from elitetime.services.hr.pointage_service import PointageService
from elitetime.services.system.settings_service import SettingsService
from elitetime.utils.time_utils import local_now

logger = logging.getLogger(__name__)

REPORT_DAYS = 90
TEAM_POINTAGE_DAYS = 30


class TeamService:
    """
    Manager-side views. A manager's team is every active user of the same
    department; admins see everyone.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.pointages = PointageService(session)
        self.settings = SettingsService(session)

    async def get_team(self, manager: User) -> List[User]:
        query = select(User).where(User.status == UserStatus.ACTIVE, User.id != manager.id)
        if manager.role != UserRole.ADMIN:
            if not manager.department:
                return []
            query = query.where(User.department == manager.department, User.role != UserRole.ADMIN)
        result = await self.session.execute(query.order_by(User.firstname, User.lastname, User.username))
        return list(result.scalars().all())

    async def get_team_ids(self, manager: User) -> List[int]:
        return [u.id for u in await self.get_team(manager)]

    async def get_team_pointages(
        self,
        manager: User,
        start: Optional[date] = None,
        end: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        today = (now or local_now()).date()
        end = end or today
        start = start or end - timedelta(days=TEAM_POINTAGE_DAYS)

        team = {u.id: u for u in await self.get_team(manager)}
        records = await self.pointages.get_pointages_between(list(team), start, end)
        rows = []
        for p in sorted(records, key=lambda r: (r.date, r.entry_time or datetime.min.time()), reverse=True):
            member = team[p.user_id]
            rows.append({
                "user_id": p.user_id,
                "user_name": member.full_name,
                "department": member.department,
                "date": p.date,
                "entry_time": p.entry_time,
                "exit_time": p.exit_time,
                "duration": p.duration or 0,
                "status": p.status,
                "is_active": p.is_active,
            })
        return rows

    async def get_team_report(self, manager: User, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Per-employee totals over the last 90 days."""
        today = (now or local_now()).date()
        since = today - timedelta(days=REPORT_DAYS)
        settings_row = await self.settings.get_settings()
        daily_limit = settings_row.overtime_threshold * 60

        team = await self.get_team(manager)
        records = await self.pointages.get_pointages_between([u.id for u in team], since, today)

        by_user: Dict[int, List[Pointage]] = defaultdict(list)
        for p in records:
            by_user[p.user_id].append(p)

        employees = []
        for member in team:
            rows = by_user.get(member.id, [])
            worked = sum(p.duration or 0 for p in rows)
            overtime = sum(max(0, (p.duration or 0) - daily_limit) for p in rows)
            employees.append({
                "user_id": member.id,
                "user_name": member.full_name,
                "department": member.department,
                "days_worked": len({p.date for p in rows}),
                "total_minutes": worked,
                "total_hours": round(worked / 60, 2),
                "lates": sum(1 for p in rows if p.status == PointageStatus.LATE),
                "overtime_minutes": overtime,
            })

        return {
            "since": since,
            "until": today,
            "overtime_threshold": settings_row.overtime_threshold,
            "employees": employees,
        }
