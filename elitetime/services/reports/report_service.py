import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.auth.permissions import PermissionChecker
from elitetime.core.exceptions import ForbiddenError, NotFoundError
from elitetime.models.auth.user import User
from elitetime.models.hr.break_record import Break
from elitetime.models.hr.pointage import Pointage
from elitetime.models.shared.enums import ActivityType, PointageStatus, UserRole, UserStatus
from elitetime.services.system.activity_log_service import DEFAULT_REPORT_LIMIT, ActivityLogService
from elitetime.utils.data_exporter import DataExportService
from elitetime.utils.time_utils import local_now

logger = logging.getLogger(__name__)

POINTAGE_COLUMNS = [
    "Employé", "Département", "Date", "Entrée", "Sortie", "Pauses (min)", "Durée (min)", "Statut",
]
LOG_COLUMNS = ["Date", "Utilisateur", "Type", "Action", "Détails"]


def _format_time(value) -> str:
    return value.strftime("%H:%M") if value else ""


class ReportService:
    """Excel exports of pointages and the activity log."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.exporter = DataExportService()
        self.activity = ActivityLogService(session)

    async def resolve_report_users(
        self, actor: User, checker: PermissionChecker, employee_id: Optional[int] = None
    ) -> List[User]:
        """
        Users included in a pointage report.

        A single employee: self always, others with team or global access.
        A team report: everyone with global access, the actor's department
        with team access only.
        """
        privileged = actor.role in (UserRole.ADMIN, UserRole.MANAGER)
        can_view_all = privileged or checker.can("view_all_pointages")
        can_view_team = privileged or checker.can("view_team_pointages")

        if employee_id is not None:
            if employee_id != actor.id and not (can_view_all or can_view_team):
                raise ForbiddenError("Accès refusé")
            user = await self.session.get(User, employee_id)
            if user is None:
                raise NotFoundError("Employé introuvable")
            return [user]

        if not (can_view_all or can_view_team):
            raise ForbiddenError("Accès refusé")

        query = select(User).where(
            User.role.in_([UserRole.EMPLOYEE, UserRole.TEAM_LEAD]),
            User.status != UserStatus.DELETED,
        )
        if not can_view_all and actor.department:
            query = query.where(User.department == actor.department)
        result = await self.session.execute(query.order_by(User.firstname, User.lastname))
        return list(result.scalars().all())

    async def build_pointage_rows(self, users: List[User], start: date, end: date) -> List[Dict[str, Any]]:
        by_id = {u.id: u for u in users}
        if not by_id:
            return []

        pointages = (await self.session.execute(
            select(Pointage)
            .where(Pointage.user_id.in_(list(by_id)), Pointage.date >= start, Pointage.date <= end)
            .order_by(Pointage.date, Pointage.user_id)
        )).scalars().all()
        breaks = (await self.session.execute(
            select(Break).where(Break.user_id.in_(list(by_id)), Break.date >= start, Break.date <= end)
        )).scalars().all()

        break_minutes: Dict[tuple, int] = defaultdict(int)
        for b in breaks:
            break_minutes[(b.user_id, b.date)] += b.duration or 0

        rows = []
        for p in pointages:
            user = by_id[p.user_id]
            rows.append({
                "Employé": user.full_name,
                "Département": user.department or "",
                "Date": p.date.strftime("%d/%m/%Y"),
                "Entrée": _format_time(p.entry_time),
                "Sortie": _format_time(p.exit_time),
                "Pauses (min)": break_minutes[(p.user_id, p.date)],
                "Durée (min)": p.duration or 0,
                "Statut": "Retard" if p.status == PointageStatus.LATE else "Normal",
            })
        return rows

    async def export_pointages(
        self,
        actor: User,
        checker: PermissionChecker,
        start: Optional[date] = None,
        end: Optional[date] = None,
        employee_id: Optional[int] = None,
    ) -> StreamingResponse:
        own_report = employee_id is not None and employee_id == actor.id
        if not own_report and not checker.has_any("export_reports", "download_reports"):
            raise ForbiddenError("Permission requise: export_reports")

        today = local_now().date()
        start = start or today
        end = end or start
        users = await self.resolve_report_users(actor, checker, employee_id)
        rows = await self.build_pointage_rows(users, start, end)

        await self.activity.create_activity_log(
            actor.id,
            "Export de rapport",
            f"type=pointages - {start.isoformat()} au {end.isoformat()} ({len(rows)} lignes)",
            ActivityType.USER,
        )
        return self.exporter.export_to_excel(
            rows,
            filename=f"pointages_{start.isoformat()}_{end.isoformat()}",
            sheet_name="Pointages",
            sum_columns=["Pauses (min)", "Durée (min)"],
            columns=POINTAGE_COLUMNS,
        )

    async def export_logs(
        self,
        actor: User,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = DEFAULT_REPORT_LIMIT,
    ) -> StreamingResponse:
        today = local_now().date()
        start = start or today
        end = end or start
        logs = await self.activity.get_logs_between(start, end, limit=limit)

        rows = []
        for log in logs:
            user = log.user
            rows.append({
                "Date": log.timestamp.strftime("%d/%m/%Y %H:%M"),
                "Utilisateur": (user.full_name if user else "Utilisateur supprimé"),
                "Type": log.type.value,
                "Action": log.action,
                "Détails": log.details or "",
            })

        await self.activity.create_activity_log(
            actor.id,
            "Export de rapport",
            f"type=logs - {start.isoformat()} au {end.isoformat()} ({len(rows)} lignes)",
            ActivityType.USER,
        )
        return self.exporter.export_to_excel(
            rows,
            filename=f"logs_{start.isoformat()}_{end.isoformat()}",
            sheet_name="Logs",
            columns=LOG_COLUMNS,
        )

    async def record_export(self, actor: User, report_type: str, details: Optional[str] = None) -> Dict[str, Any]:
        """Audit an export generated client side."""
        text = f"type={report_type}" + (f" - {details}" if details else "")
        return await self.activity.create_activity_log(actor.id, "Export de rapport", text, ActivityType.USER)
