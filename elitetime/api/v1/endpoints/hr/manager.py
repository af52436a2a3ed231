from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import get_permission_checker_dependency, require_any_permission
from elitetime.auth.permissions import PermissionChecker
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import AbsenceStatus
from elitetime.schemas.auth.user_schema import SafeUser
from elitetime.schemas.hr.absence_schema import (
    AbsenceDecision,
    AbsenceResponse,
    ManagedLeaveCreate,
    ManagedLeaveUpdate,
)
from elitetime.schemas.hr.pointage_schema import TeamPointageRow, TeamReportResponse
from elitetime.services.hr.absence_service import AbsenceService
from elitetime.services.hr.team_service import TeamService

router = APIRouter()

ABSENCE_VIEWERS = ("view_team_absences", "view_all_absences", "validate_absences", "manage_leaves")
ABSENCE_DECIDERS = ("validate_absences", "manage_leaves")
TEAM_VIEWERS = ("view_team_pointages", "view_all_pointages")


# ---------- Team ----------
@router.get("/team", response_model=List[SafeUser])
async def get_team(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*TEAM_VIEWERS, "view_employees")),
):
    """Active members of the caller's department (everyone for admins)"""
    return await TeamService(session).get_team(current_user)


@router.get("/pointages", response_model=List[TeamPointageRow])
async def get_team_pointages(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*TEAM_VIEWERS)),
):
    return await TeamService(session).get_team_pointages(current_user, start_date, end_date)


@router.get("/reports", response_model=TeamReportResponse)
async def get_team_report(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission("view_reports")),
):
    """Per-employee totals over the last 90 days"""
    return await TeamService(session).get_team_report(current_user)


# ---------- Absences ----------
@router.get("/absences", response_model=List[AbsenceResponse])
async def get_team_absences(
    status: Optional[AbsenceStatus] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*ABSENCE_VIEWERS)),
    checker: PermissionChecker = Depends(get_permission_checker_dependency),
):
    """Absences of the team, or of everyone with ``view_all_absences``"""
    user_ids = None
    if not checker.can("view_all_absences"):
        user_ids = await TeamService(session).get_team_ids(current_user)
    return await AbsenceService(session).get_absences_for_users(user_ids, status)


@router.post("/absences/{absence_id}/approve", response_model=AbsenceResponse)
async def approve_absence(
    absence_id: int,
    decision: Optional[AbsenceDecision] = None,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*ABSENCE_DECIDERS)),
):
    comment = decision.comment if decision else None
    return await AbsenceService(session).approve_absence(absence_id, current_user, comment)


@router.post("/absences/{absence_id}/reject", response_model=AbsenceResponse)
async def reject_absence(
    absence_id: int,
    decision: Optional[AbsenceDecision] = None,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*ABSENCE_DECIDERS)),
):
    comment = decision.comment if decision else None
    return await AbsenceService(session).reject_absence(absence_id, current_user, comment)


# ---------- Managed leave ----------
@router.post("/leaves", response_model=AbsenceResponse)
async def create_managed_leave(
    leave: ManagedLeaveCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*ABSENCE_DECIDERS)),
):
    """Create a leave for an employee; overlapping pending or approved absences are refused"""
    return await AbsenceService(session).create_managed_leave(leave, current_user)


@router.put("/leaves/{absence_id}", response_model=AbsenceResponse)
async def update_managed_leave(
    absence_id: int,
    leave: ManagedLeaveUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*ABSENCE_DECIDERS)),
):
    return await AbsenceService(session).update_managed_leave(absence_id, leave, current_user)


@router.delete("/leaves/{absence_id}")
async def delete_managed_leave(
    absence_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission(*ABSENCE_DECIDERS)),
):
    result = await AbsenceService(session).delete_managed_leave(absence_id, current_user)
    return {"message": "Congé supprimé", "success": result}
