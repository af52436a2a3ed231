from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import get_current_user, get_permission_checker_dependency, require_any_permission
from elitetime.auth.permissions import PermissionChecker
from elitetime.core.database import get_async_session
from elitetime.core.exceptions import InvalidOperationError
from elitetime.models.auth.user import User
from elitetime.services.reports.report_service import ReportService
from elitetime.services.system.activity_log_service import DEFAULT_REPORT_LIMIT, MAX_REPORT_LIMIT

router = APIRouter()


def _check_range(start: Optional[date], end: Optional[date]):
    if start and end and end < start:
        raise InvalidOperationError("La date de fin doit être postérieure à la date de début")


@router.get("/pointages")
async def export_pointages_report(
    start_date: Optional[date] = Query(None, alias="from"),
    end_date: Optional[date] = Query(None, alias="to"),
    employee_id: Optional[int] = Query(None, alias="employeeId"),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    checker: PermissionChecker = Depends(get_permission_checker_dependency),
):
    """
    Pointages of a day range as an Excel workbook.

    Without ``employeeId`` the report covers every employee (global access)
    or the caller's department (team access only).
    """
    _check_range(start_date, end_date)
    return await ReportService(session).export_pointages(
        current_user, checker, start_date, end_date, employee_id
    )


@router.get("/logs")
async def export_logs_report(
    start_date: Optional[date] = Query(None, alias="from"),
    end_date: Optional[date] = Query(None, alias="to"),
    limit: int = Query(DEFAULT_REPORT_LIMIT, ge=1, le=MAX_REPORT_LIMIT),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission("view_logs")),
):
    """Activity log of a day range as an Excel workbook"""
    _check_range(start_date, end_date)
    return await ReportService(session).export_logs(current_user, start_date, end_date, limit)
