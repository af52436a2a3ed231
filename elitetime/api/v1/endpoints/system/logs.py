from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from pydantic import BaseModel, validator
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import get_current_user, require_permission
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.schemas.auth.permission_schema import ActivityLogResponse
from elitetime.services.reports.report_service import ReportService
from elitetime.services.system.activity_log_service import DEFAULT_LIST_LIMIT, ActivityLogService

router = APIRouter()


class ReportExportRequest(BaseModel):
    reportType: str
    details: Optional[str] = None

    @validator("reportType")
    def validate_report_type(cls, v):
        if not v or not v.strip():
            raise ValueError("Type de rapport invalide")
        return v.strip()


@router.get("/admin/logs", response_model=List[ActivityLogResponse])
async def get_activity_logs(
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=1000),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("view_logs")),
):
    """Most recent audit entries"""
    return await ActivityLogService(session).get_activity_logs(limit)


@router.post("/activity/report-export")
async def log_report_export(
    body: ReportExportRequest,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    """Audit a report the browser exported itself"""
    result = await ReportService(session).record_export(current_user, body.reportType, body.details)
    return {"success": result["success"]}
