from fastapi import APIRouter, Depends
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import get_current_user, get_realtime_hub, require_permission
from elitetime.core.database import get_async_session
from elitetime.core.exceptions import InvalidOperationError
from elitetime.models.auth.user import User
from elitetime.realtime.hub import RealtimeHub
from elitetime.schemas.hr.pointage_schema import ManualPointageCreate, PointageResponse, WeekStats
from elitetime.services.hr.pointage_service import PointageService

router = APIRouter()


@router.post("/start", response_model=PointageResponse)
async def start_pointage(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    """Clock in"""
    return await PointageService(session, hub).start_pointage(current_user)


@router.post("/end", response_model=PointageResponse)
async def end_pointage(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    """Clock out"""
    pointage = await PointageService(session, hub).end_pointage(current_user.id)
    if pointage is None:
        raise InvalidOperationError("Aucun pointage en cours")
    return pointage


@router.get("/today", response_model=Optional[PointageResponse])
async def get_today_pointage(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    return await PointageService(session, hub).get_today_pointage(current_user.id)


@router.get("/", response_model=List[PointageResponse])
async def get_recent_pointages(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    """Own pointages of the last 30 days"""
    return await PointageService(session).get_recent_pointages(current_user.id)


@router.get("/week-stats", response_model=WeekStats)
async def get_week_stats(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    return await PointageService(session).get_week_stats(current_user.id)


@router.post("/manual", response_model=PointageResponse)
async def create_manual_pointage(
    pointage: ManualPointageCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("edit_pointages")),
):
    """Record a pointage on behalf of an employee"""
    return await PointageService(session).create_manual_pointage(pointage, current_user)
