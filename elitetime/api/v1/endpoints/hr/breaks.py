from fastapi import APIRouter, Depends
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import get_current_user
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.schemas.hr.pointage_schema import BreakResponse
from elitetime.services.hr.break_service import BreakService

router = APIRouter()


@router.post("/start", response_model=BreakResponse)
async def start_break(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    return await BreakService(session).start_break(current_user)


@router.post("/end", response_model=BreakResponse)
async def end_break(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    return await BreakService(session).end_break(current_user)


@router.get("/today", response_model=List[BreakResponse])
async def get_today_breaks(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    return await BreakService(session).get_today_breaks(current_user.id)
