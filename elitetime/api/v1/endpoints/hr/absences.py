from fastapi import APIRouter, Depends
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import get_current_user
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.schemas.hr.absence_schema import AbsenceCreate, AbsenceResponse
from elitetime.services.hr.absence_service import AbsenceService

router = APIRouter()


@router.get("/", response_model=List[AbsenceResponse])
async def get_my_absences(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    return await AbsenceService(session).get_user_absences(current_user.id)


@router.post("/", response_model=AbsenceResponse)
async def request_absence(
    absence: AbsenceCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    """Submit an absence request (pending until a manager decides)"""
    return await AbsenceService(session).request_absence(current_user, absence)
