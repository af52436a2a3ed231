from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import require_any_permission, require_permission
from elitetime.core.database import get_async_session
from elitetime.services.organization.position_service import PositionService
from elitetime.schemas.organization.position_schema import PositionCreate, PositionUpdate, PositionResponse
from elitetime.models.auth.user import User

router = APIRouter()

@router.post("/", response_model=PositionResponse)
async def create_position(
    position: PositionCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("manage_positions"))
):
    service = PositionService(session)
    return await service.create_position(position, current_user.id)

@router.get("/", response_model=List[PositionResponse])
async def get_positions(
    department_id: Optional[int] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission("view_positions", "manage_positions"))
):
    """Get positions, optionally for one department"""
    service = PositionService(session)
    return await service.get_positions(department_id)

@router.put("/{position_id}", response_model=PositionResponse)
async def update_position(
    position_id: int,
    position: PositionUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("manage_positions"))
):
    service = PositionService(session)
    return await service.update_position(position_id, position, current_user.id)

@router.delete("/{position_id}")
async def delete_position(
    position_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("manage_positions"))
):
    service = PositionService(session)
    result = await service.delete_position(position_id, current_user.id)
    return {"message": "Poste supprimé", "success": result}
