from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import require_any_permission, require_permission
from elitetime.core.database import get_async_session
from elitetime.services.organization.department_service import DepartmentService
from elitetime.schemas.organization.department_schema import DepartmentCreate, DepartmentUpdate, DepartmentResponse
from elitetime.schemas.common.pagination import PaginatedResponse
from elitetime.models.auth.user import User

router = APIRouter()

@router.post("/", response_model=DepartmentResponse)
async def create_department(
    department: DepartmentCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("manage_departments"))
):
    """Create a new department"""
    service = DepartmentService(session)
    return await service.create_department(department, current_user.id)

@router.get("/", response_model=PaginatedResponse[DepartmentResponse])
async def get_departments(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    search: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_any_permission("view_departments", "manage_departments"))
):
    """Get all departments with filtering"""
    service = DepartmentService(session)
    return await service.get_departments(page_index, page_size, search)

@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: int,
    department: DepartmentUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("manage_departments"))
):
    """Update department; a rename carries over to its employees"""
    service = DepartmentService(session)
    return await service.update_department(department_id, department, current_user.id)

@router.delete("/{department_id}")
async def delete_department(
    department_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_permission("manage_departments"))
):
    """Delete department"""
    service = DepartmentService(session)
    result = await service.delete_department(department_id, current_user.id)
    return {"message": "Département supprimé", "success": result}
