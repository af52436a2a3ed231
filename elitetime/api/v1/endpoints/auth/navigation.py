from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.api.dependencies import get_current_user, get_session_token, require_role
from elitetime.core.database import get_async_session
from elitetime.core.exceptions import AccessDenied
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import ActivityType, UserRole
from elitetime.schemas.auth.permission_schema import NavigationItemResponse, PageAccessResponse, SeedResponse
from elitetime.services.auth.navigation_service import NavigationService
from elitetime.services.system.activity_log_service import ActivityLogService

router = APIRouter()


@router.get("/navigation", response_model=List[NavigationItemResponse])
async def get_navigation(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Sidebar entries the caller may open"""
    pages = await NavigationService(session).get_sidebar(current_user)
    return [
        NavigationItemResponse(code=p.code, path=p.path, label=p.label, group=p.group)
        for p in pages
    ]


@router.get("/navigation/{page_code}", response_model=PageAccessResponse)
async def check_page_access(
    page_code: str,
    request: Request,
    session: AsyncSession = Depends(get_async_session),
):
    """Run the page guard; a denial answers 303 to the login page or the dashboard."""
    decision = await NavigationService(session).check_access(page_code, get_session_token(request))
    if not decision.allowed:
        raise AccessDenied(decision.reason, decision.redirect_to)
    return PageAccessResponse(allowed=True, page=page_code)


@router.post("/admin/pages/seed", response_model=SeedResponse)
async def seed_pages(
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    result = await NavigationService(session).seed_pages()
    await ActivityLogService(session).create_activity_log(
        current_user.id,
        "Initialisation des pages",
        f"{result['created']} créées, {result['updated']} mises à jour",
        ActivityType.SYSTEM,
    )
    return SeedResponse(created=result["created"], updated=result["updated"])
