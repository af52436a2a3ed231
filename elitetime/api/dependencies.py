from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.core.config import settings
from elitetime.core.database import get_async_session
from elitetime.core.exceptions import AccessDenied
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import UserRole
from elitetime.auth.permissions import PermissionChecker
from elitetime.realtime.hub import RealtimeHub
from elitetime.services.auth.navigation_service import NavigationService
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.auth.session_service import SessionService
import logging

logger = logging.getLogger(__name__)


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> User:
    """Resolve the session cookie to an active user or answer 401."""
    user, _ = await SessionService(session).resolve(get_session_token(request))
    request.state.current_user = user
    return user


async def get_optional_user(
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> Optional[User]:
    return await SessionService(session).get_user(get_session_token(request))


async def get_permission_checker_dependency(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> PermissionChecker:
    return await PermissionService(session).get_checker(current_user)


def get_realtime_hub(request: Request) -> RealtimeHub:
    return request.app.state.realtime_hub


def require_role(*roles: UserRole):
    """
    Dependency restricting an endpoint to the given roles.

    Examples:
        require_role(UserRole.ADMIN)
        require_role(UserRole.MANAGER, UserRole.ADMIN)
    """
    async def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            logger.warning(
                f"SECURITY: role check failed for user {current_user.id} ({current_user.role.value})"
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Accès refusé")
        return current_user

    return role_dependency


def require_permission(permission_name: str):
    """Dependency to require a specific permission; admins always pass."""
    async def permission_dependency(
        current_user: User = Depends(get_current_user),
        checker: PermissionChecker = Depends(get_permission_checker_dependency),
    ) -> User:
        checker.require(permission_name)
        return current_user

    return permission_dependency


def require_any_permission(*permission_names: str):
    """
    Require any one of the given permissions (OR logic)
    """
    async def permission_dependency(
        current_user: User = Depends(get_current_user),
        checker: PermissionChecker = Depends(get_permission_checker_dependency),
    ) -> User:
        if checker.has_any(*permission_names):
            return current_user

        logger.warning(
            f"SECURITY: user {current_user.id} lacks any of {', '.join(permission_names)}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission requise: l'une de {', '.join(permission_names)}",
        )

    return permission_dependency


def require_page(page_code: str):
    """
    Guard a page-backed endpoint with the navigation rules.

    A denial raises AccessDenied, which the application turns into a
    redirect to the login page or the dashboard.
    """
    async def page_dependency(
        request: Request,
        session: AsyncSession = Depends(get_async_session),
    ) -> User:
        decision = await NavigationService(session).check_access(page_code, get_session_token(request))
        if not decision.allowed:
            raise AccessDenied(decision.reason, decision.redirect_to)
        return decision.user

    return page_dependency
