import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.auth.navigation import (
    REASON_PAGE_NOT_FOUND,
    REASON_UNAUTHENTICATED,
    PageRule,
    evaluate_page_access,
    find_page,
    iter_pages,
    redirect_for,
)
from elitetime.core.exceptions import UnauthenticatedError, UnexpectedError
from elitetime.models.auth.page import Page, PagePermission
from elitetime.models.auth.permission import Permission
from elitetime.models.auth.session import UserSession
from elitetime.models.auth.user import User
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.auth.session_service import SessionService

logger = logging.getLogger(__name__)


@dataclass
class AccessDecision:
    allowed: bool
    page_code: str
    user: Optional[User] = None
    session: Optional[UserSession] = None
    reason: Optional[str] = None

    @property
    def redirect_to(self) -> Optional[str]:
        return None if self.allowed else redirect_for(self.reason)


class NavigationService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.sessions = SessionService(session)
        self.permissions = PermissionService(session)

    async def get_page_rule(self, code: str) -> Optional[PageRule]:
        """The stored page when seeded, otherwise the static registry entry."""
        result = await self.session.execute(select(Page).where(Page.code == code))
        page = result.scalar_one_or_none()
        if page is not None:
            return PageRule(
                code=page.code,
                path=page.path,
                label=page.label,
                group=page.nav_group or "",
                allowed_roles=tuple(page.allowed_roles or ()),
                required_permissions=tuple(page.required_permissions),
            )
        return find_page(code)

    async def check_access(self, page_code: str, token: Optional[str]) -> AccessDecision:
        try:
            user, user_session = await self.sessions.resolve(token)
        except UnauthenticatedError:
            return AccessDecision(False, page_code, reason=REASON_UNAUTHENTICATED)

        rule = await self.get_page_rule(page_code)
        if rule is None:
            logger.error(f"Navigation guard: unknown page '{page_code}'")
            return AccessDecision(False, page_code, user, user_session, REASON_PAGE_NOT_FOUND)

        names = await self.permissions.get_effective_permission_names(user)
        reason = evaluate_page_access(user.role, names, rule.allowed_roles, rule.required_permissions)
        if reason is not None:
            logger.warning(
                f"SECURITY: access denied to page '{page_code}' for user {user.id} ({user.role.value}): {reason}"
            )
            return AccessDecision(False, page_code, user, user_session, reason)

        return AccessDecision(True, page_code, user, user_session)

    async def get_sidebar(self, user: User) -> List[PageRule]:
        names = await self.permissions.get_effective_permission_names(user)
        pages = []
        for static in iter_pages():
            rule = await self.get_page_rule(static.code) or static
            if evaluate_page_access(user.role, names, rule.allowed_roles, rule.required_permissions) is None:
                pages.append(rule)
        return pages

    async def seed_pages(self) -> Dict[str, Any]:
        """Upsert every registry page by code and resync its permission links."""
        try:
            await self.permissions.seed_permissions()
            result = await self.session.execute(select(Permission))
            permissions_by_name = {p.name: p for p in result.scalars().all()}

            result = await self.session.execute(select(Page))
            existing = {p.code: p for p in result.scalars().all()}

            created = updated = 0
            for rule in iter_pages():
                page = existing.get(rule.code)
                if page is None:
                    page = Page(code=rule.code)
                    self.session.add(page)
                    created += 1
                else:
                    updated += 1

                page.path = rule.path
                page.label = rule.label
                page.nav_group = rule.group
                page.allowed_roles = list(rule.allowed_roles)
                self._sync_page_permissions(page, rule, permissions_by_name)

            await self.session.commit()
            logger.info(f"Pages seeded: {created} created, {updated} updated")
            return {"created": created, "updated": updated}

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error seeding pages: {e}")
            raise UnexpectedError("Erreur lors de l'initialisation des pages", details=str(e))

    @staticmethod
    def _sync_page_permissions(page: Page, rule: PageRule, permissions_by_name: Dict[str, Permission]) -> None:
        wanted = {name for name in rule.required_permissions if name in permissions_by_name}
        for link in list(page.page_permissions):
            if link.permission is None or link.permission.name not in wanted:
                page.page_permissions.remove(link)
        present = {link.permission.name for link in page.page_permissions}
        for name in sorted(wanted - present):
            page.page_permissions.append(PagePermission(permission=permissions_by_name[name]))
