# elitetime/auth/navigation.py
"""
Static page registry and the pure page-access decision.

The ``pages`` table mirrors this registry (see ``NavigationService.seed_pages``).
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

from elitetime.models.shared.enums import UserRole

DEFAULT_ROLES: Tuple[str, ...] = tuple(role.value for role in UserRole)

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

# Reason codes returned by the guard
REASON_UNAUTHENTICATED = "unauthenticated"
REASON_PAGE_NOT_FOUND = "page_not_found"
REASON_ROLE_NOT_ALLOWED = "role_not_allowed"
REASON_MISSING_PERMISSION = "missing_permission"


@dataclass(frozen=True)
class PageRule:
    code: str
    path: str
    label: str
    group: str
    allowed_roles: Tuple[str, ...] = DEFAULT_ROLES
    required_permissions: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NavigationGroup:
    code: str
    label: str
    items: Tuple[PageRule, ...]


def _page(code, path, label, group, roles=DEFAULT_ROLES, permissions=()):
    return PageRule(
        code=code,
        path=path,
        label=label,
        group=group,
        allowed_roles=tuple(roles),
        required_permissions=tuple(permissions),
    )


NAVIGATION_REGISTRY: Tuple[NavigationGroup, ...] = (
    NavigationGroup("core", "Navigation principale", (
        _page("dashboard", "/dashboard", "Dashboard", "core"),
        _page("pointages", "/pointages", "Pointages", "core"),
        _page("profile-employee", "/profile", "Profil", "core", roles=["employee"]),
        _page("profile-manager", "/manager/profile", "Profil", "core", roles=["manager"]),
        _page("profile-admin", "/profile", "Profil", "core", roles=["admin"]),
    )),
    NavigationGroup("operations", "Opérations", (
        _page("employees", "/employees", "Employés", "operations",
              roles=["admin", "manager"], permissions=["view_employees"]),
        _page("departements", "/departements", "Départements", "operations",
              roles=["admin", "manager"], permissions=["view_departments"]),
        _page("postes", "/postes", "Postes", "operations",
              roles=["admin", "manager"], permissions=["view_positions"]),
        _page("reports", "/reports", "Rapports", "operations",
              roles=["admin", "manager"], permissions=["view_reports"]),
        _page("validations", "/validations", "Validations", "operations",
              roles=["admin", "manager"], permissions=["validate_absences"]),
        _page("absences", "/absences", "Absences", "operations",
              roles=["admin", "manager"], permissions=["view_team_absences", "view_all_absences"]),
    )),
    NavigationGroup("administration", "Administration", (
        _page("permissions", "/permissions", "Permissions", "administration", roles=["admin"]),
        _page("settings", "/settings", "Paramètres", "administration",
              roles=["admin"], permissions=["view_settings"]),
        _page("logs", "/logs", "Logs", "administration",
              roles=["admin"], permissions=["view_logs"]),
    )),
)


def iter_pages() -> Iterable[PageRule]:
    for group in NAVIGATION_REGISTRY:
        yield from group.items


def find_page(code: str) -> Optional[PageRule]:
    return next((page for page in iter_pages() if page.code == code), None)


def evaluate_page_access(
    role: str,
    permission_names: Iterable[str],
    allowed_roles: Sequence[str],
    required_permissions: Sequence[str],
) -> Optional[str]:
    """
    Decide whether a resolved user may open a page.

    Returns None when allowed, otherwise a reason code. The role check comes
    first; the permission check only runs when the page lists permissions,
    and any one of them is enough. Admins pass the permission check.
    """
    role = UserRole(role).value
    if role not in allowed_roles:
        return REASON_ROLE_NOT_ALLOWED

    if required_permissions:
        if role == UserRole.ADMIN.value:
            return None
        held = set(permission_names)
        if not any(name in held for name in required_permissions):
            return REASON_MISSING_PERMISSION

    return None


def redirect_for(reason: str) -> str:
    return LOGIN_PATH if reason == REASON_UNAUTHENTICATED else DASHBOARD_PATH
