# elitetime/auth/permissions.py
"""
Permission catalogue and the role default table.

``ROLE_DEFAULT_PERMISSIONS`` is the only place that says which permissions a
role starts with. It is read when a user is provisioned (creation, LDAP sync,
role change) and by the reset-to-defaults operation.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional
from fastapi import HTTPException, status
import logging

from elitetime.models.shared.enums import UserRole

logger = logging.getLogger(__name__)


PERMISSIONS_SEED: List[Dict[str, str]] = [
    # ==================== POINTAGES ====================
    {"name": "view_all_pointages", "description": "Voir tous les pointages", "category": "pointages"},
    {"name": "view_team_pointages", "description": "Voir les pointages de son équipe", "category": "pointages"},
    {"name": "edit_pointages", "description": "Modifier les pointages", "category": "pointages"},
    {"name": "delete_pointages", "description": "Supprimer les pointages", "category": "pointages"},

    # ==================== RAPPORTS ====================
    {"name": "view_reports", "description": "Voir les rapports", "category": "rapports"},
    {"name": "download_reports", "description": "Télécharger les rapports", "category": "rapports"},
    {"name": "export_reports", "description": "Exporter les rapports", "category": "rapports"},

    # ==================== EMPLOYES ====================
    {"name": "view_employees", "description": "Voir la liste des employés", "category": "employes"},
    {"name": "create_employees", "description": "Créer des employés", "category": "employes"},
    {"name": "edit_employees", "description": "Modifier les employés", "category": "employes"},
    {"name": "delete_employees", "description": "Supprimer les employés", "category": "employes"},
    {"name": "manage_permissions", "description": "Gérer les permissions des employés", "category": "employes"},

    # ==================== ABSENCES ====================
    {"name": "view_all_absences", "description": "Voir toutes les absences", "category": "absences"},
    {"name": "view_team_absences", "description": "Voir les absences de son équipe", "category": "absences"},
    {"name": "validate_absences", "description": "Valider les demandes d'absence", "category": "absences"},
    {"name": "manage_leaves", "description": "Créer et modifier les congés de l'équipe", "category": "absences"},

    # ==================== LOGS ====================
    {"name": "view_logs", "description": "Voir les logs système (activités, connexions, etc.)", "category": "logs"},

    # ==================== PARAMETRES ====================
    {"name": "view_settings", "description": "Voir les paramètres système", "category": "parametres"},
    {"name": "edit_settings", "description": "Modifier les paramètres système", "category": "parametres"},

    # ==================== ORGANISATION ====================
    {"name": "view_departments", "description": "Voir les départements", "category": "organisation"},
    {"name": "manage_departments", "description": "Gérer les départements", "category": "organisation"},
    {"name": "view_positions", "description": "Voir les postes", "category": "organisation"},
    {"name": "manage_positions", "description": "Gérer les postes", "category": "organisation"},
]

ALL_PERMISSION_NAMES: FrozenSet[str] = frozenset(p["name"] for p in PERMISSIONS_SEED)

# Admins are not permission-scoped and have no entry here
ROLE_DEFAULT_PERMISSIONS: Dict[UserRole, FrozenSet[str]] = {
    UserRole.EMPLOYEE: frozenset(),
    UserRole.TEAM_LEAD: frozenset({
        "view_team_pointages",
        "view_team_absences",
    }),
    UserRole.MANAGER: frozenset({
        "view_team_pointages",
        "view_reports",
        "download_reports",
        "export_reports",
        "view_employees",
        "view_team_absences",
        "validate_absences",
        "manage_leaves",
        "view_logs",
        "view_departments",
        "view_positions",
    }),
}


def role_default_permissions(role: UserRole) -> FrozenSet[str]:
    """Default permission names for a non-admin role."""
    return ROLE_DEFAULT_PERMISSIONS.get(UserRole(role), frozenset())


class PermissionChecker:
    """
    Answer permission questions for one user.

    Admins hold every permission; everyone else holds exactly the names they
    were granted.
    """

    def __init__(self, role: UserRole, permission_names: Optional[Iterable[str]] = None):
        self.role = UserRole(role)
        self.permissions = frozenset(permission_names or ())

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can(self, permission_name: str) -> bool:
        if self.is_admin:
            return True
        return permission_name in self.permissions

    def cannot(self, permission_name: str) -> bool:
        return not self.can(permission_name)

    def require(self, permission_name: str, custom_message: Optional[str] = None):
        """
        Require permission or raise HTTPException
        """
        if self.cannot(permission_name):
            message = custom_message or f"Permission requise: {permission_name}"
            logger.warning(f"SECURITY: permission check failed: {message}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)

    def has_any(self, *permission_names: str) -> bool:
        """OR logic"""
        return any(self.can(name) for name in permission_names)

    def has_all(self, *permission_names: str) -> bool:
        """AND logic"""
        return all(self.can(name) for name in permission_names)

    def get_all_permissions(self) -> List[str]:
        names = ALL_PERMISSION_NAMES if self.is_admin else self.permissions
        return sorted(names)
