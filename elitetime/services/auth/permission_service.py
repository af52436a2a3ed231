import logging
from typing import Any, Dict, Iterable, List, Optional
from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.auth.permissions import (
    PERMISSIONS_SEED,
    PermissionChecker,
    role_default_permissions,
)
from elitetime.core.exceptions import InvalidOperationError, NotFoundError, UnexpectedError
from elitetime.models.auth.permission import Permission
from elitetime.models.auth.user import User
from elitetime.models.auth.user_permission import UserPermission
from elitetime.models.shared.enums import UserRole, UserStatus
from elitetime.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

_SEED_BY_NAME = {p["name"]: p for p in PERMISSIONS_SEED}


class PermissionService:
    """
    Permission evaluation and per-user grants.

    Admins hold every permission implicitly. For everyone else the effective
    set is the granted ``UserPermission`` rows; role defaults enter that set
    when a user is provisioned or reset, and a revoked permission is simply a
    missing row.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ---------- Getters ----------
    async def get_user(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_permissions(self) -> List[Permission]:
        result = await self.session.execute(
            select(Permission).order_by(Permission.category, Permission.name)
        )
        return list(result.scalars().all())

    async def get_user_permissions(self, user_id: int) -> List[Permission]:
        """Explicitly granted permissions, ordered by category then name."""
        result = await self.session.execute(
            select(Permission)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .where(UserPermission.user_id == user_id)
            .order_by(Permission.category, Permission.name)
        )
        return list(result.scalars().all())

    async def get_effective_permission_names(self, user: User) -> List[str]:
        if user.role == UserRole.ADMIN:
            return [p.name for p in await self.list_permissions()]
        return [p.name for p in await self.get_user_permissions(user.id)]

    async def get_checker(self, user: User) -> PermissionChecker:
        if user.role == UserRole.ADMIN:
            return PermissionChecker(user.role)
        names = [p.name for p in await self.get_user_permissions(user.id)]
        return PermissionChecker(user.role, names)

    # ---------- Queries ----------
    async def has_user_permission(self, user_id: int, permission_name: str) -> bool:
        user = await self.get_user(user_id)
        if user is None:
            return False
        if user.role == UserRole.ADMIN:
            return True

        result = await self.session.execute(
            select(UserPermission.id)
            .join(Permission, UserPermission.permission_id == Permission.id)
            .where(UserPermission.user_id == user_id, Permission.name == permission_name)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def has_user_permissions_in_category(self, user_id: int, category: str) -> bool:
        user = await self.get_user(user_id)
        if user is None:
            return False
        if user.role == UserRole.ADMIN:
            return True

        result = await self.session.execute(
            select(UserPermission.id)
            .join(Permission, UserPermission.permission_id == Permission.id)
            .where(UserPermission.user_id == user_id, Permission.category == category)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    def can_access_user_data(actor: User, target_user: User) -> bool:
        """Row-level rule: admins and managers see everyone, team leads their reports."""
        if actor.role in (UserRole.ADMIN, UserRole.MANAGER):
            return True
        if actor.id == target_user.id:
            return True
        if actor.role == UserRole.TEAM_LEAD:
            return target_user.team_lead_id == actor.id
        return False

    # ---------- Grant / Revoke ----------
    async def grant_permission(
        self, user_id: int, permission_id: int, granted_by: Optional[int] = None
    ) -> UserPermission:
        try:
            if await self.get_user(user_id) is None:
                raise NotFoundError("Utilisateur introuvable")

            permission = await self.session.get(Permission, permission_id)
            if permission is None:
                raise NotFoundError("Permission introuvable")

            existing = await self._get_grant(user_id, permission_id)
            if existing is not None:
                return existing

            grant = UserPermission(
                user_id=user_id,
                permission_id=permission_id,
                granted_by=granted_by,
                granted_at=utcnow(),
            )
            self.session.add(grant)
            await self.session.commit()
            await self.session.refresh(grant)
            logger.info(f"Permission {permission.name} granted to user {user_id} by {granted_by}")
            return grant

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error granting permission {permission_id} to user {user_id}: {e}")
            raise UnexpectedError("Erreur lors de l'attribution de la permission", details=str(e))

    async def revoke_permission(self, user_id: int, permission_id: int) -> bool:
        try:
            result = await self.session.execute(
                delete(UserPermission).where(
                    UserPermission.user_id == user_id,
                    UserPermission.permission_id == permission_id,
                )
            )
            await self.session.commit()
            revoked = (result.rowcount or 0) > 0
            if revoked:
                logger.info(f"Permission {permission_id} revoked from user {user_id}")
            return revoked
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error revoking permission {permission_id} from user {user_id}: {e}")
            raise UnexpectedError("Erreur lors du retrait de la permission", details=str(e))

    async def reset_permissions_to_role_defaults(
        self,
        user_id: int,
        role: Optional[UserRole] = None,
        granted_by: Optional[int] = None,
    ) -> List[str]:
        """
        Replace every grant of the user with exactly the defaults of ``role``
        (the user's own role when omitted). Admins cannot be reset.
        """
        try:
            user = await self.get_user(user_id)
            if user is None:
                raise NotFoundError("Utilisateur introuvable")

            role = UserRole(role or user.role)
            if user.role == UserRole.ADMIN or role == UserRole.ADMIN:
                raise InvalidOperationError(
                    "Les permissions d'un administrateur ne peuvent pas être réinitialisées"
                )

            defaults = sorted(role_default_permissions(role))
            permissions = await self._ensure_permissions(defaults)

            await self.session.execute(delete(UserPermission).where(UserPermission.user_id == user_id))
            now = utcnow()
            for permission in permissions:
                self.session.add(UserPermission(
                    user_id=user_id,
                    permission_id=permission.id,
                    granted_by=granted_by,
                    granted_at=now,
                ))

            await self.session.commit()
            logger.info(f"Permissions of user {user_id} reset to {role.value} defaults ({len(defaults)})")
            return defaults

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error resetting permissions for user {user_id}: {e}")
            raise UnexpectedError("Erreur lors de la réinitialisation des permissions", details=str(e))

    async def apply_role_defaults(self, user: User, granted_by: Optional[int] = None) -> int:
        """
        Add the role defaults a user does not hold yet, keeping other grants.
        Does not commit; used while provisioning users.
        """
        if user.role == UserRole.ADMIN:
            return 0

        permissions = await self._ensure_permissions(role_default_permissions(user.role))
        held = {p.id for p in await self.get_user_permissions(user.id)}
        now = utcnow()
        added = 0
        for permission in permissions:
            if permission.id in held:
                continue
            self.session.add(UserPermission(
                user_id=user.id,
                permission_id=permission.id,
                granted_by=granted_by,
                granted_at=now,
            ))
            added += 1
        return added

    async def grant_all_permissions_to_admins(self, granted_by: Optional[int] = None) -> Dict[str, int]:
        """Materialise every permission as an explicit grant for each active admin."""
        try:
            permissions = await self.list_permissions()
            result = await self.session.execute(
                select(User).where(User.role == UserRole.ADMIN, User.status == UserStatus.ACTIVE)
            )
            admins = list(result.scalars().all())

            created_links = 0
            now = utcnow()
            for admin in admins:
                held = {p.id for p in await self.get_user_permissions(admin.id)}
                for permission in permissions:
                    if permission.id in held:
                        continue
                    self.session.add(UserPermission(
                        user_id=admin.id,
                        permission_id=permission.id,
                        granted_by=granted_by,
                        granted_at=now,
                    ))
                    created_links += 1

            await self.session.commit()
            logger.info(f"Granted all permissions to {len(admins)} admins ({created_links} links)")
            return {"updatedAdmins": len(admins), "createdLinks": created_links}

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error granting all permissions to admins: {e}")
            raise UnexpectedError("Erreur lors de l'attribution des permissions", details=str(e))

    # ---------- Seeding ----------
    async def seed_permissions(self) -> Dict[str, Any]:
        """Upsert the permission catalogue by name."""
        try:
            result = await self.session.execute(select(Permission))
            existing = {p.name: p for p in result.scalars().all()}

            created = updated = 0
            for data in PERMISSIONS_SEED:
                permission = existing.get(data["name"])
                if permission is None:
                    self.session.add(Permission(**data))
                    created += 1
                elif (permission.description, permission.category) != (data["description"], data["category"]):
                    permission.description = data["description"]
                    permission.category = data["category"]
                    updated += 1

            await self.session.commit()
            logger.info(f"Permissions seeded: {created} created, {updated} updated")
            return {"created": created, "updated": updated}

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error seeding permissions: {e}")
            raise UnexpectedError("Erreur lors de l'initialisation des permissions", details=str(e))

    # ---------- Helpers ----------
    async def _get_grant(self, user_id: int, permission_id: int) -> Optional[UserPermission]:
        result = await self.session.execute(
            select(UserPermission).where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == permission_id,
            )
        )
        return result.scalar_one_or_none()

    async def _ensure_permissions(self, names: Iterable[str]) -> List[Permission]:
        """Load permissions by name, creating catalogue entries that are missing."""
        names = list(names)
        if not names:
            return []

        result = await self.session.execute(select(Permission).where(Permission.name.in_(names)))
        found = {p.name: p for p in result.scalars().all()}

        for name in names:
            if name in found:
                continue
            data = _SEED_BY_NAME.get(name, {"name": name, "description": None, "category": "autres"})
            permission = Permission(**data)
            self.session.add(permission)
            found[name] = permission

        await self.session.flush()
        return [found[name] for name in names]
