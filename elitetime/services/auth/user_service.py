import logging
from typing import Any, Dict, Optional, Tuple
from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.core.exceptions import InvalidOperationError, NotFoundError, UnexpectedError
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import UserRole, UserStatus
from elitetime.schemas.auth.user_schema import UserCreate, UserUpdate
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.auth.session_service import SessionService
from elitetime.services.directory.ldap_client import DirectoryEntry
from elitetime.utils.data_exporter import DataExportService
from elitetime.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.permissions = PermissionService(session)

    # ---------- Getters ----------
    async def get_user(self, user_id: int) -> Optional[User]:
        try:
            result = await self.session.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Error getting user {user_id}: {e}")
            return None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def get_users(
        self,
        page_index: int = 1,
        page_size: int = 100,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        department: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Get users with pagination; deleted users only when asked for."""
        query = select(User)
        if status is not None:
            query = query.where(User.status == status)
        else:
            query = query.where(User.status != UserStatus.DELETED)
        if role is not None:
            query = query.where(User.role == role)
        if department:
            query = query.where(User.department == department)
        if search:
            like = f"%{search}%"
            query = query.where(or_(
                User.username.ilike(like),
                User.email.ilike(like),
                User.firstname.ilike(like),
                User.lastname.ilike(like),
            ))

        total = (await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        skip = (page_index - 1) * page_size
        result = await self.session.execute(
            query.order_by(User.lastname, User.firstname, User.username).offset(skip).limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    # ---------- Create / Update / Delete ----------
    async def create_user(self, data: UserCreate, created_by: Optional[int] = None) -> User:
        try:
            username = data.username or data.email.split("@")[0]
            if await self.get_user_by_username(username):
                raise InvalidOperationError(f"Le nom d'utilisateur '{username}' existe déjà")
            if await self.get_user_by_email(data.email):
                raise InvalidOperationError(f"L'email '{data.email}' est déjà utilisé")

            user = User(
                username=username,
                email=data.email,
                firstname=data.firstname,
                lastname=data.lastname,
                role=data.role,
                status=UserStatus.ACTIVE,
                department=data.department,
                position=data.position,
                team_lead_id=data.team_lead_id,
            )
            self.session.add(user)
            await self.session.flush()
            await self.permissions.apply_role_defaults(user, granted_by=created_by)
            await self.session.commit()
            await self.session.refresh(user)
            logger.info(f"User created: {user.username} ({user.role.value})")
            return user

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating user: {e}")
            raise UnexpectedError("Erreur lors de la création de l'utilisateur", details=str(e))

    async def update_user(self, user_id: int, data: UserUpdate, updated_by: Optional[int] = None) -> User:
        try:
            user = await self.get_user(user_id)
            if not user:
                raise NotFoundError("Utilisateur introuvable")

            changes = data.dict(exclude_unset=True)
            if "email" in changes and changes["email"] and changes["email"] != user.email:
                owner = await self.get_user_by_email(changes["email"])
                if owner and owner.id != user.id:
                    raise InvalidOperationError(f"L'email '{changes['email']}' est déjà utilisé")

            role_changed = "role" in changes and changes["role"] != user.role
            for field, value in changes.items():
                setattr(user, field, value)

            if role_changed:
                await self.permissions.apply_role_defaults(user, granted_by=updated_by)

            await self.session.commit()
            await self.session.refresh(user)
            logger.info(f"User updated: {user.username}")
            return user

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating user {user_id}: {e}")
            raise UnexpectedError("Erreur lors de la mise à jour de l'utilisateur", details=str(e))

    async def delete_user(self, user_id: int, deleted_by: Optional[int] = None) -> User:
        """Users are never removed; they move to the ``deleted`` status."""
        try:
            if deleted_by is not None and deleted_by == user_id:
                raise InvalidOperationError("Vous ne pouvez pas supprimer votre propre compte")

            user = await self.get_user(user_id)
            if not user:
                raise NotFoundError("Utilisateur introuvable")

            user.status = UserStatus.DELETED
            await self.session.commit()
            await SessionService(self.session).delete_user_sessions(user_id)
            logger.info(f"User deleted (soft): {user.username}")
            return user

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting user {user_id}: {e}")
            raise UnexpectedError("Erreur lors de la suppression de l'utilisateur", details=str(e))

    # ---------- Directory ----------
    async def upsert_from_directory(self, entry: DirectoryEntry) -> Tuple[User, bool]:
        """
        Create or refresh a user from a directory entry. Matches by username
        first, then by email owner. Does not commit.

        Returns ``(user, created)``.
        """
        by_username = await self.get_user_by_username(entry.username)

        safe_email = None
        email_owner = None
        if entry.email:
            email_owner = await self.get_user_by_email(entry.email)
            if email_owner is None or email_owner.username == entry.username:
                safe_email = entry.email

        status = UserStatus.ACTIVE if entry.active else UserStatus.INACTIVE
        profile = {
            "firstname": entry.firstname,
            "lastname": entry.lastname,
            "department": entry.department,
            "position": entry.title,
            "status": status,
        }

        if by_username is not None:
            by_username.email = safe_email
            for field, value in profile.items():
                setattr(by_username, field, value)
            return by_username, False

        if email_owner is not None:
            email_owner.username = entry.username
            for field, value in profile.items():
                setattr(email_owner, field, value)
            return email_owner, False

        user = User(username=entry.username, email=safe_email, role=UserRole.EMPLOYEE, **profile)
        self.session.add(user)
        await self.session.flush()
        await self.permissions.apply_role_defaults(user)
        return user, True

    # ---------- Export ----------
    async def export_users_excel(self, status: Optional[UserStatus] = None) -> StreamingResponse:
        query = select(User).order_by(User.lastname, User.firstname)
        if status is not None:
            query = query.where(User.status == status)
        users = (await self.session.execute(query)).scalars().all()

        rows = [
            {
                "ID": u.id,
                "Nom d'utilisateur": u.username,
                "Email": u.email,
                "Nom complet": u.full_name,
                "Rôle": u.role.value,
                "Statut": u.status.value,
                "Département": u.department,
                "Poste": u.position,
                "Créé le": u.created_at.strftime("%Y-%m-%d %H:%M:%S") if u.created_at else None,
            }
            for u in users
        ]
        tag = status.value if status else "all"
        filename = f"{tag}_users_{utcnow().strftime('%Y%m%d_%H%M%S')}"
        return DataExportService().export_to_excel(rows, filename, sheet_name="Utilisateurs")
