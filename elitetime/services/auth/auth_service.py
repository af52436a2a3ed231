import logging
from typing import Optional, Tuple
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.core.exceptions import ForbiddenError, UnauthenticatedError, UnexpectedError
from elitetime.models.auth.session import UserSession
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import ActivityType, UserStatus
from elitetime.services.auth.session_service import SessionService
from elitetime.services.auth.user_service import UserService
from elitetime.services.directory.ldap_client import DirectoryClient
from elitetime.services.system.activity_log_service import ActivityLogService

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, session: AsyncSession, directory: DirectoryClient):
        self.session = session
        self.directory = directory
        self.sessions = SessionService(session)
        self.users = UserService(session)
        self.activity = ActivityLogService(session)

    async def login(
        self, username: str, password: str, ip_address: Optional[str] = None
    ) -> Tuple[User, UserSession]:
        """Verify credentials against the directory and open a session."""
        entry = await self.directory.authenticate(username, password)
        if entry is None:
            logger.warning(f"SECURITY: failed login for '{username}' from {ip_address}")
            raise UnauthenticatedError("Identifiants invalides")

        try:
            user, created = await self.users.upsert_from_directory(entry)
            await self.session.commit()
            await self.session.refresh(user)
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error provisioning user '{username}' at login: {e}")
            raise UnexpectedError("Erreur lors de la connexion", details=str(e))

        if created:
            logger.info(f"User provisioned from directory: {user.username}")

        if user.status != UserStatus.ACTIVE:
            logger.warning(f"SECURITY: login refused for inactive user {user.username}")
            raise ForbiddenError("Compte désactivé")

        try:
            user_session = await self.sessions.create_session(user)
        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating session for {user.username}: {e}")
            raise UnexpectedError("Erreur lors de la connexion", details=str(e))

        await self.activity.create_activity_log(
            user.id, "Connexion", f"{user.full_name} s'est connecté", ActivityType.AUTH
        )
        logger.info(f"User logged in: {user.username} from {ip_address}")
        return user, user_session

    async def logout(self, token: Optional[str]) -> None:
        user = await self.sessions.get_user(token)
        if user is not None:
            await self.activity.create_activity_log(
                user.id, "Déconnexion", f"{user.full_name} s'est déconnecté", ActivityType.AUTH
            )
        await self.sessions.delete_session(token)
