import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from elitetime.core.config import settings
from elitetime.core.exceptions import UnauthenticatedError
from elitetime.models.auth.session import UserSession
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import UserStatus
from elitetime.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


class SessionService:
    """Opaque session tokens stored in the ``sessions`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_session(self, user: User, now: Optional[datetime] = None) -> UserSession:
        now = now or utcnow()
        user_session = UserSession(
            session_token=uuid.uuid4().hex,
            user_id=user.id,
            expires_at=now + timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS),
        )
        self.session.add(user_session)
        await self.session.commit()
        await self.session.refresh(user_session)
        return user_session

    async def resolve(
        self, token: Optional[str], now: Optional[datetime] = None
    ) -> Tuple[User, UserSession]:
        """
        Map a session token to its active user.

        Raises UnauthenticatedError when the token is missing, unknown,
        expired or belongs to a user that is no longer active. An expired
        row is removed on the lookup that finds it expired.
        """
        if not token:
            raise UnauthenticatedError()

        result = await self.session.execute(
            select(UserSession)
            .options(selectinload(UserSession.user))
            .where(UserSession.session_token == token)
        )
        user_session = result.scalar_one_or_none()
        if user_session is None:
            raise UnauthenticatedError()

        now = now or utcnow()
        if ensure_utc(user_session.expires_at) <= now:
            await self.session.delete(user_session)
            await self.session.commit()
            raise UnauthenticatedError("Session expirée")

        user = user_session.user
        if user is None or user.status != UserStatus.ACTIVE:
            raise UnauthenticatedError("Compte inactif")

        return user, user_session

    async def get_user(self, token: Optional[str]) -> Optional[User]:
        """Like ``resolve`` but returns None instead of raising."""
        try:
            user, _ = await self.resolve(token)
            return user
        except UnauthenticatedError:
            return None

    async def delete_session(self, token: Optional[str]) -> None:
        if not token:
            return
        await self.session.execute(delete(UserSession).where(UserSession.session_token == token))
        await self.session.commit()

    async def delete_user_sessions(self, user_id: int) -> None:
        await self.session.execute(delete(UserSession).where(UserSession.user_id == user_id))
        await self.session.commit()
