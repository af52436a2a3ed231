import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional
from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.core.exceptions import InvalidOperationError, TooSoonError, UnexpectedError
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import ActivityType, UserRole, UserStatus
from elitetime.models.system.system_settings import SystemSettings
from elitetime.services.auth.user_service import UserService
from elitetime.services.directory.ldap_client import DirectoryClient
from elitetime.services.system.activity_log_service import ActivityLogService
from elitetime.services.system.settings_service import SettingsService
from elitetime.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def check_sync_gate(settings_row: SystemSettings, now: datetime) -> None:
    """
    Cooldown guard in front of the directory sync.

    Raises InvalidOperationError when sync is disabled, TooSoonError (with the
    remaining minutes rounded up) when the interval has not elapsed yet.
    """
    if not settings_row.ldap_sync_enabled:
        raise InvalidOperationError("La synchronisation LDAP est désactivée dans les paramètres système.")

    last_sync = ensure_utc(settings_row.ldap_last_sync_at)
    if last_sync is None:
        return

    elapsed_minutes = (now - last_sync).total_seconds() / 60
    interval = settings_row.ldap_sync_interval_minutes
    if elapsed_minutes < interval:
        raise TooSoonError(
            remaining_minutes=math.ceil(interval - elapsed_minutes),
            detail="Intervalle minimal entre deux synchronisations non atteint.",
        )


class LdapSyncService:
    def __init__(self, session: AsyncSession, directory: DirectoryClient):
        self.session = session
        self.directory = directory
        self.settings = SettingsService(session)
        self.users = UserService(session)

    async def sync(self, actor_id: Optional[int] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        settings_row = await self.settings.get_settings()
        check_sync_gate(settings_row, now)

        try:
            entries = await self.directory.search_users()

            created = updated = 0
            usernames = []
            for entry in entries:
                _, was_created = await self.users.upsert_from_directory(entry)
                usernames.append(entry.username)
                if was_created:
                    created += 1
                else:
                    updated += 1

            deactivated = 0
            if usernames:
                result = await self.session.execute(
                    update(User)
                    .where(
                        User.role == UserRole.EMPLOYEE,
                        User.status == UserStatus.ACTIVE,
                        User.username.not_in(usernames),
                    )
                    .values(status=UserStatus.DELETED)
                    .execution_options(synchronize_session="fetch")
                )
                deactivated = result.rowcount or 0

            settings_row.ldap_last_sync_at = now
            await self.session.commit()

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error during LDAP sync: {e}")
            raise UnexpectedError("Erreur lors de la synchronisation LDAP.", details=str(e))

        synced = len(usernames)
        logger.info(
            f"LDAP sync done: {synced} synced, {created} created, {updated} updated, {deactivated} deactivated"
        )
        await ActivityLogService(self.session).create_activity_log(
            actor_id,
            "Synchronisation LDAP",
            f"{synced} comptes synchronisés, {created} créés, {deactivated} désactivés",
            ActivityType.SYSTEM,
        )
        return {
            "syncedCount": synced,
            "created": created,
            "updated": updated,
            "deactivated": deactivated,
            "lastSyncAt": now,
        }
