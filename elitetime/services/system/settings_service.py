import logging
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.core.exceptions import UnexpectedError
from elitetime.models.system.system_settings import SystemSettings, SYSTEM_SETTINGS_ID
from elitetime.schemas.system.settings_schema import SystemSettingsUpdate

logger = logging.getLogger(__name__)


class SettingsService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_settings(self) -> SystemSettings:
        """Return the singleton row, creating it with defaults on first read."""
        result = await self.session.execute(
            select(SystemSettings).where(SystemSettings.id == SYSTEM_SETTINGS_ID)
        )
        settings_row = result.scalar_one_or_none()
        if settings_row is not None:
            return settings_row

        try:
            settings_row = SystemSettings(
                id=SYSTEM_SETTINGS_ID,
                work_start_time="08:45",
                work_end_time="17:30",
                max_session_end_time="20:00",
                break_duration=60,
                overtime_threshold=8,
                holidays=[],
            )
            self.session.add(settings_row)
            await self.session.commit()
            await self.session.refresh(settings_row)
            logger.info("System settings created with defaults")
            return settings_row
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating default system settings: {e}")
            raise UnexpectedError("Impossible d'initialiser les paramètres", details=str(e))

    async def update_settings(self, data: SystemSettingsUpdate) -> SystemSettings:
        try:
            settings_row = await self.get_settings()
            for field, value in data.dict(exclude_unset=True).items():
                setattr(settings_row, field, value)

            await self.session.commit()
            await self.session.refresh(settings_row)
            logger.info("System settings updated")
            return settings_row

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating system settings: {e}")
            raise UnexpectedError("Erreur lors de la mise à jour des paramètres", details=str(e))
