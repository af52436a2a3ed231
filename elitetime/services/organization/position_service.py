import logging
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from elitetime.core.exceptions import InvalidOperationError, NotFoundError, UnexpectedError
from elitetime.models.organization.department import Department
from elitetime.models.organization.position import Position
from elitetime.models.shared.enums import ActivityType
from elitetime.schemas.organization.position_schema import PositionCreate, PositionUpdate
from elitetime.services.system.activity_log_service import ActivityLogService

logger = logging.getLogger(__name__)


class PositionService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity = ActivityLogService(session)

    async def get_position(self, position_id: int) -> Optional[Position]:
        result = await self.session.execute(select(Position).where(Position.id == position_id))
        return result.scalar_one_or_none()

    async def get_positions(self, department_id: Optional[int] = None) -> List[Position]:
        query = select(Position)
        if department_id is not None:
            query = query.where(Position.department_id == department_id)
        result = await self.session.execute(query.order_by(Position.name))
        return list(result.scalars().all())

    async def _ensure_department(self, department_id: int) -> Department:
        department = await self.session.get(Department, department_id)
        if department is None:
            raise NotFoundError("Département introuvable")
        return department

    async def _ensure_unique(self, name: str, department_id: int, exclude_id: Optional[int] = None):
        query = select(Position.id).where(Position.name == name, Position.department_id == department_id)
        if exclude_id is not None:
            query = query.where(Position.id != exclude_id)
        if (await self.session.execute(query.limit(1))).scalar_one_or_none() is not None:
            raise InvalidOperationError(f"Le poste '{name}' existe déjà dans ce département")

    async def create_position(self, data: PositionCreate, created_by: Optional[int] = None) -> Position:
        try:
            await self._ensure_department(data.department_id)
            await self._ensure_unique(data.name, data.department_id)

            position = Position(name=data.name, description=data.description, department_id=data.department_id)
            self.session.add(position)
            await self.session.commit()
            await self.session.refresh(position)
            logger.info(f"Position created: {position.name} (department {position.department_id})")

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating position: {e}")
            raise UnexpectedError("Erreur lors de la création du poste", details=str(e))

        await self.activity.create_activity_log(
            created_by, "Création de poste", f"Poste '{position.name}' créé", ActivityType.USER
        )
        return position

    async def update_position(
        self, position_id: int, data: PositionUpdate, updated_by: Optional[int] = None
    ) -> Position:
        try:
            position = await self.get_position(position_id)
            if position is None:
                raise NotFoundError("Poste introuvable")

            changes = data.dict(exclude_unset=True)
            department_id = changes.get("department_id") or position.department_id
            if "department_id" in changes:
                await self._ensure_department(department_id)
            await self._ensure_unique(changes.get("name") or position.name, department_id, exclude_id=position_id)

            for field, value in changes.items():
                if value is not None:
                    setattr(position, field, value)

            await self.session.commit()
            await self.session.refresh(position)
            logger.info(f"Position updated: {position.name}")

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating position {position_id}: {e}")
            raise UnexpectedError("Erreur lors de la mise à jour du poste", details=str(e))

        await self.activity.create_activity_log(
            updated_by, "Modification de poste", f"Poste '{position.name}' modifié", ActivityType.USER
        )
        return position

    async def delete_position(self, position_id: int, deleted_by: Optional[int] = None) -> bool:
        try:
            position = await self.get_position(position_id)
            if position is None:
                raise NotFoundError("Poste introuvable")

            name = position.name
            await self.session.delete(position)
            await self.session.commit()
            logger.info(f"Position deleted: {name}")

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting position {position_id}: {e}")
            raise UnexpectedError("Erreur lors de la suppression du poste", details=str(e))

        await self.activity.create_activity_log(
            deleted_by, "Suppression de poste", f"Poste '{name}' supprimé", ActivityType.USER
        )
        return True
