import logging
from typing import Any, Dict, Optional
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select, func, or_, update
from elitetime.core.exceptions import InvalidOperationError, NotFoundError, UnexpectedError
from elitetime.models.auth.user import User
from elitetime.models.organization.department import Department
from elitetime.models.organization.position import Position
from elitetime.models.shared.enums import ActivityType, UserStatus
from elitetime.schemas.organization.department_schema import DepartmentCreate, DepartmentUpdate
from elitetime.services.system.activity_log_service import ActivityLogService

logger = logging.getLogger(__name__)


class DepartmentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity = ActivityLogService(session)

    # ---------- Getters ----------
    async def get_department(self, department_id: int) -> Optional[Department]:
        try:
            result = await self.session.execute(
                select(Department).where(Department.id == department_id)
            )
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Error getting department {department_id}: {e}")
            return None

    async def get_department_by_name(self, name: str) -> Optional[Department]:
        try:
            result = await self.session.execute(
                select(Department).where(Department.name == name)
            )
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Error getting department by name: {e}")
            return None

    # ---------- Create / Update / Delete ----------
    async def create_department(self, data: DepartmentCreate, created_by: Optional[int] = None) -> Department:
        try:
            if await self.get_department_by_name(data.name) is not None:
                raise InvalidOperationError(f"Le département '{data.name}' existe déjà")

            dept = Department(name=data.name, description=data.description)
            self.session.add(dept)
            await self.session.commit()
            await self.session.refresh(dept)
            logger.info(f"Department created: {dept.name}")

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating department: {e}")
            raise UnexpectedError("Erreur lors de la création du département", details=str(e))

        await self.activity.create_activity_log(
            created_by, "Création de département", f"Département '{dept.name}' créé", ActivityType.USER
        )
        return dept

    async def update_department(
        self, department_id: int, data: DepartmentUpdate, updated_by: Optional[int] = None
    ) -> Department:
        """
        Update a department. A rename also moves every user still referencing
        the old name, in the same transaction.
        """
        try:
            dept = await self.get_department(department_id)
            if not dept:
                raise NotFoundError("Département introuvable")

            old_name = dept.name
            new_name = data.name
            renamed = bool(new_name) and new_name != old_name

            if renamed:
                exists = await self.session.execute(
                    select(Department.id).where(
                        Department.name == new_name,
                        Department.id != department_id,
                    ).limit(1)
                )
                if exists.scalar_one_or_none() is not None:
                    raise InvalidOperationError(f"Le département '{new_name}' existe déjà")

            for field, value in data.dict(exclude_unset=True).items():
                if value is not None:
                    setattr(dept, field, value)
            await self.session.flush()

            moved = 0
            if renamed:
                moved = await self._rename_department_references(old_name, new_name)

            await self.session.commit()
            await self.session.refresh(dept)
            logger.info(f"Department updated: {old_name} -> {dept.name} ({moved} users moved)")

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating department {department_id}: {e}")
            raise UnexpectedError("Erreur lors de la mise à jour du département", details=str(e))

        await self.activity.create_activity_log(
            updated_by,
            "Modification de département",
            f"Département '{old_name}' modifié" + (f" en '{dept.name}'" if renamed else ""),
            ActivityType.USER,
        )
        return dept

    async def _rename_department_references(self, old_name: str, new_name: str) -> int:
        result = await self.session.execute(
            update(User)
            .where(User.department == old_name)
            .values(department=new_name)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def delete_department(self, department_id: int, deleted_by: Optional[int] = None) -> bool:
        try:
            dept = await self.get_department(department_id)
            if not dept:
                raise NotFoundError("Département introuvable")

            # active users check
            count_result = await self.session.execute(
                select(func.count()).select_from(User).where(
                    User.department == dept.name,
                    User.status == UserStatus.ACTIVE,
                )
            )
            if int(count_result.scalar() or 0) > 0:
                raise InvalidOperationError(
                    "Impossible de supprimer ce département: des employés actifs y sont rattachés"
                )

            name = dept.name
            await self.session.execute(delete(Position).where(Position.department_id == department_id))
            await self.session.delete(dept)
            await self.session.commit()
            logger.info(f"Department deleted: {name}")

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting department {department_id}: {e}")
            raise UnexpectedError("Erreur lors de la suppression du département", details=str(e))

        await self.activity.create_activity_log(
            deleted_by, "Suppression de département", f"Département '{name}' supprimé", ActivityType.USER
        )
        return True

    # ---------- Listing ----------
    async def get_departments(
        self,
        page_index: int = 1,
        page_size: int = 100,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Get departments with pagination"""
        try:
            query = select(Department)
            if search:
                like = f"%{search}%"
                query = query.where(
                    or_(
                        Department.name.ilike(like),
                        Department.description.ilike(like)
                    )
                )

            count_query = select(func.count()).select_from(query.subquery())
            total = (await self.session.execute(count_query)).scalar() or 0

            skip = (page_index - 1) * page_size
            result = await self.session.execute(
                query.order_by(Department.name).offset(skip).limit(page_size)
            )
            return {
                "page_index": page_index,
                "page_size": page_size,
                "count": total,
                "data": result.scalars().all()
            }
        except Exception as e:
            logger.error(f"Error getting departments: {e}")
            return {
                "page_index": page_index,
                "page_size": page_size,
                "count": 0,
                "data": []
            }
