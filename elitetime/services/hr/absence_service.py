import logging
from datetime import date
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from elitetime.core.exceptions import InvalidOperationError, NotFoundError, UnexpectedError
from elitetime.models.auth.user import User
from elitetime.models.hr.absence import Absence
from elitetime.models.shared.enums import AbsenceStatus, AbsenceType, ActivityType
from elitetime.schemas.hr.absence_schema import AbsenceCreate, ManagedLeaveCreate, ManagedLeaveUpdate
from elitetime.services.system.activity_log_service import ActivityLogService

logger = logging.getLogger(__name__)

TYPE_LABELS = {
    AbsenceType.CONGE: "Congé",
    AbsenceType.MALADIE: "Maladie",
    AbsenceType.AUTRE: "Autre",
}


def _period(absence: Absence) -> str:
    return f"{absence.start_date.strftime('%d/%m/%Y')} au {absence.end_date.strftime('%d/%m/%Y')}"


class AbsenceService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity = ActivityLogService(session)

    # ---------- Getters ----------
    async def get_absence(self, absence_id: int) -> Optional[Absence]:
        result = await self.session.execute(
            select(Absence).options(selectinload(Absence.user)).where(Absence.id == absence_id)
        )
        return result.scalar_one_or_none()

    async def get_user_absences(self, user_id: int) -> List[Absence]:
        result = await self.session.execute(
            select(Absence).where(Absence.user_id == user_id).order_by(Absence.start_date.desc())
        )
        return list(result.scalars().all())

    async def get_absences_for_users(
        self, user_ids: Optional[List[int]] = None, status: Optional[AbsenceStatus] = None
    ) -> List[Absence]:
        """``user_ids=None`` means every user."""
        query = select(Absence)
        if user_ids is not None:
            if not user_ids:
                return []
            query = query.where(Absence.user_id.in_(user_ids))
        if status is not None:
            query = query.where(Absence.status == status)
        result = await self.session.execute(query.order_by(Absence.start_date.desc()))
        return list(result.scalars().all())

    async def find_overlapping(
        self, user_id: int, start: date, end: date, exclude_id: Optional[int] = None
    ) -> Optional[Absence]:
        """First pending or approved absence of the user intersecting [start, end]."""
        query = select(Absence).where(
            Absence.user_id == user_id,
            Absence.status != AbsenceStatus.REJECTED,
            Absence.start_date <= end,
            Absence.end_date >= start,
        )
        if exclude_id is not None:
            query = query.where(Absence.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    # ---------- Employee ----------
    async def request_absence(self, user: User, data: AbsenceCreate) -> Absence:
        try:
            absence = Absence(
                user_id=user.id,
                type=data.type,
                start_date=data.start_date,
                end_date=data.end_date,
                reason=data.reason,
                status=AbsenceStatus.PENDING,
            )
            self.session.add(absence)
            await self.session.commit()
            await self.session.refresh(absence)

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating absence request for user {user.id}: {e}")
            raise UnexpectedError("Erreur lors de la demande d'absence", details=str(e))

        await self.activity.create_activity_log(
            user.id,
            "Demande d'absence",
            f"{user.full_name} - {TYPE_LABELS.get(absence.type, absence.type.value)} ({_period(absence)})",
            ActivityType.ABSENCE,
        )
        return absence

    # ---------- Manager decisions ----------
    async def approve_absence(self, absence_id: int, actor: User, comment: Optional[str] = None) -> Absence:
        return await self._decide(absence_id, actor, AbsenceStatus.APPROVED, comment)

    async def reject_absence(self, absence_id: int, actor: User, comment: Optional[str] = None) -> Absence:
        return await self._decide(absence_id, actor, AbsenceStatus.REJECTED, comment)

    async def _decide(
        self, absence_id: int, actor: User, status: AbsenceStatus, comment: Optional[str]
    ) -> Absence:
        try:
            absence = await self.get_absence(absence_id)
            if absence is None:
                raise NotFoundError("Absence introuvable")

            # refresh() below expires the eagerly loaded user
            label = absence.user.full_name if absence.user else str(absence.user_id)
            absence.status = status
            absence.validated_by = actor.id
            if comment is not None:
                absence.comment = comment
            await self.session.commit()
            await self.session.refresh(absence)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deciding absence {absence_id}: {e}")
            raise UnexpectedError("Erreur lors de la validation de l'absence", details=str(e))

        if status == AbsenceStatus.APPROVED:
            action, details = "Validation de congé", f"{label} - Congé approuvé ({_period(absence)})"
        else:
            action, details = "Rejet de congé", f"{label} - Congé rejeté ({_period(absence)})"
            if comment:
                details += f" - Motif: {comment}"
        await self.activity.create_activity_log(actor.id, action, details, ActivityType.ABSENCE)
        return absence

    # ---------- Managed leave ----------
    async def create_managed_leave(self, data: ManagedLeaveCreate, actor: User) -> Absence:
        try:
            user = await self.session.get(User, data.user_id)
            if user is None:
                raise NotFoundError("Employé introuvable")

            if await self.find_overlapping(data.user_id, data.start_date, data.end_date):
                raise InvalidOperationError("Cet employé a déjà un congé qui chevauche cette période.")

            absence = Absence(
                user_id=data.user_id,
                type=data.type,
                start_date=data.start_date,
                end_date=data.end_date,
                reason=data.reason,
                status=data.status,
                validated_by=actor.id if data.status != AbsenceStatus.PENDING else None,
            )
            self.session.add(absence)
            await self.session.commit()
            await self.session.refresh(absence)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating managed leave: {e}")
            raise UnexpectedError("Erreur lors de la création du congé", details=str(e))

        await self.activity.create_activity_log(
            actor.id, "Création de congé", f"{user.full_name} - Congé créé ({_period(absence)})", ActivityType.ABSENCE
        )
        return absence

    async def update_managed_leave(self, absence_id: int, data: ManagedLeaveUpdate, actor: User) -> Absence:
        try:
            absence = await self.get_absence(absence_id)
            if absence is None:
                raise NotFoundError("Congé introuvable")

            label = absence.user.full_name if absence.user else str(absence.user_id)
            changes = data.dict(exclude_unset=True)
            start = changes.get("start_date") or absence.start_date
            end = changes.get("end_date") or absence.end_date
            if end < start:
                raise InvalidOperationError("La date de fin doit être postérieure à la date de début")

            if await self.find_overlapping(absence.user_id, start, end, exclude_id=absence.id):
                raise InvalidOperationError("Cet employé a déjà un autre congé qui chevauche cette période.")

            for field, value in changes.items():
                if value is not None:
                    setattr(absence, field, value)
            await self.session.commit()
            await self.session.refresh(absence)

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating managed leave {absence_id}: {e}")
            raise UnexpectedError("Erreur lors de la modification du congé", details=str(e))

        await self.activity.create_activity_log(
            actor.id, "Modification de congé", f"{label} - Congé modifié ({_period(absence)})", ActivityType.ABSENCE
        )
        return absence

    async def delete_managed_leave(self, absence_id: int, actor: User) -> bool:
        try:
            absence = await self.get_absence(absence_id)
            if absence is None:
                raise NotFoundError("Congé introuvable")

            label = absence.user.full_name if absence.user else str(absence.user_id)
            period = _period(absence)
            await self.session.delete(absence)
            await self.session.commit()

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting managed leave {absence_id}: {e}")
            raise UnexpectedError("Erreur lors de la suppression du congé", details=str(e))

        await self.activity.create_activity_log(
            actor.id, "Suppression de congé", f"{label} - Congé supprimé ({period})", ActivityType.ABSENCE
        )
        return True
