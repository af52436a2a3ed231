from pydantic import BaseModel, validator
from typing import Optional
from datetime import date, datetime
from elitetime.models.shared.enums import AbsenceType, AbsenceStatus


class AbsenceBase(BaseModel):
    type: AbsenceType
    start_date: date
    end_date: date
    reason: Optional[str] = None

    @validator("end_date")
    def validate_dates(cls, v, values):
        start = values.get("start_date")
        if start and v < start:
            raise ValueError("La date de fin doit être postérieure à la date de début")
        return v


class AbsenceCreate(AbsenceBase):
    pass


class ManagedLeaveCreate(AbsenceBase):
    user_id: int
    status: AbsenceStatus = AbsenceStatus.APPROVED


class ManagedLeaveUpdate(BaseModel):
    type: Optional[AbsenceType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    status: Optional[AbsenceStatus] = None


class AbsenceDecision(BaseModel):
    comment: Optional[str] = None


class AbsenceResponse(AbsenceBase):
    id: int
    user_id: int
    status: AbsenceStatus
    comment: Optional[str] = None
    validated_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
