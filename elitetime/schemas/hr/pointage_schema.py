from pydantic import BaseModel, validator
from typing import List, Optional
from datetime import date, time, datetime
from elitetime.models.shared.enums import PointageStatus


class PointageResponse(BaseModel):
    id: int
    user_id: int
    date: date
    entry_time: Optional[time] = None
    exit_time: Optional[time] = None
    duration: int
    status: PointageStatus
    is_active: bool

    class Config:
        from_attributes = True


class ManualPointageCreate(BaseModel):
    user_id: int
    date: date
    entry_time: time
    exit_time: Optional[time] = None

    @validator("exit_time")
    def validate_exit_time(cls, v, values):
        entry = values.get("entry_time")
        if v is not None and entry is not None and v < entry:
            raise ValueError("L'heure de sortie doit être postérieure à l'heure d'entrée")
        return v


class WeekStats(BaseModel):
    hours: int
    lates: int
    overtime: int


class TeamPointageRow(BaseModel):
    user_id: int
    user_name: str
    department: Optional[str] = None
    date: date
    entry_time: Optional[time] = None
    exit_time: Optional[time] = None
    duration: int
    status: PointageStatus
    is_active: bool


class BreakResponse(BaseModel):
    id: int
    user_id: int
    date: date
    start_time: time
    end_time: Optional[time] = None
    duration: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamReportRow(BaseModel):
    user_id: int
    user_name: str
    department: Optional[str] = None
    days_worked: int
    total_minutes: int
    total_hours: float
    lates: int
    overtime_minutes: int


class TeamReportResponse(BaseModel):
    since: date
    until: date
    overtime_threshold: int
    employees: List[TeamReportRow]
