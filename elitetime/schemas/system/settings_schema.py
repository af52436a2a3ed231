import re
from pydantic import BaseModel, validator
from typing import List, Optional
from datetime import datetime
from elitetime.models.shared.enums import DailyReportMode

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
MAX_HOLIDAYS = 50


class SystemSettingsResponse(BaseModel):
    work_start_time: str
    work_end_time: str
    max_session_end_time: str
    break_duration: int
    overtime_threshold: int
    holidays: List[str]
    email_notifications: bool
    push_notifications: bool
    late_alerts: bool
    daily_report_mode: DailyReportMode
    ldap_sync_enabled: bool
    ldap_sync_interval_minutes: int
    ldap_last_sync_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SystemSettingsUpdate(BaseModel):
    work_start_time: Optional[str] = None
    work_end_time: Optional[str] = None
    max_session_end_time: Optional[str] = None
    break_duration: Optional[int] = None
    overtime_threshold: Optional[int] = None
    holidays: Optional[List[str]] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    late_alerts: Optional[bool] = None
    daily_report_mode: Optional[DailyReportMode] = None
    ldap_sync_enabled: Optional[bool] = None
    ldap_sync_interval_minutes: Optional[int] = None

    @validator("work_start_time", "work_end_time", "max_session_end_time")
    def validate_hhmm(cls, v):
        if v is not None and not HHMM_PATTERN.match(v):
            raise ValueError("Format d'heure invalide (HH:MM)")
        return v

    @validator("break_duration")
    def validate_break_duration(cls, v):
        if v is not None and not 0 <= v <= 480:
            raise ValueError("La durée de pause doit être comprise entre 0 et 480 minutes")
        return v

    @validator("overtime_threshold")
    def validate_overtime_threshold(cls, v):
        if v is not None and not 0 <= v <= 24:
            raise ValueError("Le seuil d'heures supplémentaires doit être compris entre 0 et 24")
        return v

    @validator("holidays")
    def validate_holidays(cls, v):
        if v is not None and len(v) > MAX_HOLIDAYS:
            raise ValueError(f"Maximum {MAX_HOLIDAYS} jours fériés")
        return v

    @validator("ldap_sync_interval_minutes")
    def validate_ldap_interval(cls, v):
        if v is not None and not 1 <= v <= 1440:
            raise ValueError("L'intervalle de synchronisation doit être compris entre 1 et 1440 minutes")
        return v


class LdapSyncResponse(BaseModel):
    success: bool = True
    syncedCount: int
    created: int = 0
    updated: int = 0
    deactivated: int = 0
    lastSyncAt: datetime
