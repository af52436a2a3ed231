from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Enum as SQLEnum
from elitetime.db.base import BaseModel
from elitetime.models.shared.enums import DailyReportMode

SYSTEM_SETTINGS_ID = 1

class SystemSettings(BaseModel):
    """Singleton row (id=1) holding system wide configuration."""
    __tablename__ = "system_settings"

    work_start_time = Column(String(5), nullable=False, default="08:45")
    work_end_time = Column(String(5), nullable=False, default="17:30")
    max_session_end_time = Column(String(5), nullable=False, default="20:00")
    break_duration = Column(Integer, nullable=False, default=60)  # minutes
    overtime_threshold = Column(Integer, nullable=False, default=8)  # hours per day
    holidays = Column(JSON, nullable=False, default=list)

    # Notifications
    email_notifications = Column(Boolean, nullable=False, default=True)
    push_notifications = Column(Boolean, nullable=False, default=True)
    late_alerts = Column(Boolean, nullable=False, default=True)
    daily_report_mode = Column(SQLEnum(DailyReportMode), nullable=False, default=DailyReportMode.TODAY)

    # LDAP sync
    ldap_sync_enabled = Column(Boolean, nullable=False, default=True)
    ldap_sync_interval_minutes = Column(Integer, nullable=False, default=60)
    ldap_last_sync_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<SystemSettings work={self.work_start_time}-{self.work_end_time}>"
