from enum import Enum


class UserRole(str, Enum):
    EMPLOYEE = "employee"
    TEAM_LEAD = "team_lead"
    MANAGER = "manager"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class ActivityType(str, Enum):
    AUTH = "auth"
    USER = "user"
    POINTAGE = "pointage"
    ABSENCE = "absence"
    BREAK = "break"
    SYSTEM = "system"


class PointageStatus(str, Enum):
    NORMAL = "normal"
    LATE = "late"


class AbsenceType(str, Enum):
    CONGE = "conge"         # Paid leave
    MALADIE = "maladie"     # Sick leave
    AUTRE = "autre"


class AbsenceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DailyReportMode(str, Enum):
    TODAY = "TODAY"
    YESTERDAY = "YESTERDAY"
