from elitetime.models.base import Base
from elitetime.models.auth.user import User
from elitetime.models.auth.permission import Permission
from elitetime.models.auth.user_permission import UserPermission
from elitetime.models.auth.session import UserSession
from elitetime.models.auth.page import Page, PagePermission
from elitetime.models.auth.activity_log import ActivityLog
from elitetime.models.organization.department import Department
from elitetime.models.organization.position import Position
from elitetime.models.hr.pointage import Pointage
from elitetime.models.hr.break_record import Break
from elitetime.models.hr.absence import Absence
from elitetime.models.system.system_settings import SystemSettings
