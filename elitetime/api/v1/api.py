from fastapi import APIRouter
from elitetime.api.v1.endpoints.auth import login, navigation, permissions, users
from elitetime.api.v1.endpoints.hr import absences, breaks, manager, pointages
from elitetime.api.v1.endpoints.organization import departments, positions
from elitetime.api.v1.endpoints.reports import reports
from elitetime.api.v1.endpoints.system import ldap, logs, notifications, settings

api_router = APIRouter()

# Authentication routes
api_router.include_router(login.router, tags=["Authentication"])
api_router.include_router(permissions.router, tags=["Permissions"])
api_router.include_router(navigation.router, tags=["Navigation"])
api_router.include_router(users.router, prefix="/admin/users", tags=["Users"])

# Organization routes
api_router.include_router(departments.router, prefix="/departments", tags=["Organization"])
api_router.include_router(positions.router, prefix="/positions", tags=["Organization"])

# HR routes
api_router.include_router(pointages.router, prefix="/pointages", tags=["Time Tracking"])
api_router.include_router(breaks.router, prefix="/breaks", tags=["Time Tracking"])
api_router.include_router(absences.router, prefix="/absences", tags=["Absences"])
api_router.include_router(manager.router, prefix="/manager", tags=["Manager"])

# Reports
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])

# System routes
api_router.include_router(settings.router, prefix="/admin/settings", tags=["System"])
api_router.include_router(logs.router, tags=["System"])
api_router.include_router(ldap.router, prefix="/admin/ldap", tags=["System"])
api_router.include_router(notifications.router, prefix="/admin/notifications", tags=["System"])
