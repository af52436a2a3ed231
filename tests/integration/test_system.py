from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select

from elitetime.core.exceptions import InvalidOperationError, TooSoonError
from elitetime.models.auth.activity_log import ActivityLog
from elitetime.models.auth.user import User
from elitetime.models.hr.pointage import Pointage
from elitetime.models.organization.department import Department
from elitetime.models.shared.enums import ActivityType, UserRole, UserStatus
from elitetime.schemas.organization.department_schema import DepartmentCreate
from elitetime.services.directory.ldap_client import DirectoryEntry
from elitetime.services.organization.department_service import DepartmentService
from elitetime.services.system.activity_log_service import ActivityLogService
from elitetime.services.system.ldap_sync_service import LdapSyncService
from elitetime.services.system.settings_service import SettingsService
from elitetime.utils.time_utils import ensure_utc, utcnow
from tests.conftest import create_user, login_as

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def _entry(username, **overrides):
    data = dict(
        username=username,
        email=f"{username}@elite.ma",
        firstname=username.capitalize(),
        lastname="Ldap",
        department="Finance",
        title="Agent",
    )
    data.update(overrides)
    return DirectoryEntry(**data)


def _broken_activity_log(**kwargs):
    raise RuntimeError("audit db down")


async def _set_last_sync(session, value):
    settings_row = await SettingsService(session).get_settings()
    settings_row.ldap_last_sync_at = value
    await session.commit()
    return settings_row


@pytest.mark.asyncio
class TestLdapSync:
    """Directory import and its cooldown"""

    async def test_sync_creates_updates_and_deactivates(self, db_session, directory):
        await create_user(db_session, "alice", department="Ventes")
        leaver = await create_user(db_session, "leaver")
        kept_manager = await create_user(db_session, "boss", role=UserRole.MANAGER)
        directory.add(_entry("alice"))
        directory.add(_entry("nadia"))

        result = await LdapSyncService(db_session, directory).sync(now=NOW)

        assert result["syncedCount"] == 2
        assert result["created"] == 1
        assert result["updated"] == 1
        assert result["deactivated"] == 1
        assert result["lastSyncAt"] == NOW

        users = {u.username: u for u in (await db_session.execute(select(User))).scalars().all()}
        assert users["alice"].department == "Finance"
        assert users["nadia"].role == UserRole.EMPLOYEE
        await db_session.refresh(leaver)
        await db_session.refresh(kept_manager)
        assert leaver.status == UserStatus.DELETED
        assert kept_manager.status == UserStatus.ACTIVE

    async def test_disabled_directory_account_becomes_inactive(self, db_session, directory):
        directory.add(_entry("old", active=False))

        await LdapSyncService(db_session, directory).sync(now=NOW)

        user = (await db_session.execute(select(User).where(User.username == "old"))).scalar_one()
        assert user.status == UserStatus.INACTIVE

    async def test_too_soon(self, db_session, directory):
        await _set_last_sync(db_session, NOW - timedelta(minutes=30))

        with pytest.raises(TooSoonError) as exc:
            await LdapSyncService(db_session, directory).sync(now=NOW)

        assert exc.value.remaining_minutes == 30

    async def test_interval_elapsed_updates_timestamp(self, db_session, directory):
        await _set_last_sync(db_session, NOW - timedelta(minutes=61))
        directory.add(_entry("alice"))

        await LdapSyncService(db_session, directory).sync(now=NOW)

        settings_row = await SettingsService(db_session).get_settings()
        await db_session.refresh(settings_row)
        assert ensure_utc(settings_row.ldap_last_sync_at) == NOW

    async def test_disabled_sync(self, db_session, directory):
        settings_row = await SettingsService(db_session).get_settings()
        settings_row.ldap_sync_enabled = False
        await db_session.commit()

        with pytest.raises(InvalidOperationError):
            await LdapSyncService(db_session, directory).sync(now=NOW)

    async def test_endpoint_reports_remaining_minutes(self, client: AsyncClient, db_session, directory):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await _set_last_sync(db_session, utcnow() - timedelta(minutes=30))
        await login_as(client, db_session, admin)

        response = await client.post("/api/admin/ldap/sync")

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        body = response.json()
        assert body["success"] is False
        assert body["remainingMinutes"] == 30

    async def test_endpoint_admin_only(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        await login_as(client, db_session, manager)

        response = await client.post("/api/admin/ldap/sync")

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
class TestActivityLog:
    """Audit trail writes"""

    async def test_create(self, db_session):
        user = await create_user(db_session, "amina")

        result = await ActivityLogService(db_session).create_activity_log(
            user.id, "Export", "Rapport mensuel", ActivityType.SYSTEM
        )

        assert result["success"] is True
        assert result["log"].timestamp is not None

    async def test_failure_is_reported_not_raised(self, db_session, monkeypatch):
        async def broken_commit():
            raise RuntimeError("database is locked")

        monkeypatch.setattr(db_session, "commit", broken_commit)

        result = await ActivityLogService(db_session).create_activity_log(None, "Export", None, ActivityType.SYSTEM)

        assert result["success"] is False
        assert "database is locked" in result["error"]

    async def test_failed_log_keeps_caller_objects_loaded(self, db_session, monkeypatch):
        monkeypatch.setattr(
            "elitetime.services.system.activity_log_service.ActivityLog", _broken_activity_log
        )

        dept = await DepartmentService(db_session).create_department(DepartmentCreate(name="Finance"))

        assert dept.name == "Finance"
        assert dept.id is not None

    async def test_department_create_survives_log_failure(self, client: AsyncClient, db_session, monkeypatch):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await login_as(client, db_session, admin)
        monkeypatch.setattr(
            "elitetime.services.system.activity_log_service.ActivityLog", _broken_activity_log
        )

        response = await client.post("/api/departments/", json={"name": "Finance"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Finance"
        stored = (await db_session.execute(select(Department).where(Department.name == "Finance"))).scalar_one()
        assert stored.id == response.json()["id"]
        assert (await db_session.execute(select(ActivityLog))).scalars().all() == []

    async def test_clock_in_survives_log_failure(self, client: AsyncClient, db_session, monkeypatch):
        employee = await create_user(db_session, "emp")
        await login_as(client, db_session, employee)
        monkeypatch.setattr(
            "elitetime.services.system.activity_log_service.ActivityLog", _broken_activity_log
        )
        monkeypatch.setattr(
            "elitetime.services.hr.pointage_service.local_now", lambda: datetime(2026, 3, 2, 9, 10)
        )

        response = await client.post("/api/pointages/start")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["is_active"] is True
        pointage = (await db_session.execute(
            select(Pointage).where(Pointage.user_id == employee.id)
        )).scalar_one()
        assert pointage.is_active is True

    async def test_logs_endpoint_requires_permission(self, client: AsyncClient, db_session):
        employee = await create_user(db_session, "emp")
        await login_as(client, db_session, employee)

        response = await client.get("/api/admin/logs")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_manager_reads_logs(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        await ActivityLogService(db_session).create_activity_log(manager.id, "Export", "x", ActivityType.SYSTEM)
        await login_as(client, db_session, manager)

        response = await client.get("/api/admin/logs")

        assert response.status_code == status.HTTP_200_OK
        assert [log["action"] for log in response.json()] == ["Export"]

    async def test_report_export_is_audited(self, client: AsyncClient, db_session):
        employee = await create_user(db_session, "emp")
        await login_as(client, db_session, employee)

        response = await client.post("/api/activity/report-export", json={"reportType": "pointages"})

        assert response.json() == {"success": True}
        log = (await db_session.execute(
            select(ActivityLog).where(ActivityLog.user_id == employee.id)
        )).scalar_one()
        assert "pointages" in log.details


@pytest.mark.asyncio
class TestSettings:
    """System settings singleton"""

    async def test_defaults(self, db_session):
        settings_row = await SettingsService(db_session).get_settings()

        assert settings_row.work_start_time == "08:45"
        assert settings_row.max_session_end_time == "20:00"
        assert settings_row.break_duration == 60
        assert settings_row.ldap_sync_interval_minutes == 60

    async def test_admin_updates(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await login_as(client, db_session, admin)

        response = await client.put("/api/admin/settings/", json={"work_start_time": "09:00", "late_alerts": False})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["work_start_time"] == "09:00"
        assert response.json()["late_alerts"] is False

    async def test_invalid_time_format(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await login_as(client, db_session, admin)

        response = await client.put("/api/admin/settings/", json={"work_start_time": "9h"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_manager_cannot_read_settings(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        await login_as(client, db_session, manager)

        response = await client.get("/api/admin/settings/")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_break_reminder_endpoint(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        await login_as(client, db_session, manager)

        response = await client.post("/api/admin/notifications/break-reminder", json={"message": "Pause !"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True
        assert response.json()["notified"] == 0
