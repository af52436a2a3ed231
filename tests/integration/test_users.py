import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select

from elitetime.auth.permissions import role_default_permissions
from elitetime.core.exceptions import InvalidOperationError
from elitetime.models.auth.session import UserSession
from elitetime.models.shared.enums import UserRole, UserStatus
from elitetime.schemas.auth.user_schema import UserCreate, UserUpdate
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.auth.session_service import SessionService
from elitetime.services.auth.user_service import UserService
from elitetime.services.directory.ldap_client import DirectoryEntry
from elitetime.utils.data_exporter import XLSX_MEDIA_TYPE
from tests.conftest import create_user, login_as


@pytest.mark.asyncio
class TestUserService:
    """Account administration"""

    async def test_create_derives_username_from_email(self, db_session):
        user = await UserService(db_session).create_user(UserCreate(email=" Nadia.B@Elite.ma ", role=UserRole.TEAM_LEAD))

        assert user.username == "nadia.b"
        assert user.email == "nadia.b@elite.ma"
        names = await PermissionService(db_session).get_effective_permission_names(user)
        assert set(names) == role_default_permissions(UserRole.TEAM_LEAD)

    async def test_duplicate_email(self, db_session):
        service = UserService(db_session)
        await service.create_user(UserCreate(email="nadia@elite.ma"))

        with pytest.raises(InvalidOperationError):
            await service.create_user(UserCreate(email="nadia@elite.ma", username="other"))

    async def test_promotion_adds_new_role_defaults(self, db_session):
        employee = await create_user(db_session, "emp")

        promoted = await UserService(db_session).update_user(employee.id, UserUpdate(role=UserRole.MANAGER))

        names = await PermissionService(db_session).get_effective_permission_names(promoted)
        assert set(names) == role_default_permissions(UserRole.MANAGER)

    async def test_soft_delete_closes_sessions(self, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        employee = await create_user(db_session, "emp")
        await SessionService(db_session).create_session(employee)

        deleted = await UserService(db_session).delete_user(employee.id, deleted_by=admin.id)

        assert deleted.status == UserStatus.DELETED
        sessions = (await db_session.execute(
            select(UserSession).where(UserSession.user_id == employee.id)
        )).scalars().all()
        assert sessions == []

    async def test_cannot_delete_self(self, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        with pytest.raises(InvalidOperationError):
            await UserService(db_session).delete_user(admin.id, deleted_by=admin.id)

    async def test_directory_upsert_reclaims_email_owner(self, db_session):
        legacy = await create_user(db_session, "old.login")
        entry = DirectoryEntry(
            username="new.login", email="old.login@elitetime.local", firstname="Ali", lastname="B",
            department="Finance", title="Agent",
        )

        user, created = await UserService(db_session).upsert_from_directory(entry)

        assert created is False
        assert user.id == legacy.id
        assert user.username == "new.login"


@pytest.mark.asyncio
class TestUserEndpoints:
    """User routes guarded by employee permissions"""

    async def test_admin_creates_and_lists(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await login_as(client, db_session, admin)

        created = await client.post("/api/admin/users/", json={"email": "nadia@elite.ma", "department": "Finance"})
        listed = await client.get("/api/admin/users/", params={"department": "Finance"})

        assert created.status_code == status.HTTP_200_OK
        assert created.json()["username"] == "nadia"
        assert [u["username"] for u in listed.json()["data"]] == ["nadia"]

    async def test_manager_can_list_but_not_create(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        await login_as(client, db_session, manager)

        listed = await client.get("/api/admin/users/")
        created = await client.post("/api/admin/users/", json={"email": "nadia@elite.ma"})

        assert listed.status_code == status.HTTP_200_OK
        assert created.status_code == status.HTTP_403_FORBIDDEN

    async def test_invalid_email(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await login_as(client, db_session, admin)

        response = await client.post("/api/admin/users/", json={"email": "not-an-email"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_export(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        await login_as(client, db_session, manager)

        response = await client.get("/api/admin/users/export")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith(XLSX_MEDIA_TYPE)

    async def test_delete(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        employee = await create_user(db_session, "emp")
        await login_as(client, db_session, admin)

        response = await client.delete(f"/api/admin/users/{employee.id}")

        assert response.json() == {"message": "Utilisateur supprimé", "success": True}
        await db_session.refresh(employee)
        assert employee.status == UserStatus.DELETED
