import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select

from elitetime.core.config import settings
from elitetime.models.auth.activity_log import ActivityLog
from elitetime.models.auth.session import UserSession
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import ActivityType, UserRole, UserStatus
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.directory.ldap_client import DirectoryEntry
from tests.conftest import create_user, login_as


def _entry(username="jdupont", **overrides):
    data = dict(
        username=username,
        email=f"{username}@elite.ma",
        firstname="Jean",
        lastname="Dupont",
        department="Finance",
        title="Comptable",
    )
    data.update(overrides)
    return DirectoryEntry(**data)


@pytest.mark.asyncio
class TestAuth:
    """Test authentication endpoints"""

    async def test_login_provisions_user_and_sets_cookie(self, client: AsyncClient, directory, db_session):
        """First login creates the user from the directory"""
        directory.add(_entry(), password="Passw0rd!")

        response = await client.post("/api/login", json={"username": "jdupont", "password": "Passw0rd!"})
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["success"] is True
        assert data["user"]["username"] == "jdupont"
        assert data["user"]["role"] == UserRole.EMPLOYEE.value
        assert data["user"]["department"] == "Finance"
        assert "password" not in data["user"]

        set_cookie = response.headers["set-cookie"]
        assert settings.SESSION_COOKIE_NAME in set_cookie
        assert "HttpOnly" in set_cookie

        user = (await db_session.execute(select(User).where(User.username == "jdupont"))).scalar_one()
        assert user.position == "Comptable"
        sessions = (await db_session.execute(select(UserSession).where(UserSession.user_id == user.id))).scalars().all()
        assert len(sessions) == 1

    async def test_login_invalid_credentials(self, client: AsyncClient, directory):
        """Unknown user and wrong password both answer 401"""
        directory.add(_entry(), password="Passw0rd!")

        wrong_password = await client.post("/api/login", json={"username": "jdupont", "password": "nope"})
        unknown_user = await client.post("/api/login", json={"username": "ghost", "password": "nope"})

        assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
        assert unknown_user.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong_password.json()["success"] is False

    async def test_login_missing_password(self, client: AsyncClient):
        response = await client.post("/api/login", json={"username": "jdupont", "password": ""})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_login_refused_for_disabled_directory_account(self, client: AsyncClient, directory):
        directory.add(_entry(active=False), password="Passw0rd!")

        response = await client.post("/api/login", json={"username": "jdupont", "password": "Passw0rd!"})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_login_refreshes_existing_profile(self, client: AsyncClient, directory, db_session):
        """Directory attributes win over stored ones; role and grants are kept"""
        manager = await create_user(db_session, "jdupont", role=UserRole.MANAGER, department="Ventes")
        directory.add(_entry(department="Finance"), password="Passw0rd!")

        response = await client.post("/api/login", json={"username": "jdupont", "password": "Passw0rd!"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["role"] == UserRole.MANAGER.value
        assert response.json()["user"]["department"] == "Finance"
        names = await PermissionService(db_session).get_effective_permission_names(manager)
        assert "validate_absences" in names

    async def test_me_and_logout(self, client: AsyncClient, db_session):
        user = await create_user(db_session, "amina")
        token = await login_as(client, db_session, user)

        me = await client.get("/api/me")
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["user"]["id"] == user.id

        logout = await client.post("/api/logout")
        assert logout.status_code == status.HTTP_200_OK
        assert logout.json() == {"success": True}

        remaining = await db_session.execute(select(UserSession).where(UserSession.session_token == token))
        assert remaining.scalar_one_or_none() is None

        client.cookies.set(settings.SESSION_COOKIE_NAME, token)
        me_after = await client.get("/api/me")
        assert me_after.json() == {"user": None}

        logs = (await db_session.execute(
            select(ActivityLog).where(ActivityLog.type == ActivityType.AUTH)
        )).scalars().all()
        assert [log.action for log in logs] == ["Déconnexion"]

    async def test_protected_endpoint_requires_session(self, client: AsyncClient):
        response = await client.get("/api/user/permissions")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_inactive_user_session_is_refused(self, client: AsyncClient, db_session):
        user = await create_user(db_session, "karim")
        await login_as(client, db_session, user)
        user.status = UserStatus.INACTIVE
        await db_session.commit()

        response = await client.get("/api/user/permissions")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_login_rate_limit(self, app, client: AsyncClient):
        """The login limiter answers 429 with Retry-After once exhausted"""
        limiter = app.state.login_rate_limiter
        limiter.max_requests = 2

        for _ in range(2):
            response = await client.post("/api/login", json={"username": "ghost", "password": "x"})
            assert response.status_code == status.HTTP_401_UNAUTHORIZED

        response = await client.post("/api/login", json={"username": "ghost", "password": "x"})
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert int(response.headers["Retry-After"]) >= 1
        assert "resetTime" in response.json()
