import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select

from elitetime.core.exceptions import InvalidOperationError, NotFoundError, UnexpectedError
from elitetime.models.auth.user import User
from elitetime.models.organization.position import Position
from elitetime.models.shared.enums import UserRole, UserStatus
from elitetime.schemas.organization.department_schema import DepartmentCreate, DepartmentUpdate
from elitetime.schemas.organization.position_schema import PositionCreate, PositionUpdate
from elitetime.services.organization.department_service import DepartmentService
from elitetime.services.organization.position_service import PositionService
from tests.conftest import create_user, login_as


async def _departments_of(session, *users):
    for user in users:
        await session.refresh(user)
    return [user.department for user in users]


@pytest.mark.asyncio
class TestDepartmentService:
    """Department lifecycle"""

    async def test_create_and_duplicate(self, db_session):
        service = DepartmentService(db_session)

        created = await service.create_department(DepartmentCreate(name="  Finance "))

        assert created.name == "Finance"
        with pytest.raises(InvalidOperationError):
            await service.create_department(DepartmentCreate(name="Finance"))

    async def test_rename_moves_users(self, db_session):
        service = DepartmentService(db_session)
        dept = await service.create_department(DepartmentCreate(name="Finance"))
        alice = await create_user(db_session, "alice", department="Finance")
        bruno = await create_user(db_session, "bruno", department="Finance", status=UserStatus.INACTIVE)
        other = await create_user(db_session, "other", department="Ventes")

        renamed = await service.update_department(dept.id, DepartmentUpdate(name="Comptabilité"))

        assert renamed.name == "Comptabilité"
        assert await _departments_of(db_session, alice, bruno, other) == ["Comptabilité", "Comptabilité", "Ventes"]

    async def test_rename_is_atomic(self, db_session, monkeypatch):
        service = DepartmentService(db_session)
        dept = await service.create_department(DepartmentCreate(name="Finance"))
        alice = await create_user(db_session, "alice", department="Finance")
        original = DepartmentService._rename_department_references

        async def move_then_fail(self, old_name, new_name):
            await original(self, old_name, new_name)
            raise RuntimeError("connection lost")

        monkeypatch.setattr(DepartmentService, "_rename_department_references", move_then_fail)

        with pytest.raises(UnexpectedError):
            await service.update_department(dept.id, DepartmentUpdate(name="Comptabilité"))

        stored = await service.get_department(dept.id)
        assert stored.name == "Finance"
        assert await _departments_of(db_session, alice) == ["Finance"]

    async def test_rename_to_existing_name(self, db_session):
        service = DepartmentService(db_session)
        finance = await service.create_department(DepartmentCreate(name="Finance"))
        await service.create_department(DepartmentCreate(name="Ventes"))

        with pytest.raises(InvalidOperationError):
            await service.update_department(finance.id, DepartmentUpdate(name="Ventes"))

    async def test_description_only_update_keeps_users(self, db_session):
        service = DepartmentService(db_session)
        dept = await service.create_department(DepartmentCreate(name="Finance"))
        alice = await create_user(db_session, "alice", department="Finance")

        updated = await service.update_department(dept.id, DepartmentUpdate(description="Trésorerie"))

        assert updated.description == "Trésorerie"
        assert await _departments_of(db_session, alice) == ["Finance"]

    async def test_delete_refused_with_active_users(self, db_session):
        service = DepartmentService(db_session)
        dept = await service.create_department(DepartmentCreate(name="Finance"))
        await create_user(db_session, "alice", department="Finance")

        with pytest.raises(InvalidOperationError):
            await service.delete_department(dept.id)

    async def test_delete_removes_positions(self, db_session):
        service = DepartmentService(db_session)
        dept = await service.create_department(DepartmentCreate(name="Finance"))
        await create_user(db_session, "gone", department="Finance", status=UserStatus.DELETED)
        await PositionService(db_session).create_position(PositionCreate(name="Comptable", department_id=dept.id))

        assert await service.delete_department(dept.id) is True
        assert await service.get_department(dept.id) is None
        assert (await db_session.execute(select(Position))).scalars().all() == []

    async def test_delete_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            await DepartmentService(db_session).delete_department(4242)


@pytest.mark.asyncio
class TestPositionService:
    """Positions belong to a department"""

    async def test_create_requires_department(self, db_session):
        with pytest.raises(NotFoundError):
            await PositionService(db_session).create_position(PositionCreate(name="Comptable", department_id=4242))

    async def test_unique_per_department(self, db_session):
        departments = DepartmentService(db_session)
        finance = await departments.create_department(DepartmentCreate(name="Finance"))
        sales = await departments.create_department(DepartmentCreate(name="Ventes"))
        service = PositionService(db_session)

        await service.create_position(PositionCreate(name="Assistant", department_id=finance.id))
        other = await service.create_position(PositionCreate(name="Assistant", department_id=sales.id))

        assert other.department_id == sales.id
        with pytest.raises(InvalidOperationError):
            await service.create_position(PositionCreate(name="Assistant", department_id=finance.id))
        with pytest.raises(InvalidOperationError):
            await service.update_position(other.id, PositionUpdate(department_id=finance.id))

    async def test_filter_by_department(self, db_session):
        departments = DepartmentService(db_session)
        finance = await departments.create_department(DepartmentCreate(name="Finance"))
        sales = await departments.create_department(DepartmentCreate(name="Ventes"))
        service = PositionService(db_session)
        await service.create_position(PositionCreate(name="Comptable", department_id=finance.id))
        await service.create_position(PositionCreate(name="Commercial", department_id=sales.id))

        names = [p.name for p in await service.get_positions(department_id=sales.id)]

        assert names == ["Commercial"]


@pytest.mark.asyncio
class TestOrganizationEndpoints:
    """Department and position routes"""

    async def test_admin_manages_departments(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await login_as(client, db_session, admin)

        created = await client.post("/api/departments/", json={"name": "Finance"})
        listed = await client.get("/api/departments/")

        assert created.status_code == status.HTTP_200_OK
        assert listed.json()["count"] == 1
        assert listed.json()["data"][0]["name"] == "Finance"

    async def test_manager_can_read_but_not_write(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        await login_as(client, db_session, manager)

        listed = await client.get("/api/departments/")
        created = await client.post("/api/departments/", json={"name": "Finance"})

        assert listed.status_code == status.HTTP_200_OK
        assert created.status_code == status.HTTP_403_FORBIDDEN

    async def test_short_name_is_invalid(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        await login_as(client, db_session, admin)

        response = await client.post("/api/departments/", json={"name": "F"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_delete_with_users_answers_400(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        dept = await DepartmentService(db_session).create_department(DepartmentCreate(name="Finance"))
        await create_user(db_session, "alice", department="Finance")
        await login_as(client, db_session, admin)

        response = await client.delete(f"/api/departments/{dept.id}")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False

    async def test_positions_route(self, client: AsyncClient, db_session):
        admin = await create_user(db_session, "root", role=UserRole.ADMIN)
        dept = await DepartmentService(db_session).create_department(DepartmentCreate(name="Finance"))
        await login_as(client, db_session, admin)

        created = await client.post("/api/positions/", json={"name": "Comptable", "department_id": dept.id})
        listed = await client.get("/api/positions/", params={"department_id": dept.id})

        assert created.status_code == status.HTTP_200_OK
        assert [p["name"] for p in listed.json()] == ["Comptable"]
