from datetime import date

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select

from elitetime.core.exceptions import InvalidOperationError, NotFoundError
from elitetime.models.auth.activity_log import ActivityLog
from elitetime.models.hr.absence import Absence
from elitetime.models.shared.enums import AbsenceStatus, AbsenceType, ActivityType, UserRole
from elitetime.schemas.hr.absence_schema import AbsenceCreate, ManagedLeaveCreate, ManagedLeaveUpdate
from elitetime.services.hr.absence_service import AbsenceService
from tests.conftest import create_user, login_as


def _leave(user_id, start, end, **overrides):
    data = dict(user_id=user_id, type=AbsenceType.CONGE, start_date=start, end_date=end)
    data.update(overrides)
    return ManagedLeaveCreate(**data)


@pytest.mark.asyncio
class TestAbsenceRequests:
    """Employee requests and manager decisions"""

    async def test_request_is_pending(self, db_session):
        employee = await create_user(db_session, "emp")

        absence = await AbsenceService(db_session).request_absence(
            employee, AbsenceCreate(type=AbsenceType.MALADIE, start_date=date(2026, 4, 1), end_date=date(2026, 4, 2))
        )

        assert absence.status == AbsenceStatus.PENDING
        assert absence.validated_by is None

    async def test_approve(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        absence = await service.request_absence(
            employee, AbsenceCreate(type=AbsenceType.CONGE, start_date=date(2026, 4, 1), end_date=date(2026, 4, 3))
        )

        approved = await service.approve_absence(absence.id, manager)

        assert approved.status == AbsenceStatus.APPROVED
        assert approved.validated_by == manager.id

    async def test_reject_records_reason(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp", firstname="Sara")
        service = AbsenceService(db_session)
        absence = await service.request_absence(
            employee, AbsenceCreate(type=AbsenceType.CONGE, start_date=date(2026, 4, 1), end_date=date(2026, 4, 3))
        )

        rejected = await service.reject_absence(absence.id, manager, "Période chargée")

        assert rejected.status == AbsenceStatus.REJECTED
        assert rejected.comment == "Période chargée"
        log = (await db_session.execute(
            select(ActivityLog).where(ActivityLog.action == "Rejet de congé")
        )).scalar_one()
        assert log.type == ActivityType.ABSENCE
        assert log.user_id == manager.id
        assert "Sara Test" in log.details
        assert "Motif: Période chargée" in log.details

    async def test_decide_unknown_absence(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        with pytest.raises(NotFoundError):
            await AbsenceService(db_session).approve_absence(4242, manager)


@pytest.mark.asyncio
class TestManagedLeave:
    """Leaves created by managers"""

    async def test_create_is_approved_by_default(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")

        leave = await AbsenceService(db_session).create_managed_leave(
            _leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager
        )

        assert leave.status == AbsenceStatus.APPROVED
        assert leave.validated_by == manager.id

    async def test_overlap_is_refused(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        await service.create_managed_leave(_leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager)

        with pytest.raises(InvalidOperationError):
            await service.create_managed_leave(
                _leave(employee.id, date(2026, 5, 8), date(2026, 5, 12), type=AbsenceType.MALADIE), manager
            )

        count = len((await db_session.execute(select(Absence))).scalars().all())
        assert count == 1

    async def test_pending_request_blocks_leave(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        await service.request_absence(
            employee, AbsenceCreate(type=AbsenceType.AUTRE, start_date=date(2026, 5, 6), end_date=date(2026, 5, 6))
        )

        with pytest.raises(InvalidOperationError):
            await service.create_managed_leave(_leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager)

    async def test_rejected_absence_does_not_overlap(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        request = await service.request_absence(
            employee, AbsenceCreate(type=AbsenceType.CONGE, start_date=date(2026, 5, 4), end_date=date(2026, 5, 8))
        )
        await service.reject_absence(request.id, manager)

        leave = await service.create_managed_leave(_leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager)

        assert leave.status == AbsenceStatus.APPROVED

    async def test_adjacent_leaves_are_allowed(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        await service.create_managed_leave(_leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager)

        second = await service.create_managed_leave(_leave(employee.id, date(2026, 5, 9), date(2026, 5, 10)), manager)

        assert second.id is not None

    async def test_update_checks_overlap_against_other_leaves(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        first = await service.create_managed_leave(_leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager)
        second = await service.create_managed_leave(_leave(employee.id, date(2026, 6, 1), date(2026, 6, 5)), manager)

        moved = await service.update_managed_leave(first.id, ManagedLeaveUpdate(end_date=date(2026, 5, 15)), manager)
        assert moved.end_date == date(2026, 5, 15)

        with pytest.raises(InvalidOperationError):
            await service.update_managed_leave(second.id, ManagedLeaveUpdate(start_date=date(2026, 5, 14)), manager)

    async def test_update_rejects_inverted_dates(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        leave = await service.create_managed_leave(_leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager)

        with pytest.raises(InvalidOperationError):
            await service.update_managed_leave(leave.id, ManagedLeaveUpdate(end_date=date(2026, 5, 1)), manager)

    async def test_delete(self, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER)
        employee = await create_user(db_session, "emp")
        service = AbsenceService(db_session)
        leave = await service.create_managed_leave(_leave(employee.id, date(2026, 5, 4), date(2026, 5, 8)), manager)

        assert await service.delete_managed_leave(leave.id, manager) is True
        assert await service.get_absence(leave.id) is None
        with pytest.raises(NotFoundError):
            await service.delete_managed_leave(leave.id, manager)


@pytest.mark.asyncio
class TestAbsenceEndpoints:
    """Absence routes for employees and managers"""

    async def test_employee_requests_and_lists(self, client: AsyncClient, db_session):
        employee = await create_user(db_session, "emp")
        await login_as(client, db_session, employee)

        created = await client.post(
            "/api/absences/", json={"type": "conge", "start_date": "2026-04-01", "end_date": "2026-04-03"}
        )
        listed = await client.get("/api/absences/")

        assert created.status_code == status.HTTP_200_OK
        assert created.json()["status"] == "pending"
        assert [a["id"] for a in listed.json()] == [created.json()["id"]]

    async def test_inverted_dates_are_invalid(self, client: AsyncClient, db_session):
        employee = await create_user(db_session, "emp")
        await login_as(client, db_session, employee)

        response = await client.post(
            "/api/absences/", json={"type": "conge", "start_date": "2026-04-03", "end_date": "2026-04-01"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_manager_sees_only_team_absences(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER, department="Finance")
        member = await create_user(db_session, "member", department="Finance")
        outsider = await create_user(db_session, "outsider", department="Ventes")
        service = AbsenceService(db_session)
        for user in (member, outsider):
            await service.request_absence(
                user, AbsenceCreate(type=AbsenceType.CONGE, start_date=date(2026, 4, 1), end_date=date(2026, 4, 2))
            )
        await login_as(client, db_session, manager)

        response = await client.get("/api/manager/absences")

        assert response.status_code == status.HTTP_200_OK
        assert [a["user_id"] for a in response.json()] == [member.id]

    async def test_manager_overlap_answers_400(self, client: AsyncClient, db_session):
        manager = await create_user(db_session, "manager", role=UserRole.MANAGER, department="Finance")
        member = await create_user(db_session, "member", department="Finance")
        await login_as(client, db_session, manager)
        body = {"user_id": member.id, "type": "conge", "start_date": "2026-05-04", "end_date": "2026-05-08"}

        first = await client.post("/api/manager/leaves", json=body)
        second = await client.post("/api/manager/leaves", json=body)

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_400_BAD_REQUEST
        assert second.json()["success"] is False

    async def test_employee_cannot_decide(self, client: AsyncClient, db_session):
        employee = await create_user(db_session, "emp")
        absence = await AbsenceService(db_session).request_absence(
            employee, AbsenceCreate(type=AbsenceType.CONGE, start_date=date(2026, 4, 1), end_date=date(2026, 4, 2))
        )
        await login_as(client, db_session, employee)

        response = await client.post(f"/api/manager/absences/{absence.id}/approve")

        assert response.status_code == status.HTTP_403_FORBIDDEN
