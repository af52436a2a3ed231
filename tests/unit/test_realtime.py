import pytest
from types import SimpleNamespace

from elitetime.models.shared.enums import UserRole
from elitetime.realtime.hub import BREAK_REMINDER, LATE_ALERT, POINTAGE_UPDATE, Connection, RealtimeHub
from elitetime.realtime.socket import EmitRejected, authorize_emit


class BrokenSocket:
    async def send_text(self, text):
        raise RuntimeError("socket closed")


@pytest.fixture
def hub():
    return RealtimeHub()


def _connect(hub, user_id, role):
    connection = Connection(user_id=user_id, role=role)
    hub.subscribe_all(connection)
    return connection


class TestRealtimeHub:
    """Topic fan-out and audiences"""

    async def test_late_alert_reaches_managers_only(self, hub):
        employee = _connect(hub, 1, UserRole.EMPLOYEE)
        manager = _connect(hub, 2, UserRole.MANAGER)
        admin = _connect(hub, 3, UserRole.ADMIN)

        delivered = await hub.publish(LATE_ALERT, {"userId": 1, "userName": "Ali", "entryTime": "09:10"})

        assert delivered == 2
        assert employee.received == []
        assert manager.received[0]["event"] == LATE_ALERT
        assert admin.received[0]["data"]["userName"] == "Ali"

    async def test_break_reminder_reaches_addressed_user(self, hub):
        first = _connect(hub, 1, UserRole.EMPLOYEE)
        second = _connect(hub, 2, UserRole.EMPLOYEE)

        await hub.publish(BREAK_REMINDER, {"userId": 2, "message": "Pause"})

        assert first.received == []
        assert second.received == [{"event": BREAK_REMINDER, "data": {"userId": 2, "message": "Pause"}}]

    async def test_pointage_update_is_broadcast(self, hub):
        connections = [_connect(hub, i, UserRole.EMPLOYEE) for i in range(3)]
        assert await hub.publish(POINTAGE_UPDATE, {"userId": 0, "action": "entry"}) == 3
        assert all(len(c.received) == 1 for c in connections)

    async def test_unsubscribe_all(self, hub):
        connection = _connect(hub, 1, UserRole.MANAGER)
        hub.unsubscribe_all(connection)
        assert hub.subscriber_count(LATE_ALERT) == 0
        assert await hub.publish(LATE_ALERT, {"userId": 1}) == 0

    async def test_failed_send_drops_connection(self, hub):
        broken = Connection(user_id=1, role=UserRole.MANAGER, websocket=BrokenSocket())
        hub.subscribe_all(broken)
        healthy = _connect(hub, 2, UserRole.MANAGER)

        delivered = await hub.publish(POINTAGE_UPDATE, {"userId": 1, "action": "exit"})

        assert delivered == 1
        assert hub.subscriber_count(POINTAGE_UPDATE) == 1
        assert len(healthy.received) == 1

    async def test_unknown_topic(self, hub):
        with pytest.raises(ValueError):
            await hub.publish("unknown", {})


class TestAuthorizeEmit:
    """Events sent by browser clients"""

    employee = SimpleNamespace(id=7, role=UserRole.EMPLOYEE)
    manager = SimpleNamespace(id=8, role=UserRole.MANAGER)

    def test_employee_reports_own_pointage(self):
        payload = authorize_emit(self.employee, POINTAGE_UPDATE, {"action": "entry"})
        assert payload["userId"] == 7
        assert "timestamp" in payload

    def test_employee_cannot_report_for_someone_else(self):
        with pytest.raises(EmitRejected):
            authorize_emit(self.employee, POINTAGE_UPDATE, {"userId": 9, "action": "entry"})

    def test_invalid_action(self):
        with pytest.raises(EmitRejected):
            authorize_emit(self.manager, POINTAGE_UPDATE, {"userId": 9, "action": "pause"})

    def test_manager_only_topics(self):
        with pytest.raises(EmitRejected):
            authorize_emit(self.employee, LATE_ALERT, {"userId": 7})
        payload = authorize_emit(self.manager, BREAK_REMINDER, {"userId": 7, "message": "Pause"})
        assert payload["message"] == "Pause"

    def test_user_id_required(self):
        with pytest.raises(EmitRejected):
            authorize_emit(self.manager, BREAK_REMINDER, {"message": "Pause"})

    def test_unknown_topic_and_bad_data(self):
        with pytest.raises(EmitRejected):
            authorize_emit(self.manager, "shutdown", {})
        with pytest.raises(EmitRejected):
            authorize_emit(self.manager, POINTAGE_UPDATE, ["entry"])
