"""
In-process publish/subscribe relay for browser notifications.

One topic per event kind. A subscription lives as long as the connection
that made it: ``unsubscribe_all`` is called when the socket closes. Nothing
is persisted or replayed.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import WebSocket

from elitetime.models.shared.enums import UserRole

logger = logging.getLogger(__name__)

LATE_ALERT = "employee_late_alert"
BREAK_REMINDER = "break_reminder"
POINTAGE_UPDATE = "pointage_update"

TOPICS = (LATE_ALERT, BREAK_REMINDER, POINTAGE_UPDATE)

Predicate = Callable[["Connection", Dict[str, Any]], bool]


@dataclass(eq=False)
class Connection:
    """A subscribed client. ``websocket`` is None for in-process listeners."""
    user_id: int
    role: UserRole
    websocket: Optional[WebSocket] = None
    received: List[Dict[str, Any]] = field(default_factory=list)

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        message = {"event": event, "data": data}
        if self.websocket is None:
            self.received.append(message)
            return
        await self.websocket.send_text(json.dumps(message, default=_json_default))


def _json_default(value: Any):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def managers_only(connection: Connection, payload: Dict[str, Any]) -> bool:
    return connection.role in (UserRole.MANAGER, UserRole.ADMIN)


def addressed_user(connection: Connection, payload: Dict[str, Any]) -> bool:
    return payload.get("userId") == connection.user_id


# Who receives each topic; topics missing here go to every subscriber
TOPIC_AUDIENCE: Dict[str, Predicate] = {
    LATE_ALERT: managers_only,
    BREAK_REMINDER: addressed_user,
}


class RealtimeHub:
    def __init__(self):
        self._subscribers: Dict[str, List[Connection]] = {topic: [] for topic in TOPICS}

    def subscribe(self, topic: str, connection: Connection) -> None:
        if topic not in self._subscribers:
            raise ValueError(f"Unknown topic: {topic}")
        if connection not in self._subscribers[topic]:
            self._subscribers[topic].append(connection)

    def subscribe_all(self, connection: Connection) -> None:
        for topic in TOPICS:
            self.subscribe(topic, connection)

    def unsubscribe(self, topic: str, connection: Connection) -> None:
        subscribers = self._subscribers.get(topic, [])
        if connection in subscribers:
            subscribers.remove(connection)

    def unsubscribe_all(self, connection: Connection) -> None:
        for topic in TOPICS:
            self.unsubscribe(topic, connection)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    async def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """Fan a payload out to the topic's audience. Returns the number of deliveries."""
        if topic not in self._subscribers:
            raise ValueError(f"Unknown topic: {topic}")

        audience = TOPIC_AUDIENCE.get(topic)
        delivered = 0
        for connection in list(self._subscribers[topic]):
            if audience is not None and not audience(connection, payload):
                continue
            try:
                await connection.send(topic, payload)
                delivered += 1
            except Exception as e:
                # The socket is gone; drop every subscription it held
                logger.warning(f"WEBSOCKET: dropping connection of user {connection.user_id}: {e}")
                self.unsubscribe_all(connection)

        logger.debug(f"Published {topic} to {delivered} subscribers")
        return delivered
