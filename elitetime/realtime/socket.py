"""
WebSocket entry point of the realtime relay.

Clients authenticate with the session cookie (or a ``token`` query
parameter), are subscribed to every topic, and may emit events as
``{"event": <topic>, "data": {...}}``.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.core.config import settings
from elitetime.core.database import get_async_session
from elitetime.core.exceptions import UnauthenticatedError
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import UserRole
from elitetime.realtime.hub import BREAK_REMINDER, LATE_ALERT, POINTAGE_UPDATE, TOPICS, Connection, RealtimeHub
from elitetime.services.auth.session_service import SessionService
from elitetime.utils.time_utils import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)

UNAUTHENTICATED_CLOSE_CODE = 4401
MANAGER_ONLY_TOPICS = (LATE_ALERT, BREAK_REMINDER)


class EmitRejected(Exception):
    pass


def authorize_emit(user: User, topic: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate an event sent by a client and return the payload to publish."""
    if topic not in TOPICS:
        raise EmitRejected(f"Événement inconnu: {topic}")
    if not isinstance(data, dict):
        raise EmitRejected("Données invalides")

    is_manager = user.role in (UserRole.MANAGER, UserRole.ADMIN)
    if topic in MANAGER_ONLY_TOPICS and not is_manager:
        raise EmitRejected("Accès refusé")

    user_id = data.get("userId")
    if topic == POINTAGE_UPDATE:
        if not is_manager and user_id not in (None, user.id):
            raise EmitRejected("Accès refusé")
        if data.get("action") not in ("entry", "exit"):
            raise EmitRejected("Action invalide")
        user_id = user.id if user_id is None else user_id
    if not isinstance(user_id, int):
        raise EmitRejected("userId requis")

    return {**data, "userId": user_id, "timestamp": utcnow().isoformat()}


def _token(websocket: WebSocket) -> Optional[str]:
    return websocket.cookies.get(settings.SESSION_COOKIE_NAME) or websocket.query_params.get("token")


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, session: AsyncSession = Depends(get_async_session)):
    try:
        user, _ = await SessionService(session).resolve(_token(websocket))
    except UnauthenticatedError:
        logger.warning("WEBSOCKET: unauthenticated connection refused")
        await websocket.close(code=UNAUTHENTICATED_CLOSE_CODE)
        return

    hub: RealtimeHub = websocket.app.state.realtime_hub
    await websocket.accept()
    connection = Connection(user_id=user.id, role=user.role, websocket=websocket)
    hub.subscribe_all(connection)
    logger.info(f"WEBSOCKET: user {user.id} ({user.role.value}) connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                if not isinstance(message, dict):
                    raise EmitRejected("Message invalide")
                payload = authorize_emit(user, message.get("event"), message.get("data") or {})
            except (ValueError, EmitRejected) as e:
                await connection.send("error", {"message": str(e)})
                continue
            await hub.publish(message["event"], payload)
    except WebSocketDisconnect:
        pass
    finally:
        hub.unsubscribe_all(connection)
        logger.info(f"WEBSOCKET: user {user.id} disconnected")
