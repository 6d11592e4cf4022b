"""WebSocket endpoint for realtime task events."""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from taskhub.config import settings
from taskhub.realtime.hub import BroadcastHub
from taskhub.schemas.realtime import AuthMessage, JoinTaskMessage, PingMessage, client_message_adapter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket(settings.WS_PATH)
async def task_events(websocket: WebSocket):
    """Client protocol: ``auth`` binds the socket to a user, ``join_task`` is
    recorded, ``ping`` is answered with ``pong``. Anything else is ignored."""
    hub: BroadcastHub = websocket.app.state.hub
    await websocket.accept()
    logger.info("WebSocket connected")

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            raw = frame.get("text")
            if raw is None:
                logger.warning("Ignoring non-text WebSocket frame")
                continue
            try:
                message = client_message_adapter.validate_json(raw)
            except PydanticValidationError:
                logger.warning("Ignoring unparseable WebSocket message: %.200s", raw)
                continue

            if isinstance(message, AuthMessage):
                hub.registry.register(message.user_id, websocket)
                logger.info("WebSocket authenticated as %s", message.user_id)
                await websocket.send_json({"type": "auth_success"})
            elif isinstance(message, JoinTaskMessage):
                hub.registry.join_task(websocket, message.task_id)
            elif isinstance(message, PingMessage):
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        user_id = hub.registry.unregister(websocket)
        logger.info("WebSocket disconnected (user=%s)", user_id)
