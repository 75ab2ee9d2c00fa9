"""WebSocket endpoint carrying room events as {"event": ..., "data": ...} frames."""
import json
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from docchat.services.room_coordinator import RoomCoordinator
from docchat.utils.logger import logger

router = APIRouter()


class WebSocketTransport:
    """Adapts a FastAPI WebSocket to the coordinator's transport protocol."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send_json(self, data: Dict[str, Any]) -> None:
        await self.websocket.send_json(data)


@router.websocket("/ws")
async def room_socket(websocket: WebSocket):
    coordinator: RoomCoordinator = websocket.app.state.coordinator
    await websocket.accept()
    session = await coordinator.connect(WebSocketTransport(websocket))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                session.emit("error", {"message": "Malformed event frame"})
                continue
            if not isinstance(frame, dict):
                session.emit("error", {"message": "Malformed event frame"})
                continue
            await coordinator.handle_event(session, frame.get("event"), frame.get("data"))
    except WebSocketDisconnect:
        logger.info("WebSocket closed by client", extra={"session_id": session.session_id})
    finally:
        await coordinator.disconnect(session)
