import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from mockexam.services.live_session_service import (
    LiveSessionService,
    get_live_session_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/{session_id}")
async def websocket_session(
    websocket: WebSocket,
    session_id: str,
    live_service: LiveSessionService = Depends(get_live_session_service),
):
    """WebSocket endpoint that ticks a session and streams its state"""
    await websocket.accept()

    try:
        if not await live_service.initialize_session(websocket, session_id):
            await websocket.close()
            return

        while websocket.application_state is WebSocketState.CONNECTED:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json(
                    {"type": "error", "message": "Messages must be JSON objects"}
                )
                continue
            if not isinstance(message, dict):
                await websocket.send_json(
                    {"type": "error", "message": "Messages must be JSON objects"}
                )
                continue

            await live_service.handle_message(websocket, session_id, message)

    except WebSocketDisconnect:
        logger.info("Live connection for session %s closed", session_id)
    finally:
        await live_service.cleanup_session(session_id, websocket)
