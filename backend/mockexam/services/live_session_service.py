import asyncio
import logging
from functools import lru_cache
from typing import Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from mockexam.config import get_settings
from mockexam.models.exam_session import ExamSession
from mockexam.services.exam_service import ExamService, get_exam_service
from mockexam.utils.exceptions import ExamError
from mockexam.utils.state_machine import ExamState

logger = logging.getLogger(__name__)


class LiveSessionService:
    """Drives sessions over WebSocket: one tick per interval, one ticker per session"""

    def __init__(self, exam_service: ExamService, tick_interval: float = 1.0):
        self.exam_service = exam_service
        self.tick_interval = tick_interval
        self.active_sessions: Dict[str, Dict] = {}

    async def initialize_session(self, websocket: WebSocket, session_id: str) -> bool:
        """Attach a connection to a session and send its current state"""
        try:
            session = self.exam_service.get_session(session_id)
        except ExamError as e:
            await websocket.send_json({"type": "error", "message": str(e)})
            return False

        # A newer connection replaces the previous one for the same session
        previous = self.active_sessions.pop(session_id, None)
        if previous:
            await self._stop_ticker(previous)
            if previous["websocket"] is not websocket:
                await self._close_replaced(previous["websocket"], session_id)
        self.active_sessions[session_id] = {
            "websocket": websocket,
            "ticker": None,
            "completed_sent": False,
        }

        await self._send_state(session_id, session)
        if session.status is ExamState.RUNNING:
            self._ensure_ticker(session_id)
        return True

    async def handle_message(self, websocket: WebSocket, session_id: str, message: Dict):
        """Apply one client command to the session"""
        session_info = self.active_sessions.get(session_id)
        if not session_info or session_info["websocket"] is not websocket:
            return

        message_type = message.get("type")
        if message_type == "ping":
            await websocket.send_json({"type": "pong"})
            return

        try:
            if message_type == "start":
                session = self.exam_service.start(session_id)
                self._ensure_ticker(session_id)
            elif message_type == "answer":
                session = self.exam_service.record_answer(
                    session_id,
                    message.get("section_id"),
                    int(message.get("question_number", 0)),
                    str(message.get("value", "")),
                )
            elif message_type == "go_to_question":
                session = self.exam_service.go_to_question(
                    session_id, int(message.get("question_number", 0))
                )
            elif message_type == "advance_section":
                session = self.exam_service.advance_section(session_id)
            elif message_type == "submit":
                session = self.exam_service.end_session(session_id)
            else:
                await websocket.send_json(
                    {"type": "error", "message": f"Unknown message type: {message_type}"}
                )
                return
        except (ExamError, ValueError, TypeError) as e:
            await websocket.send_json({"type": "error", "message": str(e)})
            return

        await self._send_state(session_id, session)

    def _ensure_ticker(self, session_id: str):
        session_info = self.active_sessions[session_id]
        if session_info["ticker"] is None or session_info["ticker"].done():
            session_info["ticker"] = asyncio.create_task(self._run_ticker(session_id))

    async def _run_ticker(self, session_id: str):
        """Tick the session once per interval until it stops running"""
        while True:
            await asyncio.sleep(self.tick_interval)
            try:
                session = self.exam_service.get_session(session_id)
            except ExamError:
                logger.info("Session %s discarded, stopping ticker", session_id)
                return
            if session.status is not ExamState.RUNNING:
                return

            session.tick()
            try:
                await self._send_state(session_id, session)
            except (RuntimeError, OSError, WebSocketDisconnect) as e:
                logger.warning(
                    "Could not send state for session %s, stopping ticker: %s",
                    session_id,
                    e,
                )
                return
            if session.status is ExamState.COMPLETED:
                return

    async def _send_state(self, session_id: str, session: ExamSession):
        session_info = self.active_sessions.get(session_id)
        if not session_info:
            return

        websocket = session_info["websocket"]
        snapshot = session.snapshot().model_dump(mode="json")
        await websocket.send_json({"type": "snapshot", "session": snapshot})

        if session.status is ExamState.COMPLETED and not session_info["completed_sent"]:
            session_info["completed_sent"] = True
            await websocket.send_json(
                {
                    "type": "completed",
                    "reason": session.completion_reason.value,
                    "session": snapshot,
                }
            )

    async def cleanup_session(self, session_id: str, websocket: WebSocket):
        """Stop ticking and forget the connection; the session itself stays"""
        session_info = self.active_sessions.get(session_id)
        if not session_info or session_info["websocket"] is not websocket:
            return

        del self.active_sessions[session_id]
        await self._stop_ticker(session_info)

    async def _close_replaced(self, websocket: WebSocket, session_id: str):
        try:
            await websocket.close(code=1000, reason="Replaced by a newer connection")
        except (RuntimeError, OSError) as e:
            logger.debug("Replaced connection for %s already closed: %s", session_id, e)
        logger.info("Live connection for session %s replaced", session_id)

    async def _stop_ticker(self, session_info: Dict):
        ticker: Optional[asyncio.Task] = session_info["ticker"]
        if ticker is not None and not ticker.done():
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass


@lru_cache(maxsize=1)
def get_live_session_service() -> LiveSessionService:
    return LiveSessionService(
        get_exam_service(), tick_interval=get_settings().tick_interval_seconds
    )
