"""
Session gateway.

Responsibilities:
- Owns VoiceSession lifecycle
- Tracks connection_status independently of reducer state
- Decodes inbound JSON envelopes -> reducer events
- Logs and drops malformed and unknown messages (connection stays open)
- Forwards events into runtime

NOT responsible for:
- Executing commands
- Pipeline stages or capability adapters
- Any state machine logic
"""

from __future__ import annotations

import time
from uuid import uuid4

from constants import (
    LOG_PREVIEW_CHARS,
    MSG_AUDIO_CHUNK,
    MSG_PING,
    MSG_START_RECORDING,
    MSG_STOP_RECORDING,
)
from observability.logger import log_event
from orchestrator.events import (
    AudioChunk,
    Event,
    EventType,
    Ping,
    StartRecording,
    StopRecording,
)
from orchestrator.pipeline import StreamingOrchestrator
from orchestrator.runtime import Runtime
from protocol.messages import ProtocolError, decode_client_message
from session.connection_status import ConnectionStatus
from session.registry import SessionTable
from session.voice_session import SendText, VoiceSession


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def _preview(payload: str | bytes) -> str:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    return payload[:LOG_PREVIEW_CHARS]


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one connection == one voice session."""

    def __init__(
        self,
        *,
        orchestrator: StreamingOrchestrator,
        sessions: SessionTable | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._sessions = sessions if sessions is not None else SessionTable()
        self.session: VoiceSession | None = None

    async def on_ws_connect(self, send_text: SendText) -> VoiceSession:
        """Called when a WebSocket connection is established."""
        session = VoiceSession(
            session_id=_new_session_id(),
            connection_status=ConnectionStatus.UP,
            send_text=send_text,
        )
        session.runtime = Runtime(session=session, orchestrator=self._orchestrator)

        self._sessions.add(session)
        self.session = session

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_CONNECTED",
            "session_id": session.session_id,
            "active_sessions": len(self._sessions),
        })
        return session

    async def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Called when the WebSocket disconnects."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return

        session = self.session
        session.connection_status = ConnectionStatus.DOWN

        if session.runtime is not None:
            await session.runtime.shutdown(reason=reason)

        self._sessions.remove(session.session_id)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_DISCONNECTED",
            "session_id": session.session_id,
            "reason": reason,
            "active_sessions": len(self._sessions),
        })

    async def on_json_message(self, payload: str | bytes) -> None:
        """Route one inbound text frame to the reducer."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": _preview(payload),
            })
            return

        try:
            msg = decode_client_message(payload)
        except ProtocolError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_DECODE_ERROR",
                "level": "WARNING",
                "session_id": self.session.session_id,
                "exception": type(e).__name__,
                "error": str(e),
                "payload_preview": _preview(payload),
            })
            return

        ts_ms = _now_ms()
        event: Event

        if msg.type == MSG_START_RECORDING:
            event = StartRecording(event_type=EventType.START_RECORDING, ts_ms=ts_ms)
        elif msg.type == MSG_AUDIO_CHUNK:
            event = AudioChunk(event_type=EventType.AUDIO_CHUNK, ts_ms=ts_ms, audio=msg.audio or b"")
        elif msg.type == MSG_STOP_RECORDING:
            event = StopRecording(event_type=EventType.STOP_RECORDING, ts_ms=ts_ms)
        elif msg.type == MSG_PING:
            event = Ping(event_type=EventType.PING, ts_ms=ts_ms)
        else:
            log_event({
                "ts_ms": ts_ms,
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "level": "WARNING",
                "msg_type": msg.type,
                "session_id": self.session.session_id,
            })
            return

        await self._dispatch(event)

    # ------------------------------------------------------------------
    # Reducer dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        """Forward event into runtime; runtime owns all orchestration."""
        assert self.session is not None
        runtime = self.session.runtime
        assert runtime is not None, "Runtime must exist before dispatch"
        await runtime.handle_event(event)
