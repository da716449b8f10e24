"""
Voice session container.

- Owns the connection's audio buffer (ordered chunks since start_recording)
- Owns connection status (mutable, gateway-controlled)
- Owns the serialized outbound sink
- Owned and mutated by SessionGateway and Runtime
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from observability.logger import log_event
from protocol.messages import encode_message
from session.connection_status import ConnectionStatus

if TYPE_CHECKING:
    from orchestrator.runtime import Runtime


SendText = Callable[[str], Awaitable[None]]


# ---------------------------------------------------------------------
# VoiceSession
# ---------------------------------------------------------------------


@dataclass
class VoiceSession:
    """Mutable runtime container for a single connection."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Connection / gateway-controlled state
    # ------------------------------------------------------------------

    connection_status: ConnectionStatus = ConnectionStatus.DOWN
    send_text: SendText | None = None

    # ------------------------------------------------------------------
    # Runtime (executes commands + owns authoritative state)
    # ------------------------------------------------------------------

    runtime: Runtime | None = None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        self._chunks: list[bytes] = []
        self._send_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Audio buffer (mutated only by Runtime command execution)
    # ------------------------------------------------------------------

    def append_audio(self, chunk: bytes) -> None:
        self._chunks.append(chunk)

    def clear_audio(self) -> None:
        self._chunks.clear()

    def take_audio(self) -> bytes:
        """
        Concatenate every buffered chunk in arrival order and clear the buffer.

        After this call the buffer is empty; the caller owns the bytes.
        """
        audio = b"".join(self._chunks)
        self._chunks.clear()
        return audio

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send(self, message: dict[str, Any]) -> bool:
        """
        Send one envelope to the client.

        Sends are serialized: a message is fully written before the next
        one starts, so the client sees exactly the order of send() calls.

        Returns False (and drops the message) when the connection is down
        or the write fails; the connection is then marked DOWN.
        """
        async with self._send_lock:
            if self.connection_status is not ConnectionStatus.UP or self.send_text is None:
                log_event({
                    "ts_ms": time.time_ns() // 1_000_000,
                    "event_type": "SEND_DROPPED",
                    "level": "DEBUG",
                    "session_id": self.session_id,
                    "msg_type": message.get("type"),
                })
                return False

            try:
                await self.send_text(encode_message(message))
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self.connection_status = ConnectionStatus.DOWN
                log_event({
                    "ts_ms": time.time_ns() // 1_000_000,
                    "event_type": "SEND_FAILED",
                    "level": "WARNING",
                    "session_id": self.session_id,
                    "msg_type": message.get("type"),
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
                return False

        return True

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "connection_status": self.connection_status.value,
        }
