"""
Reconnecting duplex client for the voice socket.

Responsibilities:
- Maintain exactly one logical connection to the server
- Frame outbound messages as JSON envelopes
- Dispatch inbound envelopes to listeners by message type
- Reconnect after abnormal closes with linear backoff, up to a cap

Reconnect policy:
- Close code 1000 (deliberate) never triggers a retry
- Any other close (or a connect failure during a retry) schedules attempt
  N after N * base_delay
- A successful connect resets the attempt counter
- After max_attempts failures a persistent ConnectionLostError is kept in
  `error` and delivered to "connection_error" listeners
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from constants import (
    CLIENT_WS_CONNECT_TIMEOUT_S,
    CLIENT_WS_MAX_RECONNECT_ATTEMPTS,
    CLIENT_WS_RECONNECT_BASE_DELAY_MS,
    FIELD_TYPE,
    WS_NORMAL_CLOSE_CODE,
    linear_backoff_ms,
)
from observability.logger import log_event
from protocol.messages import ProtocolError, encode_message, envelope, parse_envelope
from session.connection_status import ConnectionStatus


# Pseudo message type for transport-level failures
CONNECTION_ERROR = "connection_error"

Listener = Callable[[dict[str, Any]], None]
Connector = Callable[[str], Awaitable[Any]]
Sleeper = Callable[[float], Awaitable[None]]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# -------------------------
# Exceptions
# -------------------------

class ClientError(Exception):
    """Base class for client transport errors."""


class NotConnectedError(ClientError):
    """send() was called while no connection is open."""


class ConnectionLostError(ClientError):
    """Reconnect attempts are exhausted; the connection is gone for good."""


# -------------------------
# Client
# -------------------------

class ReconnectingClient:
    """
    One logical WebSocket connection with automatic recovery.

    Listeners are plain callables invoked on the event loop with the full
    inbound envelope. A listener that raises is logged and skipped.
    """

    def __init__(
        self,
        url: str,
        *,
        max_attempts: int = CLIENT_WS_MAX_RECONNECT_ATTEMPTS,
        base_delay_ms: int = CLIENT_WS_RECONNECT_BASE_DELAY_MS,
        connect_timeout_s: float = CLIENT_WS_CONNECT_TIMEOUT_S,
        connector: Connector | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._url = url
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._connect_timeout_s = connect_timeout_s
        self._connector: Connector = connector or ws_connect
        self._sleep = sleep

        self._ws: Any = None
        self._recv_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._listeners: dict[str, list[Listener]] = {}

        self.status = ConnectionStatus.DOWN
        self.attempts = 0
        self.error: ConnectionLostError | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self.status is ConnectionStatus.UP

    async def connect(self) -> None:
        """
        Open the connection.

        Raises whatever the connector raises (or TimeoutError after the
        connect timeout). A failed initial connect does not schedule
        retries; only a lost connection does.
        """
        await self._close_socket()
        self.status = ConnectionStatus.CONNECTING

        try:
            ws = await asyncio.wait_for(self._connector(self._url), timeout=self._connect_timeout_s)
        except BaseException:
            self.status = ConnectionStatus.DOWN
            raise

        self._ws = ws
        self.status = ConnectionStatus.UP
        self.attempts = 0
        self.error = None
        self._recv_task = asyncio.create_task(self._recv_loop(ws))

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "CLIENT_CONNECTED",
            "url": self._url,
        })

    async def disconnect(self) -> None:
        """Deliberate close: code 1000, never retried."""
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None
        await self._close_socket()
        self.status = ConnectionStatus.DOWN

    async def reconnect(self) -> None:
        """Manual reconnect: drop the current socket and start over with a fresh budget."""
        await self.disconnect()
        self.attempts = 0
        self.error = None
        await self.connect()

    async def send(self, msg_type: str, **payload: Any) -> None:
        """Send {"type": msg_type, ...payload}."""
        if not self.is_connected:
            raise NotConnectedError(f"cannot send {msg_type!r}: WebSocket is not connected")
        await self._ws.send(encode_message(envelope(msg_type, **payload)))

    def on(self, msg_type: str, callback: Listener) -> None:
        callbacks = self._listeners.setdefault(msg_type, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def off(self, msg_type: str, callback: Listener) -> None:
        callbacks = self._listeners.get(msg_type)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _emit(self, msg_type: str, message: dict[str, Any]) -> None:
        for callback in list(self._listeners.get(msg_type, ())):
            try:
                callback(message)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "CLIENT_LISTENER_ERROR",
                    "level": "ERROR",
                    "msg_type": msg_type,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })

    async def _recv_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                try:
                    message = parse_envelope(raw)
                except ProtocolError as e:
                    log_event({
                        "ts_ms": _now_ms(),
                        "event_type": "CLIENT_MESSAGE_DECODE_ERROR",
                        "level": "WARNING",
                        "error": str(e),
                    })
                    continue
                self._emit(message[FIELD_TYPE], message)
        except ConnectionClosed:
            pass

        if ws is not self._ws:
            # Superseded by a deliberate close or a newer connection
            return

        code = getattr(ws, "close_code", None)
        self._ws = None
        self.status = ConnectionStatus.DOWN

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "CLIENT_DISCONNECTED",
            "close_code": code,
        })

        if code != WS_NORMAL_CLOSE_CODE:
            self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        while self.attempts < self._max_attempts:
            self.attempts += 1
            delay_ms = linear_backoff_ms(self.attempts, self._base_delay_ms)

            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIENT_RECONNECT_SCHEDULED",
                "attempt": self.attempts,
                "max_attempts": self._max_attempts,
                "delay_ms": delay_ms,
            })

            await self._sleep(delay_ms / 1000)
            self.status = ConnectionStatus.CONNECTING
            try:
                # connect() resets attempts on success
                await self.connect()
                return
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "CLIENT_RECONNECT_FAILED",
                    "level": "WARNING",
                    "attempt": self.attempts,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })

        self.status = ConnectionStatus.DOWN
        self.error = ConnectionLostError(
            f"connection lost after {self._max_attempts} reconnect attempts"
        )
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "CLIENT_RECONNECT_EXHAUSTED",
            "level": "ERROR",
            "attempts": self.attempts,
        })
        self._emit(CONNECTION_ERROR, envelope(CONNECTION_ERROR, message=str(self.error)))

    async def _close_socket(self) -> None:
        ws = self._ws
        self._ws = None

        if ws is not None:
            try:
                await ws.close(code=WS_NORMAL_CLOSE_CODE)
            except ConnectionClosed:
                pass

        task = self._recv_task
        self._recv_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
