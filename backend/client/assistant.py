"""
Voice assistant client.

Glues the reconnecting transport, microphone capture and ordered
playback into one listening/processing loop that mirrors the server's
message flow:

    start_listening()  -> start_recording, audio_chunk*
    stop_listening()   -> stop_recording
    server messages    -> AssistantState fields, playback queue
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from client.capture import AudioSource, VadEvent, VoiceActivityDetector
from client.playback import PlaybackScheduler
from client.transport import CONNECTION_ERROR, ReconnectingClient
from constants import (
    FIELD_AUDIO,
    FIELD_DATA,
    FIELD_MESSAGE,
    MSG_AUDIO_CHUNK,
    MSG_AUDIO_CHUNK_RESPONSE,
    MSG_AUDIO_RESPONSE,
    MSG_ERROR,
    MSG_INTENT,
    MSG_PROCESSING_COMPLETE,
    MSG_PROCESSING_STARTED,
    MSG_RECORDING_STARTED,
    MSG_RESPONSE,
    MSG_RESPONSE_CHUNK,
    MSG_START_RECORDING,
    MSG_STOP_RECORDING,
    MSG_TRANSCRIPTION,
)
from observability.logger import log_event
from protocol.messages import ProtocolError, decode_audio, encode_audio


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class AssistantState:
    listening: bool = False
    processing: bool = False
    transcription: str = ""
    response: str = ""
    intent: dict[str, Any] | None = None
    error: str | None = None
    turn_complete: asyncio.Event = field(default_factory=asyncio.Event)


class VoiceAssistantClient:
    """One user, one connection, one utterance at a time."""

    def __init__(
        self,
        transport: ReconnectingClient,
        playback: PlaybackScheduler,
        *,
        microphone: AudioSource | None = None,
        vad: VoiceActivityDetector | None = None,
        auto_stop: bool = True,
    ) -> None:
        self._transport = transport
        self._playback = playback
        self._microphone = microphone
        self._vad = vad
        self._auto_stop = auto_stop
        self._capture_task: asyncio.Task[None] | None = None
        self.state = AssistantState()

        handlers = {
            MSG_RECORDING_STARTED: self._on_recording_started,
            MSG_PROCESSING_STARTED: self._on_processing_started,
            MSG_TRANSCRIPTION: self._on_transcription,
            MSG_INTENT: self._on_intent,
            MSG_RESPONSE_CHUNK: self._on_response_chunk,
            MSG_RESPONSE: self._on_response,
            MSG_AUDIO_CHUNK_RESPONSE: self._on_audio,
            MSG_AUDIO_RESPONSE: self._on_audio,
            MSG_PROCESSING_COMPLETE: self._on_processing_complete,
            MSG_ERROR: self._on_error,
            CONNECTION_ERROR: self._on_error,
        }
        for msg_type, handler in handlers.items():
            transport.on(msg_type, handler)

    @property
    def connected(self) -> bool:
        return self._transport.is_connected

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def start_listening(self) -> None:
        """Reset the turn, tell the server to record, and start streaming mic audio."""
        self.state.transcription = ""
        self.state.response = ""
        self.state.intent = None
        self.state.error = None
        self.state.turn_complete.clear()
        self._playback.clear()

        await self._transport.send(MSG_START_RECORDING)

        if self._microphone is not None:
            if self._vad is not None:
                self._vad.reset()
            self._microphone.start()
            self._capture_task = asyncio.create_task(self._stream_microphone())

    async def stop_listening(self) -> None:
        """Stop capture (if running) and ask the server to process the utterance."""
        if self._microphone is not None:
            self._microphone.stop()
        task = self._capture_task
        self._capture_task = None
        if task is not None and task is not asyncio.current_task():
            await task
        await self._transport.send(MSG_STOP_RECORDING)

    async def send_audio(self, chunk: bytes) -> None:
        await self._transport.send(MSG_AUDIO_CHUNK, **{FIELD_AUDIO: encode_audio(chunk)})

    async def _stream_microphone(self) -> None:
        assert self._microphone is not None
        async for chunk in self._microphone.chunks():
            await self.send_audio(chunk)

            if self._vad is None or not self._auto_stop:
                continue
            if self._vad.observe(chunk) is VadEvent.SPEECH_END:
                log_event({"ts_ms": _now_ms(), "event_type": "CLIENT_SPEECH_END"})
                self._capture_task = None
                await self.stop_listening()
                return

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _on_recording_started(self, _message: dict[str, Any]) -> None:
        self.state.listening = True

    def _on_processing_started(self, _message: dict[str, Any]) -> None:
        self.state.listening = False
        self.state.processing = True

    def _on_transcription(self, message: dict[str, Any]) -> None:
        self.state.transcription = str(message.get(FIELD_DATA) or "")

    def _on_intent(self, message: dict[str, Any]) -> None:
        data = message.get(FIELD_DATA)
        self.state.intent = data if isinstance(data, dict) else None

    def _on_response_chunk(self, message: dict[str, Any]) -> None:
        self.state.response += str(message.get(FIELD_DATA) or "")

    def _on_response(self, message: dict[str, Any]) -> None:
        self.state.response = str(message.get(FIELD_DATA) or "")

    def _on_audio(self, message: dict[str, Any]) -> None:
        try:
            audio = decode_audio(message.get(FIELD_AUDIO))
        except ProtocolError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIENT_AUDIO_DECODE_ERROR",
                "level": "WARNING",
                "msg_type": message.get("type"),
                "error": str(e),
            })
            return
        self._playback.enqueue(audio)

    def _on_processing_complete(self, _message: dict[str, Any]) -> None:
        self.state.processing = False
        self.state.turn_complete.set()

    def _on_error(self, message: dict[str, Any]) -> None:
        self.state.error = str(message.get(FIELD_MESSAGE) or "Unknown error")
        self.state.listening = False
        self.state.processing = False
        self.state.turn_complete.set()
