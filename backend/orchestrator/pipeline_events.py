"""
Outbound pipeline event definitions.

Rules:
- Events describe progress the server reports to the client.
- Events carry data only; to_message() is their only behavior.
- Event type values ARE the wire message types.

Ordering contract for one utterance:

    processing_started
    transcription
    intent
    query_result
    response_chunk*  audio_chunk_response*   (interleaved)
    response
    audio_chunk_response?                    (remainder flush)
    audio_response?                          (whole-text fallback)
    processing_complete | error              (exactly one terminal)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from constants import (
    FIELD_AUDIO,
    FIELD_DATA,
    FIELD_MESSAGE,
    MSG_AUDIO_CHUNK_RESPONSE,
    MSG_AUDIO_RESPONSE,
    MSG_ERROR,
    MSG_INTENT,
    MSG_PONG,
    MSG_PROCESSING_COMPLETE,
    MSG_PROCESSING_STARTED,
    MSG_QUERY_RESULT,
    MSG_RECORDING_STARTED,
    MSG_RESPONSE,
    MSG_RESPONSE_CHUNK,
    MSG_TRANSCRIPTION,
)
from orchestrator.utterance import Intent
from protocol.messages import encode_audio, envelope


# =============================================================================
# Event Type Enumeration
# =============================================================================

class PipelineEventType(str, Enum):
    """Canonical outbound event types (values match the wire protocol)."""

    RECORDING_STARTED = MSG_RECORDING_STARTED
    PROCESSING_STARTED = MSG_PROCESSING_STARTED
    TRANSCRIPTION_READY = MSG_TRANSCRIPTION
    INTENT_READY = MSG_INTENT
    QUERY_RESULT_READY = MSG_QUERY_RESULT
    RESPONSE_TEXT_FRAGMENT = MSG_RESPONSE_CHUNK
    RESPONSE_TEXT_COMPLETE = MSG_RESPONSE
    AUDIO_FRAGMENT_READY = MSG_AUDIO_CHUNK_RESPONSE
    AUDIO_COMPLETE = MSG_AUDIO_RESPONSE
    PROCESSING_COMPLETE = MSG_PROCESSING_COMPLETE
    ERROR = MSG_ERROR
    PONG = MSG_PONG


TERMINAL_EVENT_TYPES: frozenset[PipelineEventType] = frozenset({
    PipelineEventType.PROCESSING_COMPLETE,
    PipelineEventType.ERROR,
})


# =============================================================================
# Base Event
# =============================================================================

class PipelineEvent:
    """
    Base outbound event.

    event_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    event_type: PipelineEventType

    def to_message(self) -> dict[str, Any]:
        """Envelope for the transport channel."""
        return envelope(self.event_type.value)

    @property
    def is_terminal(self) -> bool:
        """True for processing_complete and error."""
        return self.event_type in TERMINAL_EVENT_TYPES


# =============================================================================
# Session control
# =============================================================================

@dataclass(frozen=True)
class RecordingStarted(PipelineEvent):
    """Recording began; audio buffer was cleared."""
    event_type: PipelineEventType = PipelineEventType.RECORDING_STARTED


@dataclass(frozen=True)
class ProcessingStarted(PipelineEvent):
    """A pipeline run was accepted for the buffered audio."""
    event_type: PipelineEventType = PipelineEventType.PROCESSING_STARTED


@dataclass(frozen=True)
class Pong(PipelineEvent):
    """Keepalive answer; independent of the state machine."""
    event_type: PipelineEventType = PipelineEventType.PONG


# =============================================================================
# Pipeline stages
# =============================================================================

@dataclass(frozen=True)
class TranscriptionReady(PipelineEvent):
    text: str
    event_type: PipelineEventType = PipelineEventType.TRANSCRIPTION_READY

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_DATA: self.text})


@dataclass(frozen=True)
class IntentReady(PipelineEvent):
    intent: Intent
    event_type: PipelineEventType = PipelineEventType.INTENT_READY

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_DATA: self.intent.to_dict()})


@dataclass(frozen=True)
class QueryResultReady(PipelineEvent):
    rows: tuple[dict[str, Any], ...] = ()
    event_type: PipelineEventType = PipelineEventType.QUERY_RESULT_READY

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_DATA: list(self.rows)})


@dataclass(frozen=True)
class ResponseTextFragment(PipelineEvent):
    """One increment of generated text, forwarded as soon as it arrives."""
    text: str
    event_type: PipelineEventType = PipelineEventType.RESPONSE_TEXT_FRAGMENT

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_DATA: self.text})


@dataclass(frozen=True)
class ResponseTextComplete(PipelineEvent):
    """Full concatenated response text."""
    text: str
    event_type: PipelineEventType = PipelineEventType.RESPONSE_TEXT_COMPLETE

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_DATA: self.text})


@dataclass(frozen=True)
class AudioFragmentReady(PipelineEvent):
    """Synthesized speech for one speakable unit."""
    audio: bytes
    text: str = ""
    event_type: PipelineEventType = PipelineEventType.AUDIO_FRAGMENT_READY

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_AUDIO: encode_audio(self.audio)})


@dataclass(frozen=True)
class AudioComplete(PipelineEvent):
    """Whole-response speech, produced only when no fragment was ever speakable."""
    audio: bytes
    event_type: PipelineEventType = PipelineEventType.AUDIO_COMPLETE

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_AUDIO: encode_audio(self.audio)})


# =============================================================================
# Terminal
# =============================================================================

@dataclass(frozen=True)
class ProcessingComplete(PipelineEvent):
    event_type: PipelineEventType = PipelineEventType.PROCESSING_COMPLETE


@dataclass(frozen=True)
class PipelineError(PipelineEvent):
    """
    User-visible error.

    Terminal when emitted by a pipeline run; also used for session-level
    rejections (busy), which do not end anything.
    """
    message: str
    event_type: PipelineEventType = PipelineEventType.ERROR

    def to_message(self) -> dict[str, Any]:
        return envelope(self.event_type.value, **{FIELD_MESSAGE: self.message})
