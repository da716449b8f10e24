"""
Inbound event definitions for the connection reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Outbound (server -> client) events live in orchestrator.pipeline_events.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Client control
    # ------------------------------------------------------------------
    START_RECORDING = "START_RECORDING"
    AUDIO_CHUNK = "AUDIO_CHUNK"
    STOP_RECORDING = "STOP_RECORDING"
    PING = "PING"

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    PIPELINE_FINISHED = "PIPELINE_FINISHED"

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    WS_DISCONNECTED = "WS_DISCONNECTED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Client Control Events
# =============================================================================

@dataclass(frozen=True)
class StartRecording(Event):
    """Client began a new utterance."""


@dataclass(frozen=True)
class AudioChunk(Event):
    """One decoded audio payload from the client."""
    audio: bytes


@dataclass(frozen=True)
class StopRecording(Event):
    """Client finished the utterance and asks for a pipeline run."""


@dataclass(frozen=True)
class Ping(Event):
    """Keepalive."""


# =============================================================================
# Pipeline Events
# =============================================================================

@dataclass(frozen=True)
class PipelineFinished(Event):
    """
    A pipeline run ended (terminal event already sent, or task cancelled).

    utterance_id gates stale completions.
    """
    utterance_id: int
    ok: bool


# =============================================================================
# Connection Events
# =============================================================================

@dataclass(frozen=True)
class WSDisconnected(Event):
    """WebSocket connection lost."""
    reason: str | None = None
