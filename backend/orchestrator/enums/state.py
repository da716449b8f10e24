"""
Authoritative session state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    High-level deterministic control states for a single connection.

    IDLE:
        Waiting for start_recording.

    RECORDING:
        Buffering audio_chunk payloads.

    PROCESSING:
        Exactly one pipeline run is in flight. New triggers are rejected,
        never queued.
    """

    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
