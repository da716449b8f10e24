"""
Authoritative connection state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.

Audio bytes themselves are NOT here: they live in the session's buffer
and are mutated only through AppendAudio / ClearAudio / StartPipeline.
The reducer only tracks how many chunks are buffered.
"""
from __future__ import annotations

from dataclasses import dataclass

from orchestrator.enums.state import State


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of all reducer-owned connection state."""

    state: State = State.IDLE

    # Chunks appended since the last start_recording
    buffered_chunks: int = 0

    # Id of the run in flight (PROCESSING) or of the last run started
    utterance_id: int = 0
