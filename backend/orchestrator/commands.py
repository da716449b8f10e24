"""
Side-effect command definitions for the connection reducer.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are executed strictly in emitted order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.pipeline_events import PipelineEvent


# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Client / transport
    EMIT_EVENT = "EMIT_EVENT"

    # Audio buffer
    APPEND_AUDIO = "APPEND_AUDIO"
    CLEAR_AUDIO = "CLEAR_AUDIO"

    # Pipeline
    START_PIPELINE = "START_PIPELINE"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Commands
# =============================================================================

@dataclass(frozen=True)
class EmitEvent(Command):
    """Send one outbound event to the client."""
    event: PipelineEvent
    command_type: CommandType = CommandType.EMIT_EVENT


@dataclass(frozen=True)
class AppendAudio(Command):
    """Append one chunk to the connection's audio buffer."""
    audio: bytes
    command_type: CommandType = CommandType.APPEND_AUDIO


@dataclass(frozen=True)
class ClearAudio(Command):
    """Drop everything in the connection's audio buffer."""
    command_type: CommandType = CommandType.CLEAR_AUDIO


@dataclass(frozen=True)
class StartPipeline(Command):
    """
    Hand the buffered audio to a new pipeline run.

    The runtime takes the concatenated buffer and clears it in the same
    step, so the run owns its audio exclusively.
    """
    utterance_id: int
    command_type: CommandType = CommandType.START_PIPELINE


@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
