"""
Pure connection reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).

State table:

    state        event             -> state        commands
    -----------  ----------------  ---  ---------  ------------------------------
    any          ping                   (same)     pong
    IDLE         start_recording        RECORDING  clear audio, recording_started
    RECORDING    start_recording        RECORDING  clear audio, recording_started
    PROCESSING   start_recording        PROCESSING error(busy)
    RECORDING    audio_chunk            RECORDING  append audio
    other        audio_chunk            (same)     log (ignored)
    RECORDING    stop_recording (n>0)   PROCESSING processing_started, start pipeline
    RECORDING    stop_recording (n=0)   IDLE       log (nothing to process)
    PROCESSING   stop_recording         PROCESSING error(busy)
    IDLE         stop_recording         IDLE       log (ignored)
    PROCESSING   pipeline_finished      IDLE       clear audio
    any          ws_disconnected        IDLE       clear audio
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from constants import ERROR_BUSY
from orchestrator.commands import (
    AppendAudio,
    ClearAudio,
    Command,
    EmitEvent,
    LogEvent,
    StartPipeline,
)
from orchestrator.enums.state import State
from orchestrator.events import (
    AudioChunk,
    Event,
    Ping,
    PipelineFinished,
    StartRecording,
    StopRecording,
    WSDisconnected,
)
from orchestrator.pipeline_events import (
    PipelineError,
    Pong,
    ProcessingStarted,
    RecordingStarted,
)
from orchestrator.state_dataclass import SessionState


Transition = tuple[SessionState, tuple[Command, ...]]


# =============================================================================
# Helpers
# =============================================================================

def _log(
    state: SessionState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "utterance_id": state.utterance_id,
            "buffered_chunks": state.buffered_chunks,
            "details": details or {},
        }
    )


def _state_changed(old: SessionState, new: SessionState, event: Event) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {"from_state": old.state.value, "to_state": new.state.value},
    )


def _ignore(state: SessionState, event: Event, reason: str) -> Transition:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _busy(state: SessionState, event: Event) -> Transition:
    return state, (
        EmitEvent(PipelineError(message=ERROR_BUSY)),
        _log(state, event, "rejected_busy"),
    )


# =============================================================================
# Reducer
# =============================================================================

def reduce(state: SessionState, event: Event) -> Transition:
    """
    Pure reducer for the connection state machine.

    Given the current state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Version-safe: ignores pipeline completions with a stale utterance id
    """

    # ------------------------------------------------------------------
    # State-independent
    # ------------------------------------------------------------------

    if isinstance(event, Ping):
        return state, (EmitEvent(Pong()),)

    if isinstance(event, WSDisconnected):
        new_state = replace(state, state=State.IDLE, buffered_chunks=0)
        return new_state, (
            ClearAudio(),
            _log(state, event, "disconnected", {"reason": event.reason}),
        )

    # ------------------------------------------------------------------
    # start_recording
    # ------------------------------------------------------------------

    if isinstance(event, StartRecording):
        if state.state is State.PROCESSING:
            return _busy(state, event)

        new_state = replace(state, state=State.RECORDING, buffered_chunks=0)
        commands: tuple[Command, ...] = (
            ClearAudio(),
            EmitEvent(RecordingStarted()),
        )
        if state.state is not State.RECORDING:
            commands += (_state_changed(state, new_state, event),)
        return new_state, commands

    # ------------------------------------------------------------------
    # audio_chunk
    # ------------------------------------------------------------------

    if isinstance(event, AudioChunk):
        if state.state is not State.RECORDING:
            return _ignore(state, event, "audio_while_not_recording")
        if not event.audio:
            return _ignore(state, event, "empty_audio")

        new_state = replace(state, buffered_chunks=state.buffered_chunks + 1)
        return new_state, (AppendAudio(event.audio),)

    # ------------------------------------------------------------------
    # stop_recording
    # ------------------------------------------------------------------

    if isinstance(event, StopRecording):
        if state.state is State.PROCESSING:
            return _busy(state, event)

        if state.state is State.IDLE:
            return _ignore(state, event, "stop_while_idle")

        if state.buffered_chunks == 0:
            new_state = replace(state, state=State.IDLE)
            return new_state, (
                _log(state, event, "no_audio_buffered"),
                _state_changed(state, new_state, event),
            )

        utterance_id = state.utterance_id + 1
        new_state = replace(
            state,
            state=State.PROCESSING,
            buffered_chunks=0,
            utterance_id=utterance_id,
        )
        return new_state, (
            EmitEvent(ProcessingStarted()),
            StartPipeline(utterance_id=utterance_id),
            _state_changed(state, new_state, event),
        )

    # ------------------------------------------------------------------
    # pipeline completion
    # ------------------------------------------------------------------

    if isinstance(event, PipelineFinished):
        if state.state is not State.PROCESSING:
            return _ignore(state, event, "pipeline_finished_not_processing")
        if event.utterance_id != state.utterance_id:
            return _ignore(state, event, "pipeline_finished_stale")

        new_state = replace(state, state=State.IDLE, buffered_chunks=0)
        return new_state, (
            ClearAudio(),
            _log(state, event, "pipeline_finished", {"ok": event.ok}),
            _state_changed(state, new_state, event),
        )

    return _ignore(state, event, "unhandled")
