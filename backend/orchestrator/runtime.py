"""
Runtime execution shell for a single connection.

Responsibilities:
- Own reducer state
- Call pure reducer
- Execute commands with side effects (audio buffer, outbound sends,
  pipeline task)
- Forward pipeline events to the client and feed completion back into
  the reducer

Non-responsibilities:
- Transport decoding (gateway)
- Pipeline stage logic (StreamingOrchestrator)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import aclosing

from constants import ERROR_PROCESSING_FAILED
from observability.logger import log_event
from orchestrator.commands import (
    AppendAudio,
    ClearAudio,
    Command,
    EmitEvent,
    LogEvent,
    StartPipeline,
)
from orchestrator.events import Event, EventType, PipelineFinished, WSDisconnected
from orchestrator.pipeline import StreamingOrchestrator
from orchestrator.pipeline_events import PipelineError, PipelineEvent, ProcessingComplete
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import SessionState
from session.voice_session import VoiceSession


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single connection.

    Responsibilities:
    - Own the authoritative reducer state
    - Act as the universal event sink for the connection
      (gateway events, pipeline completion)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State is updated before any side effects execute
    - Commands are executed in reducer-emitted order, so
      processing_started is sent before the pipeline task exists
    - At most one pipeline task exists at a time
    """

    def __init__(
        self,
        *,
        session: VoiceSession,
        orchestrator: StreamingOrchestrator,
        initial_state: SessionState | None = None,
    ) -> None:
        self._session = session
        self._orchestrator = orchestrator
        self._state = initial_state or SessionState()
        self._pipeline_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def state(self) -> SessionState:
        """
        Current immutable reducer state.

        Consumers must never modify this state directly.
        """
        return self._state

    @property
    def pipeline_task(self) -> asyncio.Task[None] | None:
        return self._pipeline_task

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event.

        1. Pass the current state and event to the pure reducer
        2. Swap in the new state
        3. Execute all emitted commands sequentially
        """
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

    async def shutdown(self, reason: str | None = None) -> None:
        """
        Clean shutdown on disconnect.

        Stops delivery, releases buffers, cancels the in-flight pipeline
        task and waits for it to unwind.
        """
        if self._closed:
            return
        self._closed = True

        await self.handle_event(
            WSDisconnected(event_type=EventType.WS_DISCONNECTED, ts_ms=_now_ms(), reason=reason)
        )

        task = self._pipeline_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._pipeline_task = None

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({**cmd.event, **self._session.log_context()})

        elif isinstance(cmd, EmitEvent):
            await self._emit(cmd.event)

        elif isinstance(cmd, AppendAudio):
            self._session.append_audio(cmd.audio)

        elif isinstance(cmd, ClearAudio):
            self._session.clear_audio()

        elif isinstance(cmd, StartPipeline):
            audio = self._session.take_audio()
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "PIPELINE_START_EXECUTED",
                "session_id": self._session.session_id,
                "utterance_id": cmd.utterance_id,
                "audio_bytes": len(audio),
            })
            self._pipeline_task = asyncio.create_task(
                self._run_pipeline(cmd.utterance_id, audio),
                name=f"pipeline-{self._session.session_id}-{cmd.utterance_id}",
            )

        else:
            raise TypeError(f"unknown command: {type(cmd).__name__}")

    async def _emit(self, event: PipelineEvent) -> None:
        if self._closed:
            return
        await self._session.send(event.to_message())

    # ------------------------------------------------------------------
    # Pipeline task
    # ------------------------------------------------------------------

    async def _run_pipeline(self, utterance_id: int, audio: bytes) -> None:
        """
        Drive one orchestrator run and forward its events.

        The reducer leaves PROCESSING before the terminal event goes out,
        so a client reacting to processing_complete with start_recording
        is never rejected as busy.
        """
        finished = False

        async def _finish(ok: bool) -> None:
            nonlocal finished
            finished = True
            await self.handle_event(
                PipelineFinished(
                    event_type=EventType.PIPELINE_FINISHED,
                    ts_ms=_now_ms(),
                    utterance_id=utterance_id,
                    ok=ok,
                )
            )

        try:
            async with aclosing(
                self._orchestrator.run(audio, session_id=self._session.session_id)
            ) as events:
                async for event in events:
                    if event.is_terminal:
                        await _finish(isinstance(event, ProcessingComplete))
                    await self._emit(event)

        except asyncio.CancelledError:
            raise

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "PIPELINE_CRASHED",
                "level": "ERROR",
                "session_id": self._session.session_id,
                "utterance_id": utterance_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            if not finished:
                await _finish(False)
                await self._emit(PipelineError(message=ERROR_PROCESSING_FAILED))

        finally:
            if not finished and not self._closed:
                await _finish(False)
