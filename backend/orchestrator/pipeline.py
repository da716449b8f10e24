"""
Streaming orchestrator for one utterance.

Responsibilities:
- Run transcribe -> intent -> query -> generate -> synthesize in order
- Overlap speech synthesis of early sentences with generation of later text
- Classify capability failures as fatal or degraded
- Yield outbound PipelineEvents in pipeline order, ending in exactly one
  terminal event

Non-responsibilities:
- No socket IO (the runtime sends what this yields)
- No state machine transitions
- No retries

Overlap model:

    producer task:  LLM stream --delta--> asyncio.Queue
    consumer loop:  queue -> response_chunk -> pending buffer
                          -> (speakable?) -> synthesize -> audio_chunk_response

While the consumer awaits a synthesis call the producer keeps pulling
deltas from the provider, so generation never stalls behind speech.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import aclosing
from typing import Any, AsyncIterator

from adapters.asr.base import Transcriber
from adapters.errors import CapabilityError
from adapters.llm.base import IntentExtractor, ResponseGenerator
from adapters.tts.base import SpeechSynthesizer
from constants import ERROR_PROCESSING_FAILED, LOG_PREVIEW_CHARS
from db.base import DataSource
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.enums.stage import Stage
from orchestrator.pipeline_events import (
    AudioComplete,
    AudioFragmentReady,
    IntentReady,
    PipelineError,
    PipelineEvent,
    ProcessingComplete,
    QueryResultReady,
    ResponseTextComplete,
    ResponseTextFragment,
    TranscriptionReady,
)
from orchestrator.segmenter import PendingTextBuffer, contains_sentence_end
from orchestrator.utterance import Utterance


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# Queue sentinel: generation finished normally
_STREAM_END = object()


class _StreamFailure:
    """Queue item carrying a generation failure to the consumer."""

    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


class StreamingOrchestrator:
    """
    Turns one utterance's audio into an ordered stream of PipelineEvents.

    One instance is shared by every connection; all per-run state lives in
    local variables and the Utterance record, so concurrent runs on
    different connections never interfere.
    """

    def __init__(
        self,
        *,
        transcriber: Transcriber,
        intent_extractor: IntentExtractor,
        data_source: DataSource,
        responder: ResponseGenerator,
        synthesizer: SpeechSynthesizer,
    ) -> None:
        self._transcriber = transcriber
        self._intent_extractor = intent_extractor
        self._data_source = data_source
        self._responder = responder
        self._synthesizer = synthesizer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, audio: bytes, *, session_id: str | None = None) -> AsyncIterator[PipelineEvent]:
        """
        Execute the pipeline for one utterance.

        Guarantees:
        - The last event yielded is ProcessingComplete or PipelineError
        - Exactly one of those is yielded
        - The pending text buffer is empty when this generator exits,
          however it exits
        """
        utterance = Utterance(audio=audio)
        pending = PendingTextBuffer()

        try:
            async with aclosing(self._run_stages(utterance, pending, session_id)) as stages:
                async for event in stages:
                    yield event
        except CapabilityError as exc:
            self._log_failure(session_id, exc)
            yield PipelineError(message=ERROR_PROCESSING_FAILED)
            return
        finally:
            pending.clear()

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "PIPELINE_COMPLETED",
            "session_id": session_id,
            "rows": len(utterance.rows),
            "response_chars": len(utterance.response_text),
            "audio_fragments": utterance.audio_fragments,
        })
        yield ProcessingComplete()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run_stages(
        self,
        utterance: Utterance,
        pending: PendingTextBuffer,
        session_id: str | None,
    ) -> AsyncIterator[PipelineEvent]:
        # 1. Transcribe (fatal)
        with timed(f"pipeline_{Stage.TRANSCRIBE.value}", session_id=session_id):
            utterance.transcription = await self._transcriber.transcribe(utterance.audio)
        yield TranscriptionReady(text=utterance.transcription)

        # 2. Intent (fatal)
        with timed(f"pipeline_{Stage.EXTRACT_INTENT.value}", session_id=session_id):
            utterance.intent = await self._intent_extractor.extract_intent(utterance.transcription)
        yield IntentReady(intent=utterance.intent)

        # 3. Query (degraded)
        if utterance.intent.sql:
            utterance.rows = await self._query(utterance.intent.sql, session_id)
        yield QueryResultReady(rows=tuple(utterance.rows))

        # 4-5. Generate, segment, synthesize (generation fatal, synthesis degraded)
        async with aclosing(self._generate_and_speak(utterance, pending, session_id)) as speech:
            async for event in speech:
                yield event

        # 6. Full text
        full_text = utterance.response_text
        yield ResponseTextComplete(text=full_text)

        # 7-8. Remainder flush, or whole-text fallback when nothing was ever speakable
        if not utterance.boundary_found and not contains_sentence_end(full_text):
            pending.clear()
            if full_text.strip():
                audio = await self._synthesize(full_text.strip(), session_id)
                if audio is not None:
                    yield AudioComplete(audio=audio)
        else:
            remainder = pending.flush()
            if remainder is not None:
                audio = await self._synthesize(remainder, session_id)
                if audio is not None:
                    utterance.audio_fragments += 1
                    yield AudioFragmentReady(audio=audio, text=remainder)

    async def _query(self, sql: str, session_id: str | None) -> list[dict[str, Any]]:
        try:
            with timed(f"pipeline_{Stage.QUERY.value}", session_id=session_id):
                return await self._data_source.query(sql)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "QUERY_FAILED",
                "level": "WARNING",
                "session_id": session_id,
                "sql": sql[:LOG_PREVIEW_CHARS],
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return []

    async def _generate_and_speak(
        self,
        utterance: Utterance,
        pending: PendingTextBuffer,
        session_id: str | None,
    ) -> AsyncIterator[PipelineEvent]:
        intent = utterance.intent
        transcription = utterance.transcription or ""
        assert intent is not None

        queue: asyncio.Queue[Any] = asyncio.Queue()

        async def _produce() -> None:
            try:
                with timed(f"pipeline_{Stage.GENERATE.value}", session_id=session_id):
                    async for delta in self._responder.generate_response_stream(
                        utterance.rows, transcription, intent
                    ):
                        await queue.put(delta)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # pylint: disable=broad-exception-caught
                await queue.put(_StreamFailure(exc))
                return
            await queue.put(_STREAM_END)

        producer = asyncio.create_task(_produce())
        try:
            while True:
                item = await queue.get()

                if item is _STREAM_END:
                    break
                if isinstance(item, _StreamFailure):
                    if isinstance(item.exc, CapabilityError):
                        raise item.exc
                    raise CapabilityError(f"{type(item.exc).__name__}: {item.exc}") from item.exc

                delta: str = item
                utterance.response_parts.append(delta)
                pending.append(delta)
                yield ResponseTextFragment(text=delta)

                if not pending.is_speakable():
                    continue

                utterance.boundary_found = True
                unit = pending.flush()
                if unit is None:
                    continue

                audio = await self._synthesize(unit, session_id)
                if audio is not None:
                    utterance.audio_fragments += 1
                    yield AudioFragmentReady(audio=audio, text=unit)
        finally:
            if not producer.done():
                producer.cancel()
                try:
                    await producer
                except asyncio.CancelledError:
                    pass

    async def _synthesize(self, text: str, session_id: str | None) -> bytes | None:
        """Synthesize one unit; a failure is logged and yields None."""
        try:
            with timed(
                f"pipeline_{Stage.SYNTHESIZE.value}",
                session_id=session_id,
                details={"chars": len(text)},
            ):
                return await self._synthesizer.synthesize_speech(text)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "SYNTHESIS_FAILED",
                "level": "WARNING",
                "session_id": session_id,
                "text_preview": text[:LOG_PREVIEW_CHARS],
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _log_failure(session_id: str | None, exc: CapabilityError) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "PIPELINE_FAILED",
            "level": "ERROR",
            "session_id": session_id,
            "exception": type(exc).__name__,
            "message": str(exc),
        })
