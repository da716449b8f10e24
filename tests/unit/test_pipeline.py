# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any, AsyncIterator

import pytest

import orchestrator.pipeline as pipeline_mod
from adapters.errors import IntentExtractionError, QueryError, ResponseGenerationError, SynthesisError, TranscriptionError
from orchestrator.pipeline import StreamingOrchestrator
from orchestrator.pipeline_events import (
    AudioComplete,
    AudioFragmentReady,
    IntentReady,
    PipelineError,
    PipelineEvent,
    PipelineEventType,
    ProcessingComplete,
    QueryResultReady,
    ResponseTextComplete,
    ResponseTextFragment,
    TranscriptionReady,
)
from orchestrator.utterance import Intent


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------

class FakeTranscriber:
    def __init__(self, text: str = "when does flight 1214 leave", fail: bool = False) -> None:
        self.text = text
        self.fail = fail
        self.received: list[bytes] = []

    async def transcribe(self, audio: bytes) -> str:
        self.received.append(audio)
        if self.fail:
            raise TranscriptionError("provider down")
        return self.text


class FakeIntentExtractor:
    def __init__(self, intent: Intent | None = None, fail: bool = False) -> None:
        self.fail = fail
        self.intent = intent or Intent(
            intent="flight_status",
            entities={"flight_number": "1214"},
            confidence=0.9,
            sql="SELECT * FROM flights WHERE flight_number LIKE '%1214%'",
        )

    async def extract_intent(self, text: str) -> Intent:
        if self.fail:
            raise IntentExtractionError("model returned prose, not JSON")
        return self.intent


class FakeDataSource:
    def __init__(self, rows: list[dict[str, Any]] | None = None, fail: bool = False) -> None:
        self.rows = rows if rows is not None else [{"flight_number": "UA1214", "status": "On Time"}]
        self.fail = fail
        self.queries: list[str] = []

    async def query(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        self.queries.append(sql)
        if self.fail:
            raise QueryError("no such table: flights")
        return self.rows


class FakeResponder:
    def __init__(self, deltas: list[str], fail_after: int | None = None) -> None:
        self.deltas = deltas
        self.fail_after = fail_after
        self.seen_rows: list[dict[str, Any]] | None = None

    async def generate_response_stream(
        self, rows: list[dict[str, Any]], user_query: str, intent: Intent
    ) -> AsyncIterator[str]:
        self.seen_rows = rows
        for i, delta in enumerate(self.deltas):
            if self.fail_after is not None and i == self.fail_after:
                raise ResponseGenerationError("stream broke")
            await asyncio.sleep(0)
            yield delta


class FakeSynthesizer:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def synthesize_speech(self, text: str) -> bytes:
        self.calls.append(text)
        if text in self.fail_on:
            raise SynthesisError("tts down")
        return f"AUDIO[{text}]".encode()


def build(
    *,
    transcriber: FakeTranscriber | None = None,
    data_source: FakeDataSource | None = None,
    responder: FakeResponder | None = None,
    synthesizer: FakeSynthesizer | None = None,
    intent: Intent | None = None,
    intent_extractor: FakeIntentExtractor | None = None,
) -> StreamingOrchestrator:
    return StreamingOrchestrator(
        transcriber=transcriber or FakeTranscriber(),
        intent_extractor=intent_extractor or FakeIntentExtractor(intent),
        data_source=data_source or FakeDataSource(),
        responder=responder or FakeResponder(["Flight 1214 is on time."]),
        synthesizer=synthesizer or FakeSynthesizer(),
    )


def run(orch: StreamingOrchestrator, audio: bytes = b"\x00\x01") -> list[PipelineEvent]:
    async def _collect() -> list[PipelineEvent]:
        return [event async for event in orch.run(audio, session_id="sess_test")]

    return asyncio.run(_collect())


def types(events: list[PipelineEvent]) -> list[PipelineEventType]:
    return [e.event_type for e in events]


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(pipeline_mod, "log_event", emitted.append)
    return emitted


# ---------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------

def test_stage_order_and_single_terminal() -> None:
    events = run(build())

    assert isinstance(events[0], TranscriptionReady)
    assert isinstance(events[1], IntentReady)
    assert isinstance(events[2], QueryResultReady)
    assert isinstance(events[-1], ProcessingComplete)
    assert sum(1 for e in events if e.is_terminal) == 1

    complete_idx = next(i for i, e in enumerate(events) if isinstance(e, ResponseTextComplete))
    first_fragment_idx = next(i for i, e in enumerate(events) if isinstance(e, ResponseTextFragment))
    assert first_fragment_idx < complete_idx


def test_two_sentences_yield_two_fragments_and_no_fallback() -> None:
    responder = FakeResponder(["Flight 12", "14 is on time.", " It leaves from", " gate C6."])
    synth = FakeSynthesizer()
    events = run(build(responder=responder, synthesizer=synth))

    complete_idx = types(events).index(PipelineEventType.RESPONSE_TEXT_COMPLETE)
    fragments = [e for e in events if isinstance(e, AudioFragmentReady)]

    assert len(fragments) == 2
    assert all(events.index(f) < complete_idx for f in fragments)
    assert not any(isinstance(e, AudioComplete) for e in events)
    assert synth.calls == ["Flight 1214 is on time.", "It leaves from gate C6."]

    [complete] = [e for e in events if isinstance(e, ResponseTextComplete)]
    assert complete.text == "Flight 1214 is on time. It leaves from gate C6."


def test_no_sentence_end_yields_single_whole_text_audio() -> None:
    responder = FakeResponder(["Flight 1214 ", "is on time"])
    synth = FakeSynthesizer()
    events = run(build(responder=responder, synthesizer=synth))

    assert not any(isinstance(e, AudioFragmentReady) for e in events)
    whole = [e for e in events if isinstance(e, AudioComplete)]
    assert len(whole) == 1
    assert synth.calls == ["Flight 1214 is on time"]
    assert types(events)[-2:] == [PipelineEventType.AUDIO_COMPLETE, PipelineEventType.PROCESSING_COMPLETE]


def test_remainder_after_last_boundary_is_flushed_once() -> None:
    responder = FakeResponder(["Flight 1214 is on time.", " Gate C6"])
    synth = FakeSynthesizer()
    events = run(build(responder=responder, synthesizer=synth))

    assert synth.calls == ["Flight 1214 is on time.", "Gate C6"]
    assert not any(isinstance(e, AudioComplete) for e in events)

    tail = types(events)[-3:]
    assert tail == [
        PipelineEventType.RESPONSE_TEXT_COMPLETE,
        PipelineEventType.AUDIO_FRAGMENT_READY,
        PipelineEventType.PROCESSING_COMPLETE,
    ]


def test_long_clause_is_flushed_early_and_not_spoken_twice() -> None:
    clause = "Flight 1214 departs from gate C6 which is currently in use,"
    responder = FakeResponder([clause, " boarding soon"])
    synth = FakeSynthesizer()
    events = run(build(responder=responder, synthesizer=synth))

    assert synth.calls == [clause, "boarding soon"]
    assert not any(isinstance(e, AudioComplete) for e in events)


def test_empty_response_yields_no_audio() -> None:
    synth = FakeSynthesizer()
    events = run(build(responder=FakeResponder([]), synthesizer=synth))

    assert synth.calls == []
    assert types(events)[-2:] == [
        PipelineEventType.RESPONSE_TEXT_COMPLETE,
        PipelineEventType.PROCESSING_COMPLETE,
    ]


# ---------------------------------------------------------------------
# Query stage
# ---------------------------------------------------------------------

def test_query_rows_reach_generator() -> None:
    responder = FakeResponder(["Ok."])
    data = FakeDataSource(rows=[{"gate": "C6"}])
    events = run(build(data_source=data, responder=responder))

    [result] = [e for e in events if isinstance(e, QueryResultReady)]
    assert list(result.rows) == [{"gate": "C6"}]
    assert responder.seen_rows == [{"gate": "C6"}]


def test_no_sql_skips_query() -> None:
    data = FakeDataSource()
    events = run(build(data_source=data, intent=Intent(intent="greeting")))

    assert data.queries == []
    [result] = [e for e in events if isinstance(e, QueryResultReady)]
    assert result.rows == ()


def test_query_failure_degrades_to_empty_rows(_quiet_logs: list[dict[str, Any]]) -> None:
    responder = FakeResponder(["I could not find that flight."])
    events = run(build(data_source=FakeDataSource(fail=True), responder=responder))

    [result] = [e for e in events if isinstance(e, QueryResultReady)]
    assert result.rows == ()
    assert responder.seen_rows == []
    assert isinstance(events[-1], ProcessingComplete)
    assert any(e["event_type"] == "QUERY_FAILED" for e in _quiet_logs)


# ---------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------

def test_transcription_failure_is_a_single_error(_quiet_logs: list[dict[str, Any]]) -> None:
    events = run(build(transcriber=FakeTranscriber(fail=True)))

    assert len(events) == 1
    assert isinstance(events[0], PipelineError)
    assert any(e["event_type"] == "PIPELINE_FAILED" for e in _quiet_logs)


def test_generation_failure_mid_stream_ends_with_error() -> None:
    responder = FakeResponder(["Flight 1214 is on time.", " more"], fail_after=1)
    events = run(build(responder=responder))

    assert isinstance(events[-1], PipelineError)
    assert not any(isinstance(e, ProcessingComplete) for e in events)
    assert not any(isinstance(e, ResponseTextComplete) for e in events)
    assert sum(1 for e in events if e.is_terminal) == 1


def test_synthesis_failure_skips_fragment(_quiet_logs: list[dict[str, Any]]) -> None:
    responder = FakeResponder(["First one.", " Second one.", " Third one."])
    synth = FakeSynthesizer(fail_on={"Second one."})
    events = run(build(responder=responder, synthesizer=synth))

    fragments = [e for e in events if isinstance(e, AudioFragmentReady)]
    assert [f.text for f in fragments] == ["First one.", "Third one."]
    assert isinstance(events[-1], ProcessingComplete)
    assert any(e["event_type"] == "SYNTHESIS_FAILED" for e in _quiet_logs)


def test_audio_is_handed_to_transcriber_unchanged() -> None:
    transcriber = FakeTranscriber()
    run(build(transcriber=transcriber), audio=b"abcdef")
    assert transcriber.received == [b"abcdef"]


def test_intent_failure_stops_before_query(_quiet_logs: list[dict[str, Any]]) -> None:
    data = FakeDataSource()
    synth = FakeSynthesizer()
    events = run(build(
        intent_extractor=FakeIntentExtractor(fail=True),
        data_source=data,
        synthesizer=synth,
    ))

    assert [type(e) for e in events] == [TranscriptionReady, PipelineError]
    assert data.queries == []
    assert synth.calls == []
    assert any(e["event_type"] == "PIPELINE_FAILED" for e in _quiet_logs)


class CrashingDataSource(FakeDataSource):
    async def query(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        raise RuntimeError("connection reset")


class CrashingSynthesizer(FakeSynthesizer):
    async def synthesize_speech(self, text: str) -> bytes:
        self.calls.append(text)
        raise RuntimeError("socket closed")


def test_unwrapped_query_error_still_degrades(_quiet_logs: list[dict[str, Any]]) -> None:
    events = run(build(data_source=CrashingDataSource()))

    [result] = [e for e in events if isinstance(e, QueryResultReady)]
    assert result.rows == ()
    assert isinstance(events[-1], ProcessingComplete)
    [failed] = [e for e in _quiet_logs if e["event_type"] == "QUERY_FAILED"]
    assert failed["exception"] == "RuntimeError"


def test_unwrapped_synthesis_error_still_degrades(_quiet_logs: list[dict[str, Any]]) -> None:
    responder = FakeResponder(["First one.", " Second one."])
    events = run(build(responder=responder, synthesizer=CrashingSynthesizer()))

    assert not any(isinstance(e, (AudioFragmentReady, AudioComplete)) for e in events)
    assert isinstance(events[-1], ProcessingComplete)
    assert sum(1 for e in _quiet_logs if e["event_type"] == "SYNTHESIS_FAILED") == 2


def test_completion_log_counts_spoken_fragments(_quiet_logs: list[dict[str, Any]]) -> None:
    responder = FakeResponder(["First one.", " Second one.", " Third one."])
    synth = FakeSynthesizer(fail_on={"Second one."})
    run(build(responder=responder, synthesizer=synth))

    [done] = [e for e in _quiet_logs if e["event_type"] == "PIPELINE_COMPLETED"]
    assert done["audio_fragments"] == 2
    assert done["rows"] == 1
    assert done["session_id"] == "sess_test"
