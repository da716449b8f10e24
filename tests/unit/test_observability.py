# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger, metrics


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    logger.configure_logging(level="INFO", json_lines=True)
    yield lines
    logger.configure_logging(level="INFO", json_lines=True)


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted
    assert len(captured) == 1

    # Payload must be preserved exactly
    assert json.loads(captured[0]) == payload


def test_levels_below_minimum_are_dropped(captured: list[str]) -> None:
    logger.configure_logging(level="WARNING")

    logger.log_event({"event_type": "A", "level": "DEBUG"})
    logger.log_event({"event_type": "B"})
    logger.log_event({"event_type": "C", "level": "ERROR"})

    assert [json.loads(line)["event_type"] for line in captured] == ["C"]


def test_unserializable_event_never_raises(captured: list[str]) -> None:
    logger.log_event({"ts_ms": 1, "event_type": "BAD", "obj": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 1


def test_text_mode(captured: list[str]) -> None:
    logger.configure_logging(json_lines=False)
    logger.log_event({"event_type": "X", "n": 2})
    assert captured == ["event_type='X' n=2"]


# ---------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------

def test_timed_emits_one_metric_even_on_error(monkeypatch: pytest.MonkeyPatch) -> None:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(metrics, "log_event", emitted.append)
    before = len(metrics._open_timers)  # pylint: disable=protected-access

    with pytest.raises(ValueError):
        with metrics.timed("pipeline_transcribe", session_id="sess_1", details={"chars": 3}):
            raise ValueError("boom")

    assert len(metrics._open_timers) == before  # pylint: disable=protected-access
    [event] = emitted
    assert event["event_type"] == "METRIC_TIMER"
    assert event["metric"] == "pipeline_transcribe"
    assert event["session_id"] == "sess_1"
    assert event["details"] == {"chars": 3}
    assert event["value_ms"] >= 0


def test_nested_timers_emit_inner_first(monkeypatch: pytest.MonkeyPatch) -> None:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(metrics, "log_event", emitted.append)

    with metrics.timed("outer"):
        with metrics.timed("inner", details={"chars": 5}):
            pass

    assert [e["metric"] for e in emitted] == ["inner", "outer"]
    assert emitted[1]["details"] == {}
    assert emitted[1]["session_id"] is None
