"""
Stage timing for the pipeline.

Each timed block emits exactly one METRIC_TIMER event through
observability.logger; nothing is aggregated in-process. Durations come
from the monotonic clock, while `ts_ms` stays wall-clock so log lines sort
against the rest of the JSONL stream.

Only `timed()` is public.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


# timer_id -> (metric_name, start_ns)
_open_timers: dict[str, tuple[str, int]] = {}


def _open(name: str) -> str:
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _open_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def _close(
    timer_id: str,
    *,
    session_id: str | None,
    details: dict[str, Any] | None,
) -> int | None:
    entry = _open_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    elapsed_ms = (time.monotonic_ns() - start_ns) // 1_000_000
    log_event({
        "ts_ms": time.time_ns() // 1_000_000,
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": elapsed_ms,
        "session_id": session_id,
        "details": details or {},
    })
    return elapsed_ms


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Time the enclosed block, including blocks that raise.

        with timed("pipeline_transcribe", session_id=session_id):
            text = await transcriber.transcribe(audio)

    The exception, if any, propagates after the metric is written.
    """
    timer_id = _open(name)
    try:
        yield
    finally:
        _close(timer_id, session_id=session_id, details=details)
