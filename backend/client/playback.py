"""
Ordered playback of synthesized speech.

Fragments are played strictly in arrival order, one at a time. A fragment
that fails to decode or play is logged and skipped; the next one starts
immediately.
"""

from __future__ import annotations

import asyncio
import io
import time
from collections import deque
from typing import Protocol

from observability.logger import log_event


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class AudioSink(Protocol):
    """Anything that can play one encoded audio clip to completion."""

    async def play(self, audio: bytes) -> None: ...


class SoundDeviceSink:
    """Decode with soundfile and play on the default output device."""

    async def play(self, audio: bytes) -> None:
        await asyncio.to_thread(self._play_blocking, audio)

    @staticmethod
    def _play_blocking(audio: bytes) -> None:
        import sounddevice as sd
        import soundfile as sf

        data, sample_rate = sf.read(io.BytesIO(audio), dtype="float32")
        sd.play(data, sample_rate)
        sd.wait()


class PlaybackScheduler:
    """
    FIFO of audio fragments with a single player.

    enqueue() never blocks; playback runs in a background task that drains
    the queue and exits when it is empty.
    """

    def __init__(self, sink: AudioSink) -> None:
        self._sink = sink
        self._queue: deque[bytes] = deque()
        self._task: asyncio.Task[None] | None = None
        self.played = 0
        self.skipped = 0

    @property
    def is_playing(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def enqueue(self, audio: bytes) -> None:
        self._queue.append(audio)
        if not self.is_playing:
            self._task = asyncio.create_task(self._drain())

    def clear(self) -> None:
        """Drop queued fragments and stop the current one."""
        self._queue.clear()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait_idle(self) -> None:
        while self.is_playing:
            task = self._task
            assert task is not None
            try:
                await task
            except asyncio.CancelledError:
                return

    async def _drain(self) -> None:
        while self._queue:
            audio = self._queue.popleft()
            try:
                await self._sink.play(audio)
                self.played += 1
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self.skipped += 1
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "PLAYBACK_SKIPPED",
                    "level": "WARNING",
                    "audio_bytes": len(audio),
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
