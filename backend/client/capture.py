"""
Microphone capture and end-of-speech detection.

MicrophoneSource yields fixed-size PCM16 mono chunks (one per
CAPTURE_CHUNK_MS) from the default input device. The sounddevice
callback runs on a PortAudio thread, so chunks are handed to the event
loop with call_soon_threadsafe.

VoiceActivityDetector wraps EnergyVAD with silence timing:

    SPEECH_START  first chunk where EnergyVAD reports activity
    SPEECH_END    accumulated silence after speech >= silence_threshold_ms
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, AsyncIterator, Protocol

import numpy as np

from audio.pcm import float32_to_pcm16le, pcm16le_to_float32
from audio.vad import EnergyVAD
from constants import (
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_RATE_HZ,
    CAPTURE_CHUNK_MS,
    CAPTURE_SAMPLES_PER_CHUNK,
    VAD_FRAMES_REQUIRED_DEFAULT,
    VAD_RMS_THRESHOLD_DEFAULT,
    VAD_SILENCE_THRESHOLD_MS_DEFAULT,
)


class VadEvent(str, Enum):
    SPEECH_START = "speech_start"
    SPEECH_END = "speech_end"


class VoiceActivityDetector:
    """Speech start/end detection over consecutive capture chunks."""

    def __init__(
        self,
        *,
        threshold: float = VAD_RMS_THRESHOLD_DEFAULT,
        frames_required: int = VAD_FRAMES_REQUIRED_DEFAULT,
        silence_threshold_ms: int = VAD_SILENCE_THRESHOLD_MS_DEFAULT,
        chunk_ms: int = CAPTURE_CHUNK_MS,
    ) -> None:
        self._vad = EnergyVAD(threshold=threshold, frames_required=frames_required)
        self._silence_threshold_ms = silence_threshold_ms
        self._chunk_ms = chunk_ms
        self._speaking = False
        self._silence_ms = 0

    @property
    def speaking(self) -> bool:
        return self._speaking

    def observe(self, pcm16: bytes) -> VadEvent | None:
        """Feed one capture chunk. Returns an edge event or None."""
        active = self._vad.observe(pcm16le_to_float32(pcm16))

        if active:
            self._silence_ms = 0
            if not self._speaking:
                self._speaking = True
                return VadEvent.SPEECH_START
            return None

        if not self._speaking:
            return None

        self._silence_ms += self._chunk_ms
        if self._silence_ms >= self._silence_threshold_ms:
            self._speaking = False
            self._silence_ms = 0
            self._vad.reset()
            return VadEvent.SPEECH_END
        return None

    def reset(self) -> None:
        self._vad.reset()
        self._speaking = False
        self._silence_ms = 0


class AudioSource(Protocol):
    """Start/stop capture and iterate PCM16 chunks until stopped."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def chunks(self) -> AsyncIterator[bytes]: ...


class MicrophoneSource:
    """
    Async iterator of PCM16 chunks from the default input device.

    start() opens the stream; stop() closes it and ends iteration.
    """

    def __init__(
        self,
        *,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        channels: int = AUDIO_CHANNELS,
        blocksize: int = CAPTURE_SAMPLES_PER_CHUNK,
    ) -> None:
        self._sample_rate_hz = sample_rate_hz
        self._channels = channels
        self._blocksize = blocksize
        self._stream: Any = None
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def active(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        import sounddevice as sd

        if self._stream is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._stream = sd.InputStream(
            samplerate=self._sample_rate_hz,
            channels=self._channels,
            dtype="float32",
            blocksize=self._blocksize,
            callback=self._on_block,
        )
        self._stream.start()

    def stop(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        stream.stop()
        stream.close()
        self._queue.put_nowait(None)

    def _on_block(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        # PortAudio thread
        del frames, time_info, status
        chunk = float32_to_pcm16le(indata[:, 0].copy())
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, chunk)

    async def chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk
