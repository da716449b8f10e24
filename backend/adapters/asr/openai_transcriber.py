"""
OpenAI transcription adapter.

Sends one complete utterance to the hosted Whisper endpoint.

Input formats:
- "webm": bytes are an already-containerized browser recording and are
  uploaded as-is under the name "audio.webm".
- "pcm16": raw 16 kHz mono PCM16 from a native capture device. The API
  needs a container, so the samples are wrapped in a WAV header first.
"""

from __future__ import annotations

import io
import time
import wave
from typing import Any

from adapters.asr.base import Transcriber
from adapters.errors import TranscriptionError
from constants import AUDIO_CHANNELS, AUDIO_SAMPLE_RATE_HZ, AUDIO_SAMPLE_WIDTH_BYTES
from observability.logger import log_event


def pcm16_to_wav(
    pcm_bytes: bytes,
    *,
    sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
    channels: int = AUDIO_CHANNELS,
) -> bytes:
    """Wrap raw PCM16 little-endian samples in a WAV container."""
    if len(pcm_bytes) % AUDIO_SAMPLE_WIDTH_BYTES != 0:
        # Truncated trailing sample
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(AUDIO_SAMPLE_WIDTH_BYTES)
        wav.setframerate(sample_rate_hz)
        wav.writeframes(pcm_bytes)
    return buf.getvalue()


class OpenAITranscriber(Transcriber):
    """Whole-utterance transcription through `client.audio.transcriptions`."""

    def __init__(
        self,
        *,
        client: Any,
        model: str = "whisper-1",
        language: str | None = "en",
        input_format: str = "webm",
    ) -> None:
        if input_format not in ("webm", "pcm16"):
            raise ValueError(f"unsupported audio input format: {input_format!r}")

        self._client = client
        self._model = model
        self._language = language
        self._input_format = input_format

    async def transcribe(self, audio: bytes) -> str:
        if self._input_format == "pcm16":
            upload = ("audio.wav", pcm16_to_wav(audio), "audio/wav")
        else:
            upload = ("audio.webm", audio, "audio/webm")

        kwargs: dict[str, Any] = {"model": self._model, "file": upload}
        if self._language:
            kwargs["language"] = self._language

        try:
            result = await self._client.audio.transcriptions.create(**kwargs)
        except Exception as exc:
            raise TranscriptionError(f"{type(exc).__name__}: {exc}") from exc

        text = (getattr(result, "text", "") or "").strip()

        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "ASR_TRANSCRIBED",
            "level": "DEBUG",
            "provider": "openai",
            "audio_bytes": len(audio),
            "chars": len(text),
        })
        return text
