"""
OpenAI TTS adapter.

One `audio.speech.create` call per speakable unit; the whole encoded
clip is returned at once.
"""
from __future__ import annotations

import time
from typing import Any

from adapters.errors import SynthesisError
from adapters.tts.base import SpeechSynthesizer
from observability.logger import log_event


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """Chunked (non-streaming) OpenAI speech synthesizer."""

    def __init__(
        self,
        *,
        client: Any,
        model: str = "tts-1",
        voice: str = "nova",
        response_format: str = "mp3",
    ) -> None:
        self._client = client
        self._model = model
        self._voice = voice
        self._response_format = response_format

    async def synthesize_speech(self, text: str) -> bytes:
        t0 = time.monotonic_ns()
        try:
            response = await self._client.audio.speech.create(
                model=self._model,
                voice=self._voice,
                input=text,
                response_format=self._response_format,
            )
            audio = response.content
        except Exception as exc:
            raise SynthesisError(f"{type(exc).__name__}: {exc}") from exc

        if not audio:
            raise SynthesisError("provider returned no audio")

        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "TTS_SYNTH_METRICS",
            "level": "DEBUG",
            "provider": "openai",
            "chars": len(text),
            "audio_bytes": len(audio),
            "synth_ms": (time.monotonic_ns() - t0) // 1_000_000,
        })
        return audio
