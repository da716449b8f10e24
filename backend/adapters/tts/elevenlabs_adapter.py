"""
ElevenLabs TTS adapter.

Implements a chunked, non-streaming Text-to-Speech adapter on top of the
ElevenLabs streaming API.

Role in the system:
- Receives one speakable unit from the orchestrator.
- Performs one synthesis call for it.
- Collects the provider's byte stream into a single encoded clip.

Architectural constraints:
- Segmentation policy is orchestrator-owned.
- No retries, timers, or backpressure logic live here.
"""

from __future__ import annotations

import inspect
import time
from typing import Any

from elevenlabs.client import AsyncElevenLabs

from adapters.errors import SynthesisError
from adapters.tts.base import SpeechSynthesizer
from observability.logger import log_event


class ElevenLabsSpeechSynthesizer(SpeechSynthesizer):
    """
    ElevenLabs chunked TTS adapter.

    Output format defaults to mp3 so clients decode the same container
    regardless of provider.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        client: Any = None,
        voice_id: str = "21m00Tcm4TlvDq8ikWAM",  # default ElevenLabs voice
        model_id: str = "eleven_turbo_v2",
        output_format: str = "mp3_44100_128",
    ) -> None:
        if client is None:
            if not api_key:
                raise ValueError("ELEVENLABS_API_KEY is required for the elevenlabs TTS provider")
            client = AsyncElevenLabs(api_key=api_key)

        self._client = client
        self._voice_id = voice_id
        self._model_id = model_id
        self._output_format = output_format

    async def synthesize_speech(self, text: str) -> bytes:
        t0 = time.monotonic_ns()
        try:
            audio_stream = self._client.text_to_speech.stream(
                voice_id=self._voice_id,
                model_id=self._model_id,
                text=text,
                output_format=self._output_format,
            )
            # SDK versions differ on whether stream() must be awaited first
            if inspect.isawaitable(audio_stream):
                audio_stream = await audio_stream

            buf = bytearray()
            async for chunk in audio_stream:
                if chunk:
                    buf.extend(chunk)
        except Exception as exc:
            raise SynthesisError(f"{type(exc).__name__}: {exc}") from exc

        if not buf:
            raise SynthesisError("provider returned no audio")

        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "TTS_SYNTH_METRICS",
            "level": "DEBUG",
            "provider": "elevenlabs",
            "chars": len(text),
            "audio_bytes": len(buf),
            "synth_ms": (time.monotonic_ns() - t0) // 1_000_000,
        })
        return bytes(buf)
