# pyright: reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false
"""
Local Whisper transcription adapter.

Runs faster-whisper in-process for deployments without a hosted
transcription provider.

Scope:
- Accepts one complete utterance
- Returns plain text

Must NOT:
- Perform endpointing / silence detection
- Emit pipeline events
- Make orchestration decisions

Implementation notes:
- Inference is blocking (hundreds of ms on CPU), so it runs in a worker
  thread via asyncio.to_thread.
- "webm" input is handed to faster-whisper as a file-like object; its own
  decoder handles the container.
- "pcm16" input is converted to float32 samples directly.
"""

from __future__ import annotations

import asyncio
import io
from typing import Any

from adapters.asr.base import Transcriber
from adapters.errors import TranscriptionError
from audio.pcm import pcm16le_to_float32


class LocalWhisperTranscriber(Transcriber):
    """
    Minimal faster-whisper wrapper.

    Assumptions:
    - pcm16 input is 16 kHz mono (caller validates)
    - Whisper inference is NOT bitwise-deterministic across runs
    """

    def __init__(
        self,
        *,
        model: str = "base",
        language: str | None = "en",
        input_format: str = "webm",
        device: str | None = None,
        compute_type: str | None = None,
    ) -> None:
        from faster_whisper import WhisperModel  # pylint: disable=import-outside-toplevel

        if input_format not in ("webm", "pcm16"):
            raise ValueError(f"unsupported audio input format: {input_format!r}")

        kwargs: dict[str, Any] = {}
        if device is not None:
            kwargs["device"] = device
        if compute_type is not None:
            kwargs["compute_type"] = compute_type

        self._language = language
        self._input_format = input_format
        self._model = WhisperModel(model, **kwargs)

    async def transcribe(self, audio: bytes) -> str:
        if not audio:
            return ""
        try:
            return await asyncio.to_thread(self._transcribe_blocking, audio)
        except Exception as exc:
            raise TranscriptionError(f"Whisper transcription failed: {exc!r}") from exc

    def _transcribe_blocking(self, audio: bytes) -> str:
        source: Any
        if self._input_format == "pcm16":
            source = pcm16le_to_float32(audio)
        else:
            source = io.BytesIO(audio)

        segments_iter, _info = self._model.transcribe(
            source,
            language=self._language,
            beam_size=1,
            temperature=0.0,
            vad_filter=False,  # endpointing happened on the client
        )

        parts: list[str] = []
        for seg in segments_iter:
            text = str(getattr(seg, "text", "")).strip()
            if text:
                parts.append(text)
        return " ".join(parts).strip()
