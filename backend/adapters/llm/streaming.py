"""LLM response streaming adapter"""
from __future__ import annotations

import time
from typing import Any, AsyncIterator, Sequence

from adapters.errors import ResponseGenerationError
from adapters.llm.base import ResponseGenerator
from adapters.llm.prompts import RESPONSE_SYSTEM_PROMPT, build_response_user_message
from constants import (
    RESPONSE_FALLBACK_TEXT,
    RESPONSE_MAX_TOKENS_DEFAULT,
    RESPONSE_TEMPERATURE,
)
from observability.logger import log_event
from orchestrator.utterance import Intent


class StreamingResponseGenerator(ResponseGenerator):
    """
    Concrete streaming response generator.

    Design notes:
    - One instance serves every connection; it holds no per-run state.
    - Adapter is responsible ONLY for:
        - Talking to the LLM provider
        - Yielding text deltas as they arrive
    - Adapter does NOT:
        - Retry
        - Segment text
        - Synthesize speech
        - Decide orchestration outcomes
    """

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        provider: str = "openai",
        max_tokens: int = RESPONSE_MAX_TOKENS_DEFAULT,
    ) -> None:
        """
        Args:
            client:
                Vendor client (AsyncOpenAI, or groq through its
                OpenAI-compatible endpoint).
            model:
                Model identifier string.
            provider:
                Provider name, for logging.
            max_tokens:
                Response length cap.
        """
        self._client = client
        self._model = model
        self._provider = provider
        self._max_tokens = max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_response_stream(
        self,
        rows: Sequence[dict[str, Any]],
        user_query: str,
        intent: Intent,
    ) -> AsyncIterator[str]:
        messages = [
            {"role": "system", "content": RESPONSE_SYSTEM_PROMPT},
            {"role": "user", "content": build_response_user_message(rows, user_query, intent)},
        ]

        t0 = time.monotonic_ns()
        deltas = 0

        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=RESPONSE_TEMPERATURE,
                max_tokens=self._max_tokens,
                stream=True,
            )

            async for chunk in stream:
                delta = self._extract_delta(chunk)
                if not delta:
                    continue
                deltas += 1
                yield delta

        except Exception as exc:
            raise ResponseGenerationError(f"{type(exc).__name__}: {exc}") from exc

        log_event({
            "ts_ms": self._now_ms(),
            "event_type": "LLM_STREAM_DONE",
            "level": "DEBUG",
            "provider": self._provider,
            "model": self._model,
            "deltas": deltas,
            "stream_ms": (time.monotonic_ns() - t0) // 1_000_000,
        })

    async def generate_response(
        self,
        rows: Sequence[dict[str, Any]],
        user_query: str,
        intent: Intent,
    ) -> str:
        """
        Non-streaming variant: join the whole stream.

        Returns a fixed apology when the model produced no text.
        """
        parts = [delta async for delta in self.generate_response_stream(rows, user_query, intent)]
        return "".join(parts) or RESPONSE_FALLBACK_TEXT

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_delta(chunk: Any) -> str:
        """
        Extract token delta from vendor response (OpenAI format).
        """
        try:
            delta = chunk.choices[0].delta
            return delta.content or ""
        except (AttributeError, IndexError):
            return ""

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)
