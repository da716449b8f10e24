"""
OpenAI intent extraction adapter.

One non-streaming chat completion in JSON mode per utterance.
"""

from __future__ import annotations

import json
import time
from typing import Any

from adapters.errors import IntentExtractionError
from adapters.llm.base import IntentExtractor
from adapters.llm.prompts import INTENT_SYSTEM_PROMPT
from constants import INTENT_TEMPERATURE
from observability.logger import log_event
from orchestrator.utterance import Intent


class OpenAIIntentExtractor(IntentExtractor):
    """
    JSON-mode intent extractor.

    Works with any OpenAI-compatible client (OpenAI, groq).
    """

    def __init__(self, *, client: Any, model: str) -> None:
        self._client = client
        self._model = model

    async def extract_intent(self, text: str) -> Intent:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": INTENT_SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                response_format={"type": "json_object"},
                temperature=INTENT_TEMPERATURE,
            )
        except Exception as exc:
            raise IntentExtractionError(f"{type(exc).__name__}: {exc}") from exc

        raw = self._extract_content(response)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise IntentExtractionError(f"intent is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise IntentExtractionError(f"intent must be a JSON object, got {type(data).__name__}")

        intent = Intent.from_mapping(data)

        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "INTENT_EXTRACTED",
            "level": "DEBUG",
            "intent": intent.intent,
            "confidence": intent.confidence,
            "has_sql": intent.sql is not None,
        })
        return intent

    @staticmethod
    def _extract_content(response: Any) -> str:
        """
        Extract message content from a vendor response (OpenAI format).

        A missing message is treated as an empty object.
        """
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError):
            return "{}"
        return content or "{}"
