"""
Language-model capability contracts.

Purpose:
- Define the interfaces for intent extraction and response generation.
- Keep all orchestration, segmentation and synthesis decisions OUT of
  the adapters.

Rules:
- This file contains NO logic.
- No retries.
- No chunking.
- No knowledge of TTS, the socket, or the state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Sequence

from orchestrator.utterance import Intent


class IntentExtractor(ABC):
    """
    Turns a transcription into a structured Intent.

    The adapter is a *dumb pipe*: text -> vendor -> Intent.
    """

    @abstractmethod
    async def extract_intent(self, text: str) -> Intent:
        """
        Contract:
        - Missing fields in the provider output take neutral defaults
          (see Intent.from_mapping).
        - Raises IntentExtractionError on provider failure or unparseable
          output.
        """
        raise NotImplementedError


class ResponseGenerator(ABC):
    """
    Streams a natural-language answer to the user's question.

    Orchestrator responsibilities (NOT here):
    - Deciding when text is speakable
    - Synthesizing speech
    - Emitting events
    """

    @abstractmethod
    def generate_response_stream(
        self,
        rows: Sequence[dict[str, Any]],
        user_query: str,
        intent: Intent,
    ) -> AsyncIterator[str]:
        """
        Start a streaming completion.

        Contract:
        - Yields zero or more incremental text deltas, never full snapshots.
        - Empty deltas are never yielded.
        - Raises ResponseGenerationError if the stream fails to start or
          breaks mid-way.
        - Must NOT retry internally.
        """
        raise NotImplementedError
