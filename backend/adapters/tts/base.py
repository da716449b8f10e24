"""
Speech synthesis capability contract.

This module defines the *interface only*. No segmentation policy,
retries, timers or orchestration decisions live here.

Key invariants:
- Segmentation is orchestrator-owned. Synthesizers receive one
  speakable unit (or the whole response, for the fallback) and must not
  split it further.
- One call produces one complete encoded audio clip, playable on its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SpeechSynthesizer(ABC):
    """
    Abstract text-to-speech capability.

    Implementations are responsible for:
    - Calling the TTS provider for exactly the text given
    - Returning the encoded clip (e.g. mp3) as bytes

    Non-responsibilities:
    - No segmentation decisions
    - No event emission
    - No direct interaction with the WebSocket or client playback
    """

    @abstractmethod
    async def synthesize_speech(self, text: str) -> bytes:
        """
        Synthesize one unit of text.

        Args:
            text: Non-empty, already-trimmed text.

        Returns:
            Encoded audio bytes.

        Raises:
            SynthesisError on any provider failure. The orchestrator logs
            and skips the unit on any exception, wrapped or not; it never
            retries.
        """
        raise NotImplementedError
