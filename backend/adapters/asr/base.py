"""
Transcription capability contract.

This module defines the *interface only*. No buffering, endpointing,
retries or orchestration decisions live here.

Key invariants:
- The orchestrator hands over the complete utterance audio once, after
  stop_recording. Transcription is whole-buffer, not streaming.
- Failures are raised as TranscriptionError; the orchestrator treats them
  as fatal for the utterance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Transcriber(ABC):
    """
    Abstract speech-to-text capability.

    Implementations are responsible for:
    - Wrapping the raw bytes in whatever container the provider needs
    - Calling the provider and returning plain text

    Non-responsibilities:
    - No state machine logic (IDLE/RECORDING/PROCESSING)
    - No direct interaction with the WebSocket
    """

    @abstractmethod
    async def transcribe(self, audio: bytes) -> str:
        """
        Transcribe one utterance.

        Args:
            audio: Concatenation of every chunk received since start_recording.

        Returns:
            Recognized text (may be empty for silence).

        Raises:
            TranscriptionError on any provider failure.
        """
        raise NotImplementedError
