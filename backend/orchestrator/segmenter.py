"""
Pure sentence segmentation for incremental speech synthesis.

Decides when accumulated generated text is "complete enough" to send to
the synthesizer, decoupling the text generation rate from the number of
(slow, per-call) synthesis requests.

Policy:
- Trimmed buffer ends in '.', '!' or '?'                -> speakable
- Trimmed buffer is longer than SPEAKABLE_CLAUSE_MIN_CHARS
  AND ends in ',' or ';'                                -> speakable
- Anything else                                         -> keep buffering

is_speakable() holds no state. PendingTextBuffer is the only mutable
piece and is owned by exactly one pipeline run.
"""

from __future__ import annotations

from constants import (
    CLAUSE_BREAK_CHARS,
    SENTENCE_END_CHARS,
    SPEAKABLE_CLAUSE_MIN_CHARS,
)


# =============================================================================
# Public API
# =============================================================================

def is_speakable(buffer: str) -> bool:
    """
    Return True if the buffer should be flushed to the synthesizer now.

    Trailing whitespace never blocks a boundary: "Done.  " is speakable.
    """
    text = buffer.strip()
    if not text:
        return False

    if text.endswith(SENTENCE_END_CHARS):
        return True

    return len(text) > SPEAKABLE_CLAUSE_MIN_CHARS and text.endswith(CLAUSE_BREAK_CHARS)


def contains_sentence_end(text: str) -> bool:
    """True if any sentence-ending character appears anywhere in text."""
    return any(ch in text for ch in SENTENCE_END_CHARS)


# =============================================================================
# Pending text buffer
# =============================================================================

class PendingTextBuffer:
    """
    Per-utterance accumulator of text not yet sent to speech.

    Invariants:
    - Cleared every time a speakable unit is flushed
    - flush() never returns whitespace-only text
    """

    def __init__(self) -> None:
        self._parts: list[str] = []

    def append(self, delta: str) -> None:
        """Add one generated increment."""
        if delta:
            self._parts.append(delta)

    @property
    def text(self) -> str:
        """Current untrimmed contents."""
        return "".join(self._parts)

    def is_speakable(self) -> bool:
        """Apply the segmentation policy to the current contents."""
        return is_speakable(self.text)

    def flush(self) -> str | None:
        """
        Empty the buffer and return its trimmed contents.

        Returns None when the buffer held only whitespace (it is still
        cleared).
        """
        text = self.text.strip()
        self._parts.clear()
        return text or None

    def clear(self) -> None:
        """Drop everything without producing a unit."""
        self._parts.clear()

    def __bool__(self) -> bool:
        return bool(self.text.strip())
