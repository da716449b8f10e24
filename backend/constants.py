"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral invariants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Transport message types
# =============================================================================

# Client -> Server
MSG_START_RECORDING: Final[str] = "start_recording"
MSG_AUDIO_CHUNK: Final[str] = "audio_chunk"
MSG_STOP_RECORDING: Final[str] = "stop_recording"
MSG_PING: Final[str] = "ping"

# Server -> Client
MSG_RECORDING_STARTED: Final[str] = "recording_started"
MSG_PROCESSING_STARTED: Final[str] = "processing_started"
MSG_TRANSCRIPTION: Final[str] = "transcription"
MSG_INTENT: Final[str] = "intent"
MSG_QUERY_RESULT: Final[str] = "query_result"
MSG_RESPONSE_CHUNK: Final[str] = "response_chunk"
MSG_RESPONSE: Final[str] = "response"
MSG_AUDIO_CHUNK_RESPONSE: Final[str] = "audio_chunk_response"
MSG_AUDIO_RESPONSE: Final[str] = "audio_response"
MSG_PROCESSING_COMPLETE: Final[str] = "processing_complete"
MSG_PONG: Final[str] = "pong"
MSG_ERROR: Final[str] = "error"

# Envelope field names
FIELD_TYPE: Final[str] = "type"
FIELD_AUDIO: Final[str] = "audio"
FIELD_DATA: Final[str] = "data"
FIELD_MESSAGE: Final[str] = "message"

# User-facing error texts
ERROR_PROCESSING_FAILED: Final[str] = "Failed to process audio"
ERROR_BUSY: Final[str] = "Already processing audio"

# =============================================================================
# Sentence segmentation
# =============================================================================

# A trimmed buffer ending in one of these is always speakable
SENTENCE_END_CHARS: Final[Tuple[str, ...]] = (".", "!", "?")

# A trimmed buffer ending in one of these is speakable only when it is long
CLAUSE_BREAK_CHARS: Final[Tuple[str, ...]] = (",", ";")

# Strictly-greater-than threshold for clause-boundary flushes
SPEAKABLE_CLAUSE_MIN_CHARS: Final[int] = 50

# =============================================================================
# Client connection backoff
# =============================================================================

WS_NORMAL_CLOSE_CODE: Final[int] = 1000
CLIENT_WS_MAX_RECONNECT_ATTEMPTS: Final[int] = 5
CLIENT_WS_RECONNECT_BASE_DELAY_MS: Final[int] = 1000
CLIENT_WS_CONNECT_TIMEOUT_S: Final[float] = 5.0

# =============================================================================
# Audio capture
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)

# Recorder timeslice: one chunk per interval
CAPTURE_CHUNK_MS: Final[int] = 100
CAPTURE_SAMPLES_PER_CHUNK: Final[int] = (AUDIO_SAMPLE_RATE_HZ * CAPTURE_CHUNK_MS) // 1000

# =============================================================================
# Voice activity detection
# =============================================================================

VAD_RMS_THRESHOLD_DEFAULT: Final[float] = 0.02
VAD_FRAMES_REQUIRED_DEFAULT: Final[int] = 2
VAD_SILENCE_THRESHOLD_MS_DEFAULT: Final[int] = 600

# =============================================================================
# Providers
# =============================================================================

INTENT_TEMPERATURE: Final[float] = 0.3
RESPONSE_TEMPERATURE: Final[float] = 0.7
RESPONSE_MAX_TOKENS_DEFAULT: Final[int] = 200
RESPONSE_FALLBACK_TEXT: Final[str] = "I apologize, but I couldn't generate a response."

UNKNOWN_INTENT: Final[str] = "unknown"

# =============================================================================
# Observability
# =============================================================================

# Truncation for payload previews in logs
LOG_PREVIEW_CHARS: Final[int] = 100


def linear_backoff_ms(attempt: int, base_ms: int = CLIENT_WS_RECONNECT_BASE_DELAY_MS) -> int:
    """
    Delay before reconnect attempt N (1-based).

    Edge cases:
    - Non-positive attempt returns 0.
    """
    if attempt <= 0:
        return 0
    return base_ms * attempt
