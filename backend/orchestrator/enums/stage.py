"""
Pipeline stage enumeration.

Rules:
- Identifies external capability calls for logging and timing only.
- It must NOT encode behavior or ordering rules.
"""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """Capability calls made by one pipeline run."""

    TRANSCRIBE = "transcribe"
    EXTRACT_INTENT = "extract_intent"
    QUERY = "query"
    GENERATE = "generate"
    SYNTHESIZE = "synthesize"
