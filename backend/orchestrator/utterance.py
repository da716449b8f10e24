"""
Utterance data model.

An utterance is the unit of work for one pipeline run: the raw audio
captured between start_recording and stop_recording plus everything the
pipeline derives from it. It lives only for the duration of the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from constants import UNKNOWN_INTENT


@dataclass(frozen=True)
class Intent:
    """
    Structured intent extracted from a transcription.

    sql:
        Optional query string. When None (or empty) no query is executed.
    """
    intent: str
    entities: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0
    sql: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Intent:
        """
        Build an Intent from loosely-typed provider output.

        Missing or mistyped fields fall back to neutral defaults.
        """
        entities = data.get("entities")
        if not isinstance(entities, dict):
            entities = {}

        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError):
            confidence = 0.0

        sql = data.get("sql")
        if not isinstance(sql, str) or not sql.strip():
            sql = None

        name = data.get("intent")
        if not isinstance(name, str) or not name:
            name = UNKNOWN_INTENT

        return cls(intent=name, entities=entities, confidence=confidence, sql=sql)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation for the "intent" event."""
        data: dict[str, Any] = {
            "intent": self.intent,
            "entities": self.entities,
            "confidence": self.confidence,
        }
        if self.sql is not None:
            data["sql"] = self.sql
        return data


@dataclass
class Utterance:
    """
    Mutable per-run record, filled in stage by stage.

    Never persisted: discarded once the terminal event is emitted.
    """
    audio: bytes
    transcription: str | None = None
    intent: Intent | None = None
    rows: list[dict[str, Any]] = field(default_factory=list)
    response_parts: list[str] = field(default_factory=list)
    audio_fragments: int = 0
    boundary_found: bool = False

    @property
    def response_text(self) -> str:
        """Full response text generated so far."""
        return "".join(self.response_parts)
