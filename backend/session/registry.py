"""
Session table.

Explicit registry of live connections keyed by generated session id.
Connections never look each other up; the table exists for lifecycle
bookkeeping and observability (active connection count).
"""

from __future__ import annotations

from session.voice_session import VoiceSession


class SessionTable:
    """In-process map of session_id -> VoiceSession."""

    def __init__(self) -> None:
        self._sessions: dict[str, VoiceSession] = {}

    def add(self, session: VoiceSession) -> None:
        if session.session_id in self._sessions:
            raise KeyError(f"duplicate session id: {session.session_id}")
        self._sessions[session.session_id] = session

    def remove(self, session_id: str) -> VoiceSession | None:
        return self._sessions.pop(session_id, None)

    def get(self, session_id: str) -> VoiceSession | None:
        return self._sessions.get(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
