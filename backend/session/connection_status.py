"""
Connection status tracking.

Connection lifecycle is tracked separately from the reducer state machine.
connection_status: DOWN | CONNECTING | UP

Used by the server-side VoiceSession and by the reconnecting client.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Connection lifecycle status.

    Separate from and independent of orchestrator State enum.
    IDLE can occur with any ConnectionStatus.
    """
    DOWN = "DOWN"           # Not connected
    CONNECTING = "CONNECTING"  # Attempting connection (with retry backoff)
    UP = "UP"              # Active WebSocket connection
