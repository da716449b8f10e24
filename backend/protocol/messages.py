# backend/protocol/messages.py
"""
JSON envelope framing for the duplex socket channel.

Every message in either direction is a single JSON object:

    {"type": "<message type>", ...payload}

Binary audio never travels as a separate binary frame. It is carried
inline as a base64 string in the "audio" field, for both directions:

- Client -> Server: {"type": "audio_chunk", "audio": "<b64 mic bytes>"}
- Server -> Client: {"type": "audio_chunk_response", "audio": "<b64 speech>"}

One frame kind means one ordered stream: the receiver sees audio and
control messages in exactly the order they were sent.

Usage example:

    msg = decode_client_message(raw_text)
    if msg.type == MSG_AUDIO_CHUNK:
        session.append_audio(msg.audio)

    await ws.send_text(encode_message(envelope(MSG_PONG)))
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from constants import (
    FIELD_AUDIO,
    FIELD_TYPE,
    MSG_AUDIO_CHUNK,
    MSG_PING,
    MSG_START_RECORDING,
    MSG_STOP_RECORDING,
)


# -------------------------
# Exceptions
# -------------------------

class ProtocolError(Exception):
    """Base class for transport protocol errors."""


class MalformedMessage(ProtocolError):
    """
    Raised when an inbound payload is not a JSON object with a string "type".

    The message is unsafe to route and must be dropped. The connection
    itself stays open.
    """


class InvalidAudioPayload(ProtocolError):
    """
    Raised when an "audio" field is missing, not a string, or not valid base64.
    """


CLIENT_MESSAGE_TYPES: frozenset[str] = frozenset({
    MSG_START_RECORDING,
    MSG_AUDIO_CHUNK,
    MSG_STOP_RECORDING,
    MSG_PING,
})


# -------------------------
# Audio payload helpers
# -------------------------

def encode_audio(data: bytes) -> str:
    """Encode raw audio bytes for the "audio" envelope field."""
    return base64.b64encode(data).decode("ascii")


def decode_audio(value: Any) -> bytes:
    """
    Decode an "audio" envelope field.

    Strict: non-alphabet characters are rejected rather than skipped.
    """
    if not isinstance(value, str):
        raise InvalidAudioPayload(f"audio must be a base64 string, got {type(value).__name__}")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidAudioPayload(f"invalid base64 audio: {e}") from e


# -------------------------
# Envelopes
# -------------------------

def envelope(msg_type: str, **payload: Any) -> dict[str, Any]:
    """Build an outbound envelope. Payload keys are flattened next to "type"."""
    return {FIELD_TYPE: msg_type, **payload}


def encode_message(message: dict[str, Any]) -> str:
    """Serialize an envelope for a text frame."""
    return json.dumps(message, ensure_ascii=False, default=str)


def parse_envelope(payload: str | bytes) -> dict[str, Any]:
    """
    Parse any inbound text frame into an envelope dict.

    Used by both ends of the channel.
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedMessage(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessage(f"envelope must be an object, got {type(data).__name__}")

    msg_type = data.get(FIELD_TYPE)
    if not isinstance(msg_type, str):
        raise MalformedMessage("envelope is missing a string 'type'")

    return data


# -------------------------
# Client -> Server
# -------------------------

@dataclass(frozen=True)
class ClientMessage:
    """
    A decoded client->server message.

    type:
        One of CLIENT_MESSAGE_TYPES, or any other string for unknown types
        (the router decides what to do with those).

    audio:
        Decoded mic bytes for audio_chunk messages, else None.
    """
    type: str
    audio: bytes | None = None


def decode_client_message(payload: str | bytes) -> ClientMessage:
    """
    Decode a client->server text frame.

    Extra fields on control messages are ignored (some clients attach a
    final "audio" blob to stop_recording; it is not part of the contract).
    """
    data = parse_envelope(payload)
    msg_type: str = data[FIELD_TYPE]

    if msg_type == MSG_AUDIO_CHUNK:
        return ClientMessage(type=msg_type, audio=decode_audio(data.get(FIELD_AUDIO)))

    return ClientMessage(type=msg_type)
