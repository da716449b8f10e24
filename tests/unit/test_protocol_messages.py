# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from orchestrator.pipeline_events import (
    AudioFragmentReady,
    IntentReady,
    PipelineError,
    Pong,
    QueryResultReady,
    TranscriptionReady,
)
from orchestrator.utterance import Intent
from protocol.messages import (
    InvalidAudioPayload,
    MalformedMessage,
    decode_audio,
    decode_client_message,
    encode_audio,
    encode_message,
    parse_envelope,
)


# ---------------------------------------------------------------------
# Client -> Server
# ---------------------------------------------------------------------

def test_audio_chunk_is_decoded() -> None:
    raw = json.dumps({"type": "audio_chunk", "audio": encode_audio(b"\x00\xffPCM")})
    msg = decode_client_message(raw)
    assert msg.type == "audio_chunk"
    assert msg.audio == b"\x00\xffPCM"


def test_control_messages_ignore_extra_fields() -> None:
    msg = decode_client_message(json.dumps({"type": "stop_recording", "audio": "ignored"}))
    assert msg.type == "stop_recording"
    assert msg.audio is None


def test_unknown_type_is_decoded_for_the_router() -> None:
    assert decode_client_message('{"type": "teleport"}').type == "teleport"


def test_bytes_payload_is_accepted() -> None:
    assert decode_client_message(b'{"type": "ping"}').type == "ping"


@pytest.mark.parametrize(
    "raw",
    ["", "{", "[]", "42", '{"kind": "ping"}', '{"type": 7}'],
)
def test_malformed_envelopes_are_rejected(raw: str) -> None:
    with pytest.raises(MalformedMessage):
        parse_envelope(raw)


@pytest.mark.parametrize("value", [None, 12, "not base64!!"])
def test_bad_audio_is_rejected(value: object) -> None:
    with pytest.raises(InvalidAudioPayload):
        decode_audio(value)


# ---------------------------------------------------------------------
# Server -> Client
# ---------------------------------------------------------------------

def test_text_events_use_data_field() -> None:
    assert TranscriptionReady(text="hi").to_message() == {"type": "transcription", "data": "hi"}


def test_intent_event_carries_structured_intent() -> None:
    intent = Intent(intent="flight_status", entities={"flight_number": "1214"}, confidence=0.8, sql="SELECT 1")
    assert IntentReady(intent=intent).to_message() == {
        "type": "intent",
        "data": {
            "intent": "flight_status",
            "entities": {"flight_number": "1214"},
            "confidence": 0.8,
            "sql": "SELECT 1",
        },
    }


def test_query_result_is_a_list_of_rows() -> None:
    message = QueryResultReady(rows=({"gate": "C6"},)).to_message()
    assert message == {"type": "query_result", "data": [{"gate": "C6"}]}


def test_audio_events_are_base64() -> None:
    message = AudioFragmentReady(audio=b"mp3bytes", text="Hello.").to_message()
    assert message["type"] == "audio_chunk_response"
    assert decode_audio(message["audio"]) == b"mp3bytes"
    assert "text" not in message


def test_error_and_pong_envelopes() -> None:
    assert PipelineError(message="Failed to process audio").to_message() == {
        "type": "error",
        "message": "Failed to process audio",
    }
    assert Pong().to_message() == {"type": "pong"}


def test_encode_message_keeps_unicode_and_dates() -> None:
    from datetime import datetime

    text = encode_message({"type": "query_result", "data": [{"city": "São Paulo", "at": datetime(2024, 1, 1)}]})
    decoded = json.loads(text)
    assert decoded["data"][0]["city"] == "São Paulo"
    assert decoded["data"][0]["at"].startswith("2024-01-01")


# ---------------------------------------------------------------------
# Intent parsing
# ---------------------------------------------------------------------

def test_intent_from_loose_mapping_uses_defaults() -> None:
    intent = Intent.from_mapping({"entities": "nope", "confidence": "high", "sql": "  "})
    assert intent.intent == "unknown"
    assert intent.entities == {}
    assert intent.confidence == 0.0
    assert intent.sql is None
