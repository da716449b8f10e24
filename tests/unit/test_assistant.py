# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any, AsyncIterator, Callable

import numpy as np

from audio.pcm import float32_to_pcm16le
from client.assistant import VoiceAssistantClient
from client.capture import VoiceActivityDetector
from client.playback import PlaybackScheduler
from protocol.messages import decode_audio, encode_audio


class FakeTransport:
    def __init__(self) -> None:
        self.listeners: dict[str, list[Callable[[dict[str, Any]], None]]] = {}
        self.sent: list[dict[str, Any]] = []
        self.is_connected = True

    def on(self, msg_type: str, callback: Callable[[dict[str, Any]], None]) -> None:
        self.listeners.setdefault(msg_type, []).append(callback)

    async def send(self, msg_type: str, **payload: Any) -> None:
        self.sent.append({"type": msg_type, **payload})

    def deliver(self, message: dict[str, Any]) -> None:
        for callback in self.listeners.get(message["type"], []):
            callback(message)


class CollectingSink:
    def __init__(self) -> None:
        self.played: list[bytes] = []

    async def play(self, audio: bytes) -> None:
        self.played.append(audio)


def test_turn_updates_state_and_plays_audio_in_order() -> None:
    async def scenario() -> tuple[VoiceAssistantClient, FakeTransport, CollectingSink]:
        transport = FakeTransport()
        sink = CollectingSink()
        playback = PlaybackScheduler(sink)
        assistant = VoiceAssistantClient(transport, playback)  # type: ignore[arg-type]

        await assistant.start_listening()
        transport.deliver({"type": "recording_started"})
        assert assistant.state.listening

        await assistant.send_audio(b"\x01\x02")
        await assistant.stop_listening()

        for message in (
            {"type": "processing_started"},
            {"type": "transcription", "data": "when does 1214 leave"},
            {"type": "intent", "data": {"intent": "flight_status"}},
            {"type": "response_chunk", "data": "It leaves "},
            {"type": "audio_chunk_response", "audio": encode_audio(b"one")},
            {"type": "response_chunk", "data": "at noon."},
            {"type": "response", "data": "It leaves at noon."},
            {"type": "audio_chunk_response", "audio": encode_audio(b"two")},
            {"type": "processing_complete"},
        ):
            transport.deliver(message)

        await assistant.state.turn_complete.wait()
        await playback.wait_idle()
        return assistant, transport, sink

    assistant, transport, sink = asyncio.run(scenario())

    assert [m["type"] for m in transport.sent] == ["start_recording", "audio_chunk", "stop_recording"]
    assert decode_audio(transport.sent[1]["audio"]) == b"\x01\x02"
    assert assistant.state.transcription == "when does 1214 leave"
    assert assistant.state.intent == {"intent": "flight_status"}
    assert assistant.state.response == "It leaves at noon."
    assert not assistant.state.processing
    assert not assistant.state.listening
    assert sink.played == [b"one", b"two"]


def test_error_resets_flags_and_bad_audio_is_ignored() -> None:
    async def scenario() -> tuple[VoiceAssistantClient, CollectingSink]:
        transport = FakeTransport()
        sink = CollectingSink()
        assistant = VoiceAssistantClient(transport, PlaybackScheduler(sink))  # type: ignore[arg-type]

        transport.deliver({"type": "processing_started"})
        transport.deliver({"type": "audio_response", "audio": "@@not-base64@@"})
        transport.deliver({"type": "error", "message": "Failed to process audio"})
        await asyncio.sleep(0)
        return assistant, sink

    assistant, sink = asyncio.run(scenario())
    assert assistant.state.error == "Failed to process audio"
    assert not assistant.state.processing
    assert assistant.state.turn_complete.is_set()
    assert sink.played == []


class ScriptedSource:
    """AudioSource that replays fixed chunks, then waits until stopped."""

    def __init__(self, chunks: list[bytes]) -> None:
        self.script = chunks
        self.started = False
        self.stopped = asyncio.Event()

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped.set()

    async def chunks(self) -> AsyncIterator[bytes]:
        for chunk in self.script:
            if self.stopped.is_set():
                return
            await asyncio.sleep(0)
            yield chunk
        await self.stopped.wait()


def test_auto_stop_after_speech_end() -> None:
    speech = float32_to_pcm16le(0.5 * np.ones(1600, dtype=np.float32))
    silence = float32_to_pcm16le(np.zeros(1600, dtype=np.float32))

    async def scenario() -> tuple[FakeTransport, ScriptedSource]:
        transport = FakeTransport()
        source = ScriptedSource([silence, speech, speech, silence, silence, silence, silence])
        assistant = VoiceAssistantClient(
            transport,  # type: ignore[arg-type]
            PlaybackScheduler(CollectingSink()),
            microphone=source,
            vad=VoiceActivityDetector(threshold=0.02, frames_required=1, silence_threshold_ms=300),
        )
        await assistant.start_listening()
        await asyncio.wait_for(source.stopped.wait(), timeout=1.0)
        await asyncio.sleep(0)
        return transport, source

    transport, source = asyncio.run(scenario())
    types = [m["type"] for m in transport.sent]

    assert source.started
    assert types[0] == "start_recording"
    assert types[-1] == "stop_recording"
    # silence, speech, speech, then three silent chunks reach the 300 ms threshold
    assert types.count("audio_chunk") == 6
