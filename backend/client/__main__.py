"""
Command-line voice client.

    python -m client                       # talk through the microphone
    python -m client --file question.wav   # send a 16 kHz recording instead

Press Enter to start a turn; speech end is detected automatically unless
--no-auto-stop is given, in which case press Enter again to stop.
"""

from __future__ import annotations

import argparse
import asyncio
import os

from dotenv import load_dotenv

from audio.pcm import float32_to_pcm16le
from client.assistant import VoiceAssistantClient
from client.capture import MicrophoneSource, VoiceActivityDetector
from client.playback import PlaybackScheduler, SoundDeviceSink
from client.transport import ReconnectingClient
from constants import AUDIO_SAMPLE_RATE_HZ, CAPTURE_SAMPLES_PER_CHUNK
from observability.logger import configure_logging


DEFAULT_WS_URL = "ws://localhost:8080/ws"


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="client", description="Flight information voice client")
    parser.add_argument("--url", default=os.getenv("VOICE_WS_URL", DEFAULT_WS_URL))
    parser.add_argument("--file", help="send this recording instead of using the microphone")
    parser.add_argument("--no-auto-stop", action="store_true")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "WARNING"))
    return parser.parse_args()


def _load_recording(path: str) -> list[bytes]:
    import soundfile as sf

    data, sample_rate = sf.read(path, dtype="float32", always_2d=True)
    if sample_rate != AUDIO_SAMPLE_RATE_HZ:
        raise SystemExit(f"{path}: expected {AUDIO_SAMPLE_RATE_HZ} Hz audio, got {sample_rate} Hz")
    pcm = float32_to_pcm16le(data[:, 0])
    step = CAPTURE_SAMPLES_PER_CHUNK * 2
    return [pcm[i:i + step] for i in range(0, len(pcm), step)]


def _print_turn(assistant: VoiceAssistantClient) -> None:
    state = assistant.state
    if state.error:
        print(f"error: {state.error}")
        return
    print(f"you: {state.transcription}")
    if state.intent:
        print(f"intent: {state.intent.get('intent')}")
    print(f"assistant: {state.response}")


async def _run(args: argparse.Namespace) -> None:
    transport = ReconnectingClient(args.url)
    playback = PlaybackScheduler(SoundDeviceSink())

    if args.file:
        assistant = VoiceAssistantClient(transport, playback)
    else:
        assistant = VoiceAssistantClient(
            transport,
            playback,
            microphone=MicrophoneSource(),
            vad=VoiceActivityDetector(),
            auto_stop=not args.no_auto_stop,
        )

    await transport.connect()
    try:
        while True:
            line = await asyncio.to_thread(input, "Press Enter to ask (q to quit): ")
            if line.strip().lower() == "q":
                break
            if transport.error is not None:
                print(f"error: {transport.error}")
                break

            await assistant.start_listening()

            if args.file:
                for chunk in _load_recording(args.file):
                    await assistant.send_audio(chunk)
                await assistant.stop_listening()
            elif args.no_auto_stop:
                await asyncio.to_thread(input, "Listening... press Enter to stop ")
                await assistant.stop_listening()

            await assistant.state.turn_complete.wait()
            await playback.wait_idle()
            _print_turn(assistant)
    finally:
        await transport.disconnect()


def main() -> None:
    load_dotenv()
    args = _parse_args()
    configure_logging(level=args.log_level)
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
