# tools/transcribe_file.py
# Run the configured transcriber on one 16 kHz recording, outside the server.
#
#   ASR_PROVIDER=local ASR_MODEL=base python tools/transcribe_file.py hello.wav
import asyncio
import sys
from dataclasses import replace

import soundfile as sf
from dotenv import load_dotenv

from adapters.factory import build_transcriber
from audio.pcm import float32_to_pcm16le
from config import AppConfig

load_dotenv()

path = sys.argv[1] if len(sys.argv) > 1 else "hello.wav"
audio, sr = sf.read(path, dtype="float32", always_2d=True)
assert sr == 16000

config = replace(AppConfig.load_from_env(), audio_input_format="pcm16")
transcriber = build_transcriber(config)

print(asyncio.run(transcriber.transcribe(float32_to_pcm16le(audio[:, 0]))))
