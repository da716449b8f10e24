# tools/wav_info.py
# Check that a recording can be sent with `python -m client --file`.
import sys
import wave

from constants import AUDIO_CHANNELS, AUDIO_SAMPLE_RATE_HZ, AUDIO_SAMPLE_WIDTH_BYTES

path = sys.argv[1] if len(sys.argv) > 1 else "hello.wav"

with wave.open(path, "rb") as wf:
    rate, channels, width = wf.getframerate(), wf.getnchannels(), wf.getsampwidth()
    print("sample_rate:", rate)
    print("channels:", channels)
    print("sample_width_bytes:", width)
    print("duration_s:", round(wf.getnframes() / rate, 2))

ok = (rate, channels, width) == (AUDIO_SAMPLE_RATE_HZ, AUDIO_CHANNELS, AUDIO_SAMPLE_WIDTH_BYTES)
print("client_compatible:", ok)
