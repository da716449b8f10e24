"""
A minimal, energy-based Voice Activity Detection (VAD) module.

Provides a simple RMS-energy threshold VAD intended for
real-time or streaming audio pipelines. It operates on short, fixed-size
audio frames (float32 samples) and reports voice activity only after a
configurable number of consecutive frames exceed a given energy threshold.
"""
import numpy as np

class EnergyVAD:
    """
    Simple energy-based Voice Activity Detector (VAD).

    For each observed frame, computes the RMS energy and compares it
    against a fixed threshold. Voice activity is considered present only
    after a configurable number of *consecutive* frames exceed the
    threshold, which avoids triggering on single-frame noise spikes.
    """
    def __init__(self, threshold: float, frames_required: int):
        if frames_required < 1:
            raise ValueError("frames_required must be >= 1")
        self._threshold = threshold
        self._frames_required = frames_required
        self._count = 0

    def observe(self, f32: np.ndarray) -> bool:
        """
        Observe a single audio frame and update VAD state.

        Args:
            f32:
                A 1D NumPy array of float32 audio samples representing one
                analysis frame.

        Returns:
            True if at least `frames_required` consecutive frames
            (including this one) have exceeded the energy threshold.
        """
        if f32.size == 0:
            self._count = 0
            return False
        rms = float(np.sqrt(np.mean(np.square(f32))))
        if rms >= self._threshold:
            self._count += 1
        else:
            self._count = 0
        return self._count >= self._frames_required

    def reset(self) -> None:
        """
        Reset the internal VAD state.

        Subsequent detection requires a fresh run of `frames_required`
        qualifying frames.
        """
        self._count = 0
