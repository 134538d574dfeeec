"""
Caller-side input conditioning.

The detector accepts any value it is given.  When the raw sensor feed is
noisy or can glitch out of range, run it through a
:class:`SampleConditioner` first: samples are clipped to the expected
input range and then smoothed one at a time by a Butterworth low-pass
whose state is carried between calls.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np
from scipy.signal import butter, sosfilt, sosfilt_zi

logger = logging.getLogger(__name__)


class SampleConditioner:
    """
    Streaming clip + low-pass filter.

    Parameters
    ----------
    sample_rate_hz:
        Rate at which samples arrive.  Must match the sampling loop for the
        cutoff to mean anything.
    cutoff_hz:
        Low-pass corner frequency.  ``None`` disables filtering and only
        clips.  Default 5 Hz (300 BPM) keeps the pulse shape intact.
    order:
        Butterworth filter order (default 2).
    input_range:
        ``(low, high)`` bounds every sample is clipped to.
    """

    def __init__(
        self,
        sample_rate_hz: float = 50.0,
        cutoff_hz: Optional[float] = 5.0,
        order: int = 2,
        input_range: Tuple[float, float] = (0.0, 1.2),
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.cutoff_hz = cutoff_hz
        self.order = order
        self.input_range = input_range

        self._sos = self._build_filter() if cutoff_hz is not None else None
        self._zi: Optional[np.ndarray] = None

    def process(self, voltage: float) -> float:
        """Return the conditioned value of *voltage*."""
        low, high = self.input_range
        value = min(max(float(voltage), low), high)
        if self._sos is None:
            return value

        if self._zi is None:
            # Prime with the first sample so a steady input has no transient
            self._zi = sosfilt_zi(self._sos) * value
        out, self._zi = sosfilt(self._sos, [value], zi=self._zi)
        return float(out[0])

    def reset(self) -> None:
        """Forget the filter state; the next sample re-primes it."""
        self._zi = None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_filter(self) -> np.ndarray:
        if self.sample_rate_hz <= 0 or self.cutoff_hz <= 0 or self.order < 1:
            raise ValueError(
                f"Invalid low-pass design: rate={self.sample_rate_hz} Hz "
                f"cutoff={self.cutoff_hz} Hz order={self.order}"
            )
        nyq = self.sample_rate_hz / 2.0
        if self.cutoff_hz >= nyq:
            raise ValueError(
                f"Cutoff {self.cutoff_hz} Hz must be below Nyquist ({nyq} Hz)"
            )
        sos = butter(self.order, self.cutoff_hz / nyq, btype="lowpass", output="sos")
        logger.debug(
            "Low-pass built: order=%d cutoff=%.2f Hz rate=%.1f Hz",
            self.order, self.cutoff_hz, self.sample_rate_hz,
        )
        return sos
