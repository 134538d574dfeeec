"""
Adaptive threshold pulse detector.

Algorithm
---------
Each call to :meth:`PulseDetector.process_sample` feeds one voltage sample
plus the milliseconds elapsed since the previous call.

1. Track the running peak and trough of the waveform.  Troughs are only
   accepted after 3/5 of the previous inter-beat interval (IBI) so the
   dichrotic notch is ignored.
2. A beat starts when the signal rises above the threshold while not
   already inside a beat, at least 250 ms and 3/5 IBI after the last beat.
3. A beat ends when the signal falls back below the threshold.  The
   threshold is then re-centred at 50 % of the last peak-to-trough span.
4. BPM is 60000 divided by the mean of the last 10 IBIs.  The first IBI
   after start-up is discarded and the second one seeds the history.
5. With no beat for 2.5 s the detector drops back to start-up values and
   re-acquires.

All arithmetic on times is integer; nothing here raises.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Tuple

logger = logging.getLogger(__name__)

HISTORY_SIZE = 10
NOISE_FLOOR_MS = 250
TIMEOUT_MS = 2500
MID_SCALE = 0.6           # half of the assumed 0 – 1.2 V input range
DEFAULT_AMPLITUDE = 0.12  # 1/10 of the input range
INITIAL_IBI_MS = 750      # 80 BPM
TIMEOUT_IBI_MS = 600      # 100 BPM


class PulseDetector:
    """
    Beat detector for an analog pulse waveform (e.g. PPG voltage).

    Parameters
    ----------
    threshold:
        Seed value for the adaptive threshold, in the same units as the
        samples.  Should sit inside the expected input range; it is not
        validated.
    verbose:
        Emit a DEBUG trace of every processing step.  Off by default; the
        trace never affects the computed values.
    """

    AWAITING_FIRST_BEAT = "awaiting_first_beat"
    AWAITING_SECOND_BEAT = "awaiting_second_beat"
    STEADY = "steady"

    def __init__(self, threshold: float = MID_SCALE, verbose: bool = False) -> None:
        self.verbose = verbose
        self._threshold_setting: float = threshold
        self.initialize()

    # ------------------------------------------------------------------
    # Lifecycle / configuration
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Reset every field to its start-up value."""
        self._rate: Deque[int] = deque([0] * HISTORY_SIZE, maxlen=HISTORY_SIZE)
        self._signal: float = 0.0
        self._start_of_beat = False
        self._bpm = 0
        self._ibi = INITIAL_IBI_MS
        self._pulse = False
        self._sample_counter = 0
        self._last_beat_time = 0
        self._n = 0
        self._peak: float = MID_SCALE
        self._trough: float = MID_SCALE
        self._thresh: float = self._threshold_setting
        self._amplitude: float = DEFAULT_AMPLITUDE
        self._first_beat = True
        self._second_beat = False
        logger.debug("Detector reset (threshold=%.4f)", self._thresh)

    def reset(self) -> None:
        """Force re-acquisition, e.g. after the sensor was detached."""
        self.initialize()

    def set_threshold(self, value: float) -> None:
        """Set both the seed and the live threshold."""
        self._threshold_setting = value
        self._thresh = value
        logger.debug("Threshold set to %.4f", value)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process_sample(self, voltage: float, elapsed_ms: int) -> None:
        """
        Process one sample.

        Parameters
        ----------
        voltage:
            Latest sample value.
        elapsed_ms:
            Milliseconds since the previous call.
        """
        self._signal = voltage
        self._sample_counter += elapsed_ms
        self._n = self._sample_counter - self._last_beat_time
        if self.verbose:
            logger.debug(
                "sample=%.6f counter=%d last_beat_time=%d",
                voltage, self._sample_counter, self._last_beat_time,
            )

        past_notch = self._n > (self._ibi // 5) * 3

        # Trough only after the dichrotic notch window
        if voltage < self._thresh and past_notch and voltage < self._trough:
            self._trough = voltage
            if self.verbose:
                logger.debug("  trough found: %.6f", voltage)

        if voltage > self._thresh and voltage > self._peak:
            self._peak = voltage
            if self.verbose:
                logger.debug("  peak found: %.6f", voltage)

        if self._n > NOISE_FLOOR_MS:
            if voltage > self._thresh and not self._pulse and past_notch:
                if not self._register_beat():
                    return

        if voltage < self._thresh and self._pulse:
            self._pulse = False
            self._amplitude = self._peak - self._trough
            self._thresh = self._amplitude / 2 + self._trough
            self._peak = self._thresh
            self._trough = self._thresh
            if self.verbose:
                logger.debug(
                    "  beat over: amplitude=%.6f threshold=%.6f",
                    self._amplitude, self._thresh,
                )

        if self._n > TIMEOUT_MS:
            logger.info(
                "No beat for %d ms, re-acquiring signal", self._n,
            )
            self._thresh = self._threshold_setting
            self._peak = MID_SCALE
            self._trough = MID_SCALE
            self._last_beat_time = self._sample_counter
            self._first_beat = True
            self._second_beat = False
            self._start_of_beat = False
            self._bpm = 0
            self._ibi = TIMEOUT_IBI_MS
            self._pulse = False
            self._amplitude = DEFAULT_AMPLITUDE

    def _register_beat(self) -> bool:
        """
        Handle a beat edge.  Returns False when the sample must not be
        processed any further (the first beat after start-up).
        """
        self._pulse = True
        self._ibi = self._sample_counter - self._last_beat_time
        self._last_beat_time = self._sample_counter
        if self.verbose:
            logger.debug(
                "  beat found: ibi=%d last_beat_time=%d",
                self._ibi, self._last_beat_time,
            )

        if self._second_beat:
            self._second_beat = False
            # Seed the history so BPM is plausible straight away
            self._rate.extend([self._ibi] * HISTORY_SIZE)

        if self._first_beat:
            # No previous reference beat, so this IBI is meaningless
            self._first_beat = False
            self._second_beat = True
            return False

        self._rate.append(self._ibi)
        average = sum(self._rate) // HISTORY_SIZE
        self._bpm = 60000 // average
        self._start_of_beat = True
        return True

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def latest_sample(self) -> float:
        return self._signal

    @property
    def beats_per_minute(self) -> int:
        """0 until the second beat after start-up or a timeout."""
        return self._bpm

    @property
    def inter_beat_interval(self) -> int:
        """Last inter-beat interval in ms."""
        return self._ibi

    @property
    def pulse_amplitude(self) -> float:
        """Peak-to-trough span of the last completed beat."""
        return self._amplitude

    @property
    def last_beat_time(self) -> int:
        return self._last_beat_time

    def saw_start_of_beat(self) -> bool:
        """
        Return True once for each beat edge.

        The flag is cleared by this call, so a caller polling slower than
        the heart rate sees each beat at most once instead of a stale
        ``True``.
        """
        seen = self._start_of_beat
        self._start_of_beat = False
        return seen

    def is_inside_beat(self) -> bool:
        return self._pulse

    # Diagnostics

    @property
    def threshold(self) -> float:
        return self._thresh

    @property
    def threshold_setting(self) -> float:
        return self._threshold_setting

    @property
    def peak(self) -> float:
        return self._peak

    @property
    def trough(self) -> float:
        return self._trough

    @property
    def sample_counter(self) -> int:
        """Total ms fed in since the last reset."""
        return self._sample_counter

    @property
    def time_since_last_beat(self) -> int:
        return self._n

    @property
    def rate_history(self) -> Tuple[int, ...]:
        """Last 10 IBIs, oldest first."""
        return tuple(self._rate)

    @property
    def phase(self) -> str:
        if self._first_beat:
            return self.AWAITING_FIRST_BEAT
        if self._second_beat:
            return self.AWAITING_SECOND_BEAT
        return self.STEADY
