"""
Live display of the pulse detector.

Draws onto a BGR canvas:
  • A scrolling waveform with the adaptive threshold overlaid.
  • BPM readout, grey/yellow while the detector is still acquiring.
  • IBI and amplitude readouts.
  • A beat indicator that flashes on each beat edge.
  • Optional frame-rate counter.
"""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np


# ---------------------------------------------------------------------------
# Colour palette (BGR)
# ---------------------------------------------------------------------------
_GREEN  = (0, 220,  80)
_RED    = (0,  50, 220)
_YELLOW = (0, 210, 210)
_WHITE  = (255, 255, 255)
_BLACK  = (0, 0, 0)
_CYAN   = (220, 200,  0)
_DARK   = (30, 30, 30)


class Visualizer:
    """
    Renders detector state with OpenCV.

    Parameters
    ----------
    resolution:
        (width, height) of the canvas.  The waveform scrolls one pixel per
        sample, so the width is also the number of samples on screen.
    waveform_height:
        Pixel height of the waveform panel at the bottom of the canvas.
    input_range:
        (low, high) sample values mapped to the bottom and top of the panel.
    show_fps:
        Whether to overlay the render rate in the top-right corner.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 360),
        waveform_height: int = 200,
        input_range: Tuple[float, float] = (0.0, 1.2),
        show_fps: bool = True,
    ) -> None:
        self.w, self.h = resolution
        self.waveform_height = min(waveform_height, self.h)
        self.input_range = input_range
        self.show_fps = show_fps

        self._wave_buf = np.full(self.w, np.nan, dtype=np.float64)
        self._thresh_buf = np.full(self.w, np.nan, dtype=np.float64)

        self._fps_tick = cv2.getTickCount()
        self._fps_display: float = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def update_waveform(self, value: float, threshold: float) -> None:
        """Push one sample and the threshold it was compared against."""
        self._wave_buf = np.roll(self._wave_buf, -1)
        self._wave_buf[-1] = value
        self._thresh_buf = np.roll(self._thresh_buf, -1)
        self._thresh_buf[-1] = threshold

    def clear(self) -> None:
        self._wave_buf[:] = np.nan
        self._thresh_buf[:] = np.nan

    def draw(
        self,
        bpm: int,
        ibi: int,
        amplitude: float,
        inside_beat: bool,
        beat_started: bool,
        warming_up: bool,
        frame: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Annotate *frame* in-place and return it.

        Parameters
        ----------
        bpm:
            Current beats-per-minute (0 while acquiring).
        ibi:
            Last inter-beat interval in ms.
        amplitude:
            Peak-to-trough span of the last beat.
        inside_beat:
            Whether the signal is currently above the threshold in a beat.
        beat_started:
            Whether a beat edge was seen since the previous draw.
        warming_up:
            Whether the detector is still in its start-up phase.
        frame:
            BGR canvas to draw on.  A black one is created when omitted.
        """
        if frame is None:
            frame = np.zeros((self.h, self.w, 3), dtype=np.uint8)
        self._update_fps()

        self._draw_bpm(frame, bpm, warming_up)

        cv2.putText(
            frame, f"IBI {ibi} ms   amp {amplitude:.3f}",
            (16, 84), cv2.FONT_HERSHEY_SIMPLEX, 0.5, _WHITE, 1, cv2.LINE_AA,
        )

        self._draw_beat_indicator(frame, inside_beat, beat_started)
        self._draw_waveform(frame)

        if self.show_fps:
            cv2.putText(
                frame,
                f"FPS {self._fps_display:.1f}",
                (self.w - 100, 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.45, _WHITE, 1, cv2.LINE_AA,
            )

        return frame

    # ------------------------------------------------------------------
    # Private drawing helpers
    # ------------------------------------------------------------------

    def _draw_bpm(self, frame: np.ndarray, bpm: int, warming_up: bool) -> None:
        if bpm > 0 and not warming_up:
            cv2.putText(
                frame, f"{bpm} BPM",
                (16, 52), cv2.FONT_HERSHEY_SIMPLEX, 1.6, _BLACK, 5, cv2.LINE_AA,
            )
            cv2.putText(
                frame, f"{bpm} BPM",
                (16, 52), cv2.FONT_HERSHEY_SIMPLEX, 1.6, _GREEN, 3, cv2.LINE_AA,
            )
        else:
            cv2.putText(
                frame, "Acquiring...",
                (16, 52), cv2.FONT_HERSHEY_SIMPLEX, 0.7, _YELLOW, 2, cv2.LINE_AA,
            )

    def _draw_beat_indicator(
        self, frame: np.ndarray, inside_beat: bool, beat_started: bool,
    ) -> None:
        centre = (self.w - 40, 60)
        if beat_started:
            cv2.circle(frame, centre, 16, _RED, -1, cv2.LINE_AA)
        elif inside_beat:
            cv2.circle(frame, centre, 16, _RED, 2, cv2.LINE_AA)
        else:
            cv2.circle(frame, centre, 16, _DARK, 2, cv2.LINE_AA)

    def _draw_waveform(self, frame: np.ndarray) -> None:
        """Draw the scrolling waveform and threshold in the bottom panel."""
        panel_top = self.h - self.waveform_height
        cv2.rectangle(frame, (0, panel_top), (self.w, self.h), _DARK, -1)

        margin = 6
        plot_h = self.waveform_height - 2 * margin
        lo, hi = self.input_range
        span = hi - lo if hi != lo else 1.0

        for buf, colour in ((self._thresh_buf, _CYAN), (self._wave_buf, _GREEN)):
            valid = ~np.isnan(buf)
            if valid.sum() < 2:
                continue
            xs = np.nonzero(valid)[0]
            norm = np.clip((buf[valid] - lo) / span, 0.0, 1.0)
            ys = (panel_top + margin + (1.0 - norm) * plot_h).astype(np.int32)
            pts = np.column_stack([xs, ys]).astype(np.int32)
            cv2.polylines(frame, [pts[:, None, :]], False, colour, 1, cv2.LINE_AA)

        cv2.putText(
            frame, "PPG",
            (4, panel_top + 14), cv2.FONT_HERSHEY_SIMPLEX, 0.4, _WHITE, 1, cv2.LINE_AA,
        )

    def _update_fps(self) -> None:
        now = cv2.getTickCount()
        elapsed = (now - self._fps_tick) / cv2.getTickFrequency()
        if elapsed > 0:
            self._fps_display = 1.0 / elapsed
        self._fps_tick = now
