"""
Unit tests for Visualizer.
Run with:  pytest tests/test_visualizer.py
"""

from __future__ import annotations

import numpy as np

from pulse_detector.visualizer import Visualizer


class TestVisualizer:

    def _draw(self, vis, **overrides):
        kwargs = dict(bpm=72, ibi=833, amplitude=0.3, inside_beat=False,
                      beat_started=False, warming_up=False)
        kwargs.update(overrides)
        return vis.draw(**kwargs)

    def test_blank_canvas_created(self):
        vis = Visualizer(resolution=(320, 240), waveform_height=100, show_fps=False)
        frame = self._draw(vis)
        assert frame.shape == (240, 320, 3)
        assert frame.dtype == np.uint8

    def test_draws_in_place(self):
        vis = Visualizer(resolution=(320, 240), waveform_height=100)
        canvas = np.zeros((240, 320, 3), dtype=np.uint8)
        out = self._draw(vis, frame=canvas)
        assert out is canvas
        assert canvas.any()

    def test_beat_indicator_flashes(self):
        vis = Visualizer(resolution=(320, 240), waveform_height=100, show_fps=False)
        centre = (60, 320 - 40)
        idle = self._draw(vis)
        flash = self._draw(vis, beat_started=True)
        assert tuple(flash[centre]) == (0, 50, 220)
        assert tuple(idle[centre]) == (0, 0, 0)

    def test_waveform_plotted(self):
        vis = Visualizer(resolution=(200, 200), waveform_height=100, show_fps=False)
        empty = self._draw(vis, warming_up=True)
        for i in range(200):
            vis.update_waveform(0.3 + 0.6 * (i % 40 < 20), 0.6)
        plotted = self._draw(vis, warming_up=True)
        panel = slice(110, 195)
        assert plotted[panel].sum() > empty[panel].sum()

        vis.clear()
        cleared = self._draw(vis, warming_up=True)
        assert np.array_equal(cleared[panel], empty[panel])
