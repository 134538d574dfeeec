"""
Unit tests for the sample sources.
Run with:  pytest tests/test_sources.py
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from pulse_detector.detector import PulseDetector
from pulse_detector.sources import load_recording, ppg_wave, square_wave


class TestSquareWave:

    def test_shape_and_levels(self):
        samples = square_wave(period_ms=800, high=0.9, low=0.5,
                              sample_interval_ms=20, duration_ms=10000)
        assert len(samples) == 500
        assert samples[0] == (20, 0.9)
        # t = 400 ms is the first low sample
        assert samples[18][1] == 0.9
        assert samples[19][1] == 0.5
        assert {e for e, _ in samples} == {20}

    def test_duty_cycle(self):
        samples = square_wave(period_ms=1000, sample_interval_ms=10,
                              duration_ms=1000, duty=0.25)
        highs = sum(1 for _, v in samples if v == 0.9)
        assert highs == 25


class TestPpgWave:

    def test_range(self):
        samples = ppg_wave(bpm=60.0, baseline=0.6, amplitude=0.3, duration_ms=5000)
        values = np.array([v for _, v in samples])
        assert values.min() >= 0.45 - 1e-9
        assert values.max() <= 0.75 + 1e-9
        assert np.ptp(values) > 0.25

    def test_noise_is_reproducible(self):
        a = ppg_wave(noise=0.02, seed=3)
        b = ppg_wave(noise=0.02, seed=3)
        clean = ppg_wave()
        assert a == b
        assert a != clean


class TestLoadRecording:

    def test_header_and_comments(self, tmp_path):
        path = tmp_path / "rec.csv"
        path.write_text(
            "# recorded on bench\n"
            "time_ms,voltage\n"
            "1000,0.50\n"
            "1020,0.55\n"
            "1045,0.90\n"
        )
        samples = load_recording(path)
        assert samples == [(0, 0.5), (20, 0.55), (25, 0.9)]

    def test_columns_selectable(self, tmp_path):
        path = tmp_path / "rec.txt"
        path.write_text("0.1 0 7\n0.2 10 7\n")
        samples = load_recording(path, delimiter=" ", time_column=1, voltage_column=0)
        assert samples == [(0, 0.1), (10, 0.2)]

    def test_decreasing_time_rejected(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("0,0.5\n20,0.5\n10,0.5\n")
        with pytest.raises(ValueError, match="backwards"):
            load_recording(path)

    def test_header_only_rejected(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("time_ms,voltage\n")
        with pytest.raises(ValueError, match="no samples"):
            load_recording(path)

    def test_missing_column_rejected(self, tmp_path):
        path = tmp_path / "one.csv"
        path.write_text("0\n20\n40\n")
        with pytest.raises(ValueError, match="columns"):
            load_recording(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_recording(tmp_path / "nope.csv")

    def test_fractional_timestamps_do_not_drift(self, tmp_path):
        # 300 Hz: gaps of 3.333 ms must not all collapse to 3 ms
        ts = np.arange(3000) * 1000.0 / 300.0
        path = tmp_path / "rec_300hz.csv"
        path.write_text("time_ms,voltage\n" + "".join(
            f"{t:.4f},{0.9 if (t % 800) < 400 else 0.5}\n" for t in ts
        ))
        samples = load_recording(path)
        assert sum(e for e, _ in samples) == int(np.rint(ts[-1]) - np.rint(ts[0]))

        d = PulseDetector(threshold=0.65)
        for elapsed, voltage in samples:
            d.process_sample(voltage, elapsed)
        assert d.beats_per_minute == 75

    def test_malformed_first_row_not_taken_as_header(self, tmp_path):
        path = tmp_path / "trailing.csv"
        path.write_text("1000,0.5,\n1020,0.6,\n")
        with pytest.raises(ValueError):
            load_recording(path)

    def test_header_skip_logged(self, tmp_path, caplog):
        caplog.set_level(logging.DEBUG, logger="pulse_detector.sources")
        path = tmp_path / "rec.csv"
        path.write_text("time_ms,voltage\n0,0.5\n20,0.6\n")
        assert load_recording(path) == [(0, 0.5), (20, 0.6)]
        assert any("header" in r.getMessage() for r in caplog.records)
