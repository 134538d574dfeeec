"""
Tests for the command-line driver (headless only).
Run with:  pytest tests/test_main.py
"""

from __future__ import annotations

import main
from pulse_detector.sources import square_wave


class TestHeadlessRun:

    def test_synthetic_waveform(self, capsys):
        rc = main.main(["--headless", "--duration", "6", "--synthetic-bpm", "75"])
        assert rc == 0
        out = capsys.readouterr().out
        assert "Acquiring" in out
        assert "BPM=" in out

    def test_recording_with_lowpass(self, tmp_path, capsys):
        path = tmp_path / "rec.csv"
        lines = ["time_ms,voltage"]
        t = 0
        for elapsed, voltage in square_wave(duration_ms=8000):
            t += elapsed
            lines.append(f"{t},{voltage}")
        path.write_text("\n".join(lines) + "\n")

        rc = main.main(["--headless", "--input", str(path), "--threshold", "0.65",
                        "--lowpass", "8"])
        assert rc == 0
        assert "BPM=75" in capsys.readouterr().out

    def test_missing_recording(self, tmp_path):
        rc = main.main(["--headless", "--input", str(tmp_path / "missing.csv")])
        assert rc == 1

    def test_bad_lowpass(self):
        rc = main.main(["--headless", "--duration", "2", "--lowpass", "100"])
        assert rc == 1

    def test_bad_interval(self):
        rc = main.main(["--headless", "--interval-ms", "0"])
        assert rc == 1

    def test_threshold_option_applied(self, monkeypatch):
        seen = []

        class RecordingDetector(main.PulseDetector):
            def set_threshold(self, value):
                seen.append(value)
                super().set_threshold(value)

        monkeypatch.setattr(main, "PulseDetector", RecordingDetector)
        rc = main.main(["--headless", "--duration", "2", "--threshold", "0.7"])
        assert rc == 0
        assert seen == [0.7]
