"""
Pulse Detector: real-time beat detection on an analog pulse waveform.
Feed voltage samples (e.g. from a PPG sensor) with the time elapsed since
the previous sample; read back BPM, inter-beat interval, beat edges and
pulse amplitude.
"""

from pulse_detector.detector import PulseDetector

__version__ = "0.1.0"
__author__ = "pulse_detector"

__all__ = ["PulseDetector"]
