#!/usr/bin/env python3
"""
Pulse Detector – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --input PATH          Replay a CSV recording (time_ms, voltage)
    --synthetic-bpm FLOAT Heart rate of the generated waveform (default: 72)
    --duration FLOAT      Length of the generated waveform in s (default: 30)
    --interval-ms INT     Sample interval of the generated waveform (default: 20)
    --noise FLOAT         Gaussian noise added to the generated waveform
    --threshold FLOAT     Seed threshold (default: 0.6)
    --lowpass HZ          Low-pass the input before detection (0 = off)
    --realtime            Pace samples at their recorded rate
    --headless            Run without display window (log readings to stdout)
    --save PATH           Save the rendered display to a video file
    --verbose             Debug logging, including the per-sample trace

Keyboard shortcuts (when a window is open)
------------------------------------------
    q / ESC  – quit
    r        – reset the detector
    s        – save a single rendered frame as PNG
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

# Must be set before cv2 is imported so Qt5 uses X11/XWayland instead of
# looking for a Wayland plugin that is not bundled with pip-installed opencv.
import os
os.environ.setdefault("QT_QPA_PLATFORM", "xcb")
os.environ.setdefault("QT_QPA_FONTDIR", "/usr/share/fonts/truetype/dejavu")

import cv2
import numpy as np

from pulse_detector.conditioner import SampleConditioner
from pulse_detector.detector import PulseDetector
from pulse_detector.sources import load_recording, ppg_wave
from pulse_detector.visualizer import Visualizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("pulse_detector")

WINDOW_NAME = "Pulse Detector"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Real-time heart rate from an analog pulse waveform",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--input", type=Path, default=None,
                        help="CSV recording with time_ms and voltage columns")
    parser.add_argument("--synthetic-bpm", type=float, default=72.0,
                        help="Heart rate of the synthetic waveform")
    parser.add_argument("--duration", type=float, default=30.0,
                        help="Length of the synthetic waveform in seconds")
    parser.add_argument("--interval-ms", type=int, default=20,
                        help="Sample interval of the synthetic waveform")
    parser.add_argument("--noise", type=float, default=0.0,
                        help="Std-dev of noise added to the synthetic waveform")
    parser.add_argument("--threshold", type=float, default=0.6,
                        help="Seed value for the adaptive threshold")
    parser.add_argument("--lowpass", type=float, default=0.0,
                        help="Low-pass cutoff in Hz applied before detection (0 = off)")
    parser.add_argument("--realtime", action="store_true",
                        help="Sleep between samples to mimic a live sensor")
    parser.add_argument("--headless", action="store_true",
                        help="No display window; log readings to stdout only")
    parser.add_argument("--save", type=Path, default=None,
                        help="Save the rendered display to this video file")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable debug logging and the per-sample trace")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load samples
    if args.input is not None:
        try:
            samples = load_recording(args.input)
        except (OSError, ValueError) as exc:
            logger.error("Cannot read recording %s: %s", args.input, exc)
            return 1
    else:
        if args.interval_ms <= 0 or args.duration <= 0 or args.synthetic_bpm <= 0:
            logger.error("--interval-ms, --duration and --synthetic-bpm must be positive.")
            return 1
        samples = ppg_wave(
            bpm=args.synthetic_bpm,
            sample_interval_ms=args.interval_ms,
            duration_ms=int(args.duration * 1000),
            noise=args.noise,
        )
        logger.info(
            "Generated %d synthetic samples at %.1f BPM", len(samples), args.synthetic_bpm,
        )

    intervals = [elapsed for elapsed, _ in samples[1:] if elapsed > 0]
    interval_ms = float(np.median(intervals)) if intervals else float(args.interval_ms)
    sample_rate = 1000.0 / interval_ms

    # Initialise components
    detector = PulseDetector(verbose=args.verbose)
    detector.set_threshold(args.threshold)

    conditioner: SampleConditioner | None = None
    if args.lowpass > 0:
        try:
            conditioner = SampleConditioner(sample_rate_hz=sample_rate, cutoff_hz=args.lowpass)
        except ValueError as exc:
            logger.error("Invalid --lowpass: %s", exc)
            return 1

    vis = Visualizer(show_fps=not args.headless)

    writer: cv2.VideoWriter | None = None
    if args.save:
        fourcc = cv2.VideoWriter_fourcc(*"mp4v")
        writer = cv2.VideoWriter(str(args.save), fourcc, sample_rate, (vis.w, vis.h))
        logger.info("Saving video to %s", args.save)

    logger.info("Starting pulse detector.  Press 'q' or ESC to quit.")

    if not args.headless:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)

    next_report_ms = 1000

    try:
        for elapsed_ms, voltage in samples:
            if args.realtime:
                time.sleep(elapsed_ms / 1000.0)

            value = conditioner.process(voltage) if conditioner else voltage
            threshold = detector.threshold
            detector.process_sample(value, elapsed_ms)
            beat = detector.saw_start_of_beat()
            bpm = detector.beats_per_minute

            vis.update_waveform(value, threshold)

            # Stdout log
            if args.headless and (beat or detector.sample_counter >= next_report_ms):
                next_report_ms = detector.sample_counter + 1000
                t = detector.sample_counter / 1000.0
                if bpm > 0:
                    print(
                        f"[{t:7.2f}s] BPM={bpm}  IBI={detector.inter_beat_interval}ms  "
                        f"amp={detector.pulse_amplitude:.3f}" + ("  beat" if beat else "")
                    )
                else:
                    print(f"[{t:7.2f}s] Acquiring…  phase={detector.phase}")

            if args.headless and writer is None:
                continue

            rendered = vis.draw(
                bpm=bpm,
                ibi=detector.inter_beat_interval,
                amplitude=detector.pulse_amplitude,
                inside_beat=detector.is_inside_beat(),
                beat_started=beat,
                warming_up=detector.phase != PulseDetector.STEADY,
            )

            if writer is not None:
                writer.write(rendered)

            if not args.headless:
                cv2.imshow(WINDOW_NAME, rendered)
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), 27):          # q or ESC
                    logger.info("Quit requested by user.")
                    break
                elif key == ord("r"):
                    detector.reset()
                    if conditioner is not None:
                        conditioner.reset()
                    vis.clear()
                    logger.info("Detector reset.")
                elif key == ord("s"):
                    fname = f"snapshot_{int(time.time())}.png"
                    cv2.imwrite(fname, rendered)
                    logger.info("Saved snapshot: %s", fname)

    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        if writer is not None:
            writer.release()
        if not args.headless:
            cv2.destroyAllWindows()

    logger.info(
        "Finished: %.1f s processed, last BPM=%d",
        detector.sample_counter / 1000.0, detector.beats_per_minute,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
