"""
Sample sources for the pulse detector.

Every source returns a list of ``(elapsed_ms, voltage)`` tuples, i.e. the
arguments of :meth:`PulseDetector.process_sample` in call order.  The first
sample of a recording has ``elapsed_ms == 0``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

Sample = Tuple[int, float]


def load_recording(
    path: Union[str, Path],
    delimiter: str = ",",
    time_column: int = 0,
    voltage_column: int = 1,
) -> List[Sample]:
    """
    Read a recorded waveform from a delimited text file.

    Parameters
    ----------
    path:
        File with one sample per row.  Blank lines and lines starting with
        ``#`` are ignored, as is a single non-numeric header line that is
        followed by numeric rows.
    delimiter:
        Column separator (default ``","``).
    time_column:
        Column holding absolute timestamps in milliseconds.
    voltage_column:
        Column holding the sample value.

    Raises
    ------
    ValueError
        If the file holds no samples, lacks a column, contains non-numeric
        data or has decreasing timestamps.
    """
    with open(path, "r", encoding="utf-8") as fh:
        rows = [ln for ln in fh if ln.strip() and not ln.lstrip().startswith("#")]

    # Only a non-numeric first row followed by numeric data is a header
    if rows and not _is_numeric_row(rows[0], delimiter):
        if len(rows) == 1 or _is_numeric_row(rows[1], delimiter):
            logger.debug("Skipping header row in %s: %r", path, rows[0].strip())
            rows = rows[1:]
    if not rows:
        raise ValueError(f"{path}: no samples")

    data = np.loadtxt(rows, delimiter=delimiter, ndmin=2)
    if data.shape[1] <= max(time_column, voltage_column):
        raise ValueError(
            f"{path}: expected at least {max(time_column, voltage_column) + 1} "
            f"columns, found {data.shape[1]}"
        )

    times = data[:, time_column]
    voltages = data[:, voltage_column]

    backwards = np.diff(times) < 0
    if backwards.any():
        row = int(np.argmax(backwards)) + 1
        raise ValueError(f"{path}: timestamp goes backwards at sample {row}")

    # Round absolute times, not gaps, so fractional intervals do not drift
    t_ms = np.rint(times).astype(np.int64)
    elapsed_ms = np.diff(t_ms, prepend=t_ms[0])
    logger.info(
        "Loaded %d samples (%.1f s) from %s",
        len(voltages), (times[-1] - times[0]) / 1000.0, path,
    )
    return [(int(e), float(v)) for e, v in zip(elapsed_ms, voltages)]


def _is_numeric_row(line: str, delimiter: str) -> bool:
    try:
        [float(field) for field in line.strip().split(delimiter)]
    except ValueError:
        return False
    return True


def square_wave(
    period_ms: int = 800,
    high: float = 0.9,
    low: float = 0.5,
    sample_interval_ms: int = 20,
    duration_ms: int = 10000,
    duty: float = 0.5,
) -> List[Sample]:
    """
    Ideal two-level pulse train.

    Sample times are ``sample_interval_ms, 2 * sample_interval_ms, ...`` up to
    *duration_ms*; the value is *high* for the first ``duty`` fraction of
    each period and *low* for the rest.
    """
    t = np.arange(sample_interval_ms, duration_ms + 1, sample_interval_ms)
    values = np.where((t % period_ms) < duty * period_ms, high, low)
    return [(sample_interval_ms, float(v)) for v in values]


def ppg_wave(
    bpm: float = 72.0,
    sample_interval_ms: int = 20,
    duration_ms: int = 10000,
    baseline: float = 0.6,
    amplitude: float = 0.3,
    noise: float = 0.0,
    seed: Optional[int] = None,
) -> List[Sample]:
    """
    Synthetic photoplethysmogram.

    Each cycle is a systolic Gaussian pulse followed by a smaller dichrotic
    bump, scaled to span ``baseline ± amplitude / 2``.  *noise* adds
    zero-mean Gaussian noise with that standard deviation.
    """
    period_ms = 60000.0 / bpm
    t = np.arange(sample_interval_ms, duration_ms + 1, sample_interval_ms)
    phase = (t % period_ms) / period_ms

    def _bump(centre: float, width: float) -> np.ndarray:
        # circular distance so the pulse wraps across the cycle boundary
        d = np.abs(phase - centre)
        d = np.minimum(d, 1.0 - d)
        return np.exp(-((d / width) ** 2))

    shape = _bump(0.2, 0.07) + 0.4 * _bump(0.55, 0.08)
    shape = (shape - shape.min()) / (shape.max() - shape.min())
    values = baseline - amplitude / 2.0 + amplitude * shape

    if noise > 0:
        rng = np.random.default_rng(seed)
        values = values + rng.normal(0.0, noise, size=values.shape)

    return [(sample_interval_ms, float(v)) for v in values]
