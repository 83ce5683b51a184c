from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np
import pandas as pd

from ..config.constants import (
    ACTIVITY_VARIANCE_THR,
    ACTIVITY_WINDOW_S,
    DEFAULT_SAMPLE_RATE_HZ,
    MIN_RATE_SPAN_S,
    MIN_SAMPLES_FOR_RATE,
    MIN_WALK_SEGMENT_S,
)
from .samples import SensorSample

__all__ = [
    "estimate_sample_rate",
    "estimate_segments_rate",
    "rolling_forward_variance",
    "active_runs",
    "detect_walking_activity",
]

logger = logging.getLogger(__name__)


def estimate_sample_rate(samples: Sequence[SensorSample]) -> float:
    """Nominal rate from the timestamp span; DEFAULT_SAMPLE_RATE_HZ when ambiguous."""
    n = len(samples)
    if n < MIN_SAMPLES_FOR_RATE:
        return DEFAULT_SAMPLE_RATE_HZ
    span_s = (samples[-1].timestamp_nanos - samples[0].timestamp_nanos) / 1e9
    if span_s > MIN_RATE_SPAN_S:
        return float((n - 1) / span_s)
    return DEFAULT_SAMPLE_RATE_HZ


def estimate_segments_rate(segments: Sequence[Sequence[SensorSample]]) -> float:
    """Rate pooled over segments so the gaps between them do not count.

    Equals estimate_sample_rate for a single segment.
    """
    intervals = 0
    span_s = 0.0
    for seg in segments:
        if len(seg) < 2:
            continue
        intervals += len(seg) - 1
        span_s += (seg[-1].timestamp_nanos - seg[0].timestamp_nanos) / 1e9
    if intervals + 1 < MIN_SAMPLES_FOR_RATE or span_s <= MIN_RATE_SPAN_S:
        return DEFAULT_SAMPLE_RATE_HZ
    return float(intervals / span_s)


def rolling_forward_variance(x: np.ndarray, window: int) -> np.ndarray:
    """Sample variance of x[i:i+window] for every i.

    Windows are truncated at the end of the series; windows holding fewer
    than two values report 0.
    """
    x = np.asarray(x, dtype=float)
    if x.size == 0:
        return np.zeros(0, dtype=float)
    w = int(max(1, window))
    rev = pd.Series(x[::-1])
    var = rev.rolling(window=w, min_periods=2).var(ddof=1).fillna(0.0).to_numpy()
    return var[::-1].copy()


def active_runs(mask: np.ndarray) -> list[tuple[int, int]]:
    """Half-open (start, end) index pairs of contiguous True runs."""
    m = np.asarray(mask, dtype=bool)
    if m.size == 0:
        return []
    padded = np.concatenate([[False], m, [False]]).astype(np.int8)
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return [(int(s), int(e)) for s, e in zip(starts, ends)]


def detect_walking_activity(
    samples: Sequence[SensorSample], sample_rate: float
) -> List[List[SensorSample]]:
    """Split a raw stream into walking segments.

    A sample is active when the variance of the acceleration magnitude over
    the following ACTIVITY_WINDOW_S exceeds ACTIVITY_VARIANCE_THR. Active runs
    must be longer than MIN_WALK_SEGMENT_S to be kept.
    """
    fs = float(sample_rate)
    if not np.isfinite(fs) or fs <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate!r}")
    n = len(samples)
    if n < fs * MIN_WALK_SEGMENT_S:
        logger.debug("stream of %d samples is shorter than %.1f s", n, MIN_WALK_SEGMENT_S)
        return []

    window = max(1, int(ACTIVITY_WINDOW_S * fs))
    min_len = int(MIN_WALK_SEGMENT_S * fs)

    acc = np.array([s.acc for s in samples], dtype=float)
    mag = np.linalg.norm(acc, axis=1)
    active = rolling_forward_variance(mag, window) > ACTIVITY_VARIANCE_THR

    segments: List[List[SensorSample]] = []
    for s, e in active_runs(active):
        if e - s > min_len:
            segments.append(list(samples[s:e]))
    logger.debug("detected %d walking segment(s) in %d samples at %.1f Hz", len(segments), n, fs)
    return segments
