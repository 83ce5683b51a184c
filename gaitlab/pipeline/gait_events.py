"""
Heel-strike / toe-off detection for a thigh-mounted IMU.

Both events come from the filtered acceleration magnitude normalized by its
mean over the analysed buffer:
1. Heel strikes are local maxima above HEEL_STRIKE_PEAK_HEIGHT.
2. Toe-offs are local minima, searched as maxima of the inverted signal
   above TOE_OFF_VALLEY_HEIGHT (i.e. normalized magnitude below 0.8).
After each accepted extremum the search skips a fixed refractory window of
MIN_PEAK_DISTANCE_S.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..config.constants import (
    HEEL_STRIKE_PEAK_HEIGHT,
    MIN_PEAK_DISTANCE_S,
    TOE_OFF_VALLEY_HEIGHT,
)

__all__ = [
    "EventKind",
    "GaitEvent",
    "GaitEvents",
    "normalized_magnitude",
    "find_peaks_refractory",
    "detect_heel_strikes",
    "detect_toe_offs",
    "detect_gait_events",
]


class EventKind(str, Enum):
    HEEL_STRIKE = "heel_strike"
    TOE_OFF = "toe_off"


@dataclass(frozen=True)
class GaitEvent:
    sample_index: int
    kind: EventKind


def normalized_magnitude(acc: np.ndarray) -> np.ndarray:
    """|acc| divided by its mean (mean taken as 1.0 when not positive)."""
    A = np.asarray(acc, dtype=float)
    if A.size == 0:
        return np.zeros(0, dtype=float)
    mag = np.linalg.norm(A, axis=1)
    mean = float(np.mean(mag))
    if not (mean > 0):
        mean = 1.0
    return mag / mean


def find_peaks_refractory(x: np.ndarray, fs: float, dist_s: float, height: float) -> np.ndarray:
    """Strict local maxima above height, skipping dist_s after each accepted one.

    Unlike scipy.signal.find_peaks(distance=...), the earliest qualifying peak
    wins; later, taller peaks inside the refractory window are ignored.
    """
    x = np.asarray(x, dtype=float)
    if x.size < 3:
        return np.zeros(0, dtype=int)
    dist = max(1, int(dist_s * fs))
    mid = x[1:-1]
    cand = np.flatnonzero((mid > x[:-2]) & (mid > x[2:]) & (mid > height)) + 1
    out: List[int] = []
    next_ok = 0
    for c in cand:
        if c >= next_ok:
            out.append(int(c))
            next_ok = int(c) + dist
    return np.asarray(out, dtype=int)


def detect_heel_strikes(acc_filt: np.ndarray, fs: float) -> np.ndarray:
    return find_peaks_refractory(
        normalized_magnitude(acc_filt), fs, MIN_PEAK_DISTANCE_S, HEEL_STRIKE_PEAK_HEIGHT
    )


def detect_toe_offs(acc_filt: np.ndarray, fs: float) -> np.ndarray:
    return find_peaks_refractory(
        -normalized_magnitude(acc_filt), fs, MIN_PEAK_DISTANCE_S, TOE_OFF_VALLEY_HEIGHT
    )


@dataclass(frozen=True)
class GaitEvents:
    """Heel strikes and toe-offs of one limb, as sample indices."""
    heel_strikes: np.ndarray
    toe_offs: np.ndarray

    def toe_off_between(self, start: int, end: int) -> Optional[int]:
        """First toe-off strictly inside (start, end), or None."""
        k = int(np.searchsorted(self.toe_offs, start, side="right"))
        if k < self.toe_offs.size and self.toe_offs[k] < end:
            return int(self.toe_offs[k])
        return None

    def cycles(self) -> Iterator[Tuple[int, Optional[int], int]]:
        """(heel_strike, toe_off or None, next_heel_strike) per cycle."""
        hs = self.heel_strikes
        for i in range(hs.size - 1):
            a, b = int(hs[i]), int(hs[i + 1])
            yield a, self.toe_off_between(a, b), b

    def as_list(self) -> List[GaitEvent]:
        ev = [GaitEvent(int(i), EventKind.HEEL_STRIKE) for i in self.heel_strikes]
        ev += [GaitEvent(int(i), EventKind.TOE_OFF) for i in self.toe_offs]
        ev.sort(key=lambda e: (e.sample_index, e.kind != EventKind.HEEL_STRIKE))
        return ev


def detect_gait_events(
    acc_filt: np.ndarray, fs: float, segment_starts: Optional[Sequence[int]] = None
) -> GaitEvents:
    """Events over a concatenated buffer, indices relative to the whole buffer.

    Each segment is normalized by its own mean magnitude.
    """
    A = np.asarray(acc_filt, dtype=float)
    n = A.shape[0]
    bounds = sorted({0, *(int(s) for s in (segment_starts or ()) if 0 <= int(s) < n)})
    hs: List[np.ndarray] = []
    to: List[np.ndarray] = []
    for s, e in zip(bounds, bounds[1:] + [n]):
        hs.append(detect_heel_strikes(A[s:e], fs) + s)
        to.append(detect_toe_offs(A[s:e], fs) + s)
    return GaitEvents(
        heel_strikes=np.concatenate(hs) if hs else np.zeros(0, dtype=int),
        toe_offs=np.concatenate(to) if to else np.zeros(0, dtype=int),
    )
