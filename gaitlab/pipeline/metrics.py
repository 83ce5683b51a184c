"""
Per-limb gait metrics.

analyze_single_limb runs the full single-limb chain over the concatenated
walking segments of one thigh sensor:

    low-pass -> AHRS -> Euler angles -> gait events -> ZUPT trajectory -> metrics

Segments are concatenated into one buffer, but every sequential stage
(filter, orientation, events, integration) restarts at each segment
boundary and no gait cycle is allowed to straddle one.

Insufficient data never raises: the zero-valued LegMetrics() sentinel is
returned instead and callers test LegMetrics.is_empty.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.signal import periodogram

from ..config.constants import (
    ABNORMAL_SWING_Z,
    ALTITUDE_CUTOFF_HZ,
    ANGLE_RANGE_PCT_HI,
    ANGLE_RANGE_PCT_LO,
    G,
    MAX_STEP_LENGTH_M,
    MIN_ANALYSIS_RATE_HZ,
    MIN_ANGLE_SAMPLES,
    MIN_HEEL_STRIKES,
    MIN_TURN_DURATION_S,
    PRESSURE_STANDARD_ATMOSPHERE_HPA,
    TURN_YAW_RATE_THR_DEG_S,
)
from ..math.ahrs import estimate_orientation
from ..math.filters import condition_imu, smooth_lowpass
from ..math.kinematics import euler_pitch_roll_yaw_deg, vec_norm
from ..math.stats import mean_or_zero, percentile_range, safe_ratio, std_or_zero, var_or_zero
from .activity import active_runs, estimate_segments_rate
from .gait_events import GaitEvents, detect_gait_events
from .samples import LegSide, SensorSample, segments_to_arrays
from .trajectory import reconstruct_trajectory

__all__ = [
    "LegMetrics",
    "Cycle",
    "segment_ids",
    "valid_cycles",
    "cadence_spm",
    "cycle_times",
    "stance_swing_times",
    "step_lengths",
    "angle_range",
    "abnormal_swing_count",
    "swing_path_metrics",
    "dynamics_metrics",
    "count_turns",
    "pressure_to_altitude",
    "altitude_metrics",
    "dominant_frequency",
    "analyze_single_limb",
]

logger = logging.getLogger(__name__)

# (heel strike, toe-off or None, next heel strike) as buffer indices
Cycle = Tuple[int, Optional[int], int]


def _empty() -> np.ndarray:
    return np.zeros(0, dtype=float)


def _raw():
    return field(default_factory=_empty, compare=False, repr=False, metadata={"raw": True})


@dataclass(frozen=True)
class LegMetrics:
    """Scalar gait metrics of one limb plus presentation-only raw series.

    Times are in seconds, lengths in metres, angles in degrees. The raw_*
    arrays take no part in equality and are only serialized on request.
    """
    total_steps: int = 0
    cadence: float = 0.0
    avg_gait_cycle: float = 0.0
    step_asymmetry: float = 0.0
    stance_time: float = 0.0
    swing_time: float = 0.0
    step_length_mean: float = 0.0
    step_length_cv: float = 0.0
    gait_stability: float = 0.0
    flexion_range: float = 0.0
    abduction_range: float = 0.0
    abnormal_swing_count: int = 0
    foot_clearance: float = 0.0
    circumduction: float = 0.0
    grf_max: float = 0.0
    jerk_avg: float = 0.0
    dominant_frequency: float = 0.0
    total_turns: int = 0
    total_altitude_gain: float = 0.0
    total_altitude_loss: float = 0.0
    estimated_symmetry_score: float = 0.0

    raw_gait_cycles: np.ndarray = _raw()
    raw_step_lengths: np.ndarray = _raw()
    raw_flexion_angles: np.ndarray = _raw()
    raw_abduction_angles: np.ndarray = _raw()
    raw_yaw_angles: np.ndarray = _raw()
    raw_altitude: np.ndarray = _raw()
    raw_timestamps: np.ndarray = _raw()

    @property
    def is_empty(self) -> bool:
        return self.total_steps == 0

    @classmethod
    def scalar_fields(cls) -> List[dataclasses.Field]:
        return [f for f in dataclasses.fields(cls) if not f.metadata.get("raw")]

    @classmethod
    def raw_fields(cls) -> List[dataclasses.Field]:
        return [f for f in dataclasses.fields(cls) if f.metadata.get("raw")]

    def with_symmetry_score(self, score: float) -> "LegMetrics":
        return dataclasses.replace(self, estimated_symmetry_score=float(score))

    def to_dict(self, include_raw: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in self.scalar_fields():
            v = getattr(self, f.name)
            out[f.name] = int(v) if f.type in ("int", int) else float(v)
        if include_raw:
            for f in self.raw_fields():
                out[f.name] = np.asarray(getattr(self, f.name), dtype=float).tolist()
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LegMetrics":
        """Inverse of to_dict; unknown keys are ignored, missing ones default."""
        kw: Dict[str, Any] = {}
        for f in cls.scalar_fields():
            if f.name in data and data[f.name] is not None:
                kw[f.name] = int(data[f.name]) if f.type in ("int", int) else float(data[f.name])
        for f in cls.raw_fields():
            if f.name in data and data[f.name] is not None:
                kw[f.name] = np.asarray(data[f.name], dtype=float).ravel()
        return cls(**kw)


# ---------------------------------------------------------------------------
# Cycle bookkeeping
# ---------------------------------------------------------------------------

def segment_ids(n: int, segment_starts: Sequence[int]) -> np.ndarray:
    """Segment number of every sample of an n-sample concatenated buffer."""
    ids = np.zeros(int(n), dtype=int)
    for s in segment_starts:
        if 0 < int(s) < n:
            ids[int(s):] += 1
    return ids


def valid_cycles(events: GaitEvents, seg_id: np.ndarray) -> List[Cycle]:
    """Consecutive heel-strike pairs that lie inside one segment."""
    return [c for c in events.cycles() if seg_id[c[0]] == seg_id[c[2]]]


# ---------------------------------------------------------------------------
# Temporal metrics
# ---------------------------------------------------------------------------

def cadence_spm(t_s: np.ndarray, heel_strikes: np.ndarray, seg_id: np.ndarray) -> float:
    """(heel strikes - 1) * 60 / (last - first heel-strike time), pooled per segment."""
    hs = np.asarray(heel_strikes, dtype=int)
    if hs.size < 2:
        return 0.0
    steps = 0
    span = 0.0
    for sid in np.unique(seg_id[hs]):
        idx = hs[seg_id[hs] == sid]
        if idx.size >= 2:
            steps += idx.size - 1
            span += float(t_s[idx[-1]] - t_s[idx[0]])
    return safe_ratio(steps * 60.0, span)


def cycle_times(t_s: np.ndarray, cycles: Sequence[Cycle]) -> np.ndarray:
    return np.asarray([t_s[b] - t_s[a] for a, _, b in cycles], dtype=float)


def stance_swing_times(t_s: np.ndarray, cycles: Sequence[Cycle]) -> Tuple[float, float]:
    """Mean stance (HS->TO) and swing (TO->next HS) over cycles with a toe-off."""
    stance = [t_s[to] - t_s[a] for a, to, _ in cycles if to is not None]
    swing = [t_s[b] - t_s[to] for _, to, b in cycles if to is not None]
    return mean_or_zero(stance), mean_or_zero(swing)


# ---------------------------------------------------------------------------
# Spatial metrics
# ---------------------------------------------------------------------------

def step_lengths(position: np.ndarray, cycles: Sequence[Cycle], cap_m: float = MAX_STEP_LENGTH_M) -> np.ndarray:
    """Horizontal heel-strike to heel-strike displacement; values above cap_m dropped."""
    P = np.asarray(position, dtype=float)
    if not cycles:
        return _empty()
    a = np.asarray([c[0] for c in cycles], dtype=int)
    b = np.asarray([c[2] for c in cycles], dtype=int)
    d = np.linalg.norm(P[b, :2] - P[a, :2], axis=1)
    return d[np.isfinite(d) & (d <= cap_m)]


def swing_path_metrics(position: np.ndarray, cycles: Sequence[Cycle]) -> Tuple[float, float]:
    """Mean peak height and mean mediolateral (y) spread over swing phases."""
    P = np.asarray(position, dtype=float)
    clearance: List[float] = []
    circ: List[float] = []
    for _, to, b in cycles:
        if to is None:
            continue
        seg = P[to:b + 1]
        clearance.append(float(np.max(seg[:, 2])))
        circ.append(float(np.ptp(seg[:, 1])))
    return mean_or_zero(clearance), mean_or_zero(circ)


def angle_range(angles_deg: np.ndarray) -> float:
    a = np.asarray(angles_deg, dtype=float)
    if a.size < MIN_ANGLE_SAMPLES:
        return 0.0
    return percentile_range(a, ANGLE_RANGE_PCT_LO, ANGLE_RANGE_PCT_HI)


def abnormal_swing_count(abduction_deg: np.ndarray, z_thr: float = ABNORMAL_SWING_Z) -> int:
    """Samples whose abduction z-score magnitude exceeds z_thr."""
    a = np.asarray(abduction_deg, dtype=float)
    if a.size < MIN_ANGLE_SAMPLES:
        return 0
    sd = std_or_zero(a)
    if sd <= 0:
        return 0
    z = (a - mean_or_zero(a)) / sd
    return int(np.count_nonzero(np.abs(z) > z_thr))


# ---------------------------------------------------------------------------
# Dynamics, turns, altitude, spectrum
# ---------------------------------------------------------------------------

def _same_segment_steps(seg_id: np.ndarray) -> np.ndarray:
    return seg_id[1:] == seg_id[:-1]


def dynamics_metrics(linear_acc: np.ndarray, fs: float, seg_id: np.ndarray) -> Tuple[float, float]:
    """(peak vertical linear acc / G, mean jerk magnitude)."""
    L = np.asarray(linear_acc, dtype=float)
    if L.shape[0] == 0:
        return 0.0, 0.0
    grf_max = float(np.max(L[:, 2])) / G
    if L.shape[0] < 2:
        return grf_max, 0.0
    jerk = np.linalg.norm(np.diff(L, axis=0), axis=1) * fs
    return grf_max, mean_or_zero(jerk[_same_segment_steps(seg_id)])


def count_turns(yaw_deg: np.ndarray, fs: float, seg_id: np.ndarray) -> int:
    """Contiguous excursions of |yaw rate| > threshold lasting MIN_TURN_DURATION_S."""
    y = np.asarray(yaw_deg, dtype=float)
    if y.size < fs or y.size < 2:
        return 0
    y = np.rad2deg(np.unwrap(np.deg2rad(y)))
    rate = np.diff(y) * fs
    turning = (np.abs(rate) > TURN_YAW_RATE_THR_DEG_S) & _same_segment_steps(seg_id)
    min_len = max(1, int(MIN_TURN_DURATION_S * fs))
    return sum(1 for s, e in active_runs(turning) if e - s >= min_len)


def pressure_to_altitude(pressure_hpa: np.ndarray, p0: float = PRESSURE_STANDARD_ATMOSPHERE_HPA) -> np.ndarray:
    """International standard atmosphere altitude [m] from pressure [hPa]."""
    p = np.asarray(pressure_hpa, dtype=float)
    return 44330.0 * (1.0 - np.power(p / p0, 1.0 / 5.255))


def altitude_metrics(
    pressure_hpa: np.ndarray, fs: float, segment_starts: Sequence[int]
) -> Tuple[np.ndarray, float, float]:
    """(smoothed altitude, total gain, total loss) with deltas summed per segment."""
    p = np.asarray(pressure_hpa, dtype=float)
    if p.size == 0 or not np.all(np.isfinite(p) & (p > 0)):
        if p.size and np.any(p != 0):
            logger.debug("pressure channel incomplete; altitude skipped")
        return _empty(), 0.0, 0.0
    alt = pressure_to_altitude(p)
    n = alt.size
    bounds = sorted({0, *(int(s) for s in segment_starts if 0 <= int(s) < n)})
    parts = [smooth_lowpass(alt[s:e], fs, ALTITUDE_CUTOFF_HZ) for s, e in zip(bounds, bounds[1:] + [n])]
    gain = 0.0
    loss = 0.0
    for part in parts:
        d = np.diff(part)
        gain += float(np.sum(d[d > 0]))
        loss += float(-np.sum(d[d < 0]))
    return np.concatenate(parts), gain, loss


def dominant_frequency(signal: np.ndarray, fs: float) -> float:
    """Frequency [Hz] of the largest non-DC periodogram bin."""
    x = np.asarray(signal, dtype=float)
    if x.size < 2:
        return 0.0
    f, pxx = periodogram(x - np.mean(x), fs=fs, detrend=False)
    if pxx.size < 2 or not np.max(pxx[1:]) > 0:
        return 0.0
    return float(f[1 + int(np.argmax(pxx[1:]))])


# ---------------------------------------------------------------------------
# Single-limb entry point
# ---------------------------------------------------------------------------

def analyze_single_limb(segments: Sequence[Sequence[SensorSample]], leg_side: LegSide | str) -> LegMetrics:
    """All metrics for one limb; LegMetrics() when the data are insufficient."""
    side = LegSide.parse(leg_side)
    segs = [list(s) for s in segments if len(s)]
    data = segments_to_arrays(segs)
    n = len(data)
    if n == 0:
        logger.debug("%s: no samples", side.value)
        return LegMetrics()

    fs = estimate_segments_rate(segs)
    if fs < MIN_ANALYSIS_RATE_HZ:
        logger.debug("%s: sample rate %.1f Hz below %.0f Hz", side.value, fs, MIN_ANALYSIS_RATE_HZ)
        return LegMetrics()

    starts = data.segment_starts
    bounds = list(zip(starts, list(starts[1:]) + [n]))
    conditioned = [condition_imu(data.acc[s:e], data.gyro[s:e], fs) for s, e in bounds]
    acc_f = np.vstack([c[0] for c in conditioned])
    gyro_f = np.vstack([c[1] for c in conditioned])

    events = detect_gait_events(acc_f, fs, segment_starts=starts)
    if events.heel_strikes.size < MIN_HEEL_STRIKES:
        logger.debug("%s: %d heel strike(s), need %d", side.value, events.heel_strikes.size, MIN_HEEL_STRIKES)
        return LegMetrics()

    quats = estimate_orientation(acc_f, gyro_f, data.mag, fs, segment_starts=starts)
    pitch, roll, yaw = euler_pitch_roll_yaw_deg(quats)
    flexion = pitch
    abduction = roll if side is LegSide.LEFT else -roll
    traj = reconstruct_trajectory(quats, acc_f, gyro_f, fs, segment_starts=starts)

    t = data.t_s
    seg_id = segment_ids(n, starts)
    cycles = valid_cycles(events, seg_id)

    cyc = cycle_times(t, cycles)
    avg_cycle = mean_or_zero(cyc)
    stance, swing = stance_swing_times(t, cycles)
    steps = step_lengths(traj.position, cycles)
    step_mean = mean_or_zero(steps)
    clearance, circumduction = swing_path_metrics(traj.position, cycles)
    grf_max, jerk_avg = dynamics_metrics(traj.linear_acc, fs, seg_id)
    altitude, gain, loss = altitude_metrics(data.pressure, fs, starts)
    amag = vec_norm(acc_f)

    logger.debug(
        "%s: %d samples in %d segment(s) at %.1f Hz, %d heel strikes, %d cycles",
        side.value, n, len(starts), fs, events.heel_strikes.size, len(cycles),
    )
    return LegMetrics(
        total_steps=int(events.heel_strikes.size),
        cadence=cadence_spm(t, events.heel_strikes, seg_id),
        avg_gait_cycle=avg_cycle,
        step_asymmetry=safe_ratio(std_or_zero(cyc), avg_cycle),
        stance_time=stance,
        swing_time=swing,
        step_length_mean=step_mean,
        step_length_cv=safe_ratio(std_or_zero(steps), step_mean),
        gait_stability=var_or_zero(amag),
        flexion_range=angle_range(flexion),
        abduction_range=angle_range(abduction),
        abnormal_swing_count=abnormal_swing_count(abduction),
        foot_clearance=clearance,
        circumduction=circumduction,
        grf_max=grf_max,
        jerk_avg=jerk_avg,
        dominant_frequency=dominant_frequency(amag, fs),
        total_turns=count_turns(yaw, fs, seg_id),
        total_altitude_gain=gain,
        total_altitude_loss=loss,
        raw_gait_cycles=cyc,
        raw_step_lengths=steps,
        raw_flexion_angles=flexion,
        raw_abduction_angles=abduction,
        raw_yaw_angles=yaw,
        raw_altitude=altitude,
        raw_timestamps=t,
    )
