"""Sensor sample model and columnar views used by the pipeline stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

import numpy as np

__all__ = [
    "LegSide",
    "SensorSample",
    "SegmentArrays",
    "samples_from_arrays",
    "segments_to_arrays",
]

Vec3 = Tuple[float, float, float]


class LegSide(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"

    @classmethod
    def parse(cls, value: "LegSide | str") -> "LegSide":
        if isinstance(value, LegSide):
            return value
        key = str(value).strip().upper()
        if key in {"L", "LEFT"}:
            return cls.LEFT
        if key in {"R", "RIGHT"}:
            return cls.RIGHT
        raise ValueError(f"unknown leg side {value!r}; expected LEFT or RIGHT")

    @property
    def opposite(self) -> "LegSide":
        return LegSide.RIGHT if self is LegSide.LEFT else LegSide.LEFT


def _vec3(name: str, v: Sequence[float]) -> Vec3:
    vals = tuple(float(c) for c in v)
    if len(vals) != 3:
        raise ValueError(f"{name} must have exactly 3 components, got {len(vals)}")
    return vals  # type: ignore[return-value]


@dataclass(frozen=True)
class SensorSample:
    """One capture-layer sample.

    timestamp_nanos: monotonic capture time [ns]
    acc: specific force [m/s^2], gyro: angular rate [rad/s], mag: field [uT]
    pressure: barometric pressure [hPa], 0.0 when the device has no barometer
    """
    timestamp_nanos: int
    acc: Vec3 = (0.0, 0.0, 0.0)
    gyro: Vec3 = (0.0, 0.0, 0.0)
    mag: Vec3 = (0.0, 0.0, 0.0)
    pressure: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp_nanos", int(self.timestamp_nanos))
        object.__setattr__(self, "acc", _vec3("acc", self.acc))
        object.__setattr__(self, "gyro", _vec3("gyro", self.gyro))
        object.__setattr__(self, "mag", _vec3("mag", self.mag))
        object.__setattr__(self, "pressure", float(self.pressure))


@dataclass
class SegmentArrays:
    """Columnar copy of one or more concatenated segments.

    segment_starts holds the first sample index of every source segment so
    sequential estimators can reset their state at each boundary.
    """
    t_ns: np.ndarray
    acc: np.ndarray
    gyro: np.ndarray
    mag: np.ndarray
    pressure: np.ndarray
    segment_starts: List[int] = field(default_factory=lambda: [0])

    def __len__(self) -> int:
        return int(self.t_ns.shape[0])

    @property
    def t_s(self) -> np.ndarray:
        """Seconds since the first sample."""
        if len(self) == 0:
            return np.zeros(0, dtype=float)
        return (self.t_ns - self.t_ns[0]).astype(float) / 1e9


def samples_from_arrays(
    t_ns: Sequence[int],
    acc: np.ndarray,
    gyro: np.ndarray,
    mag: np.ndarray | None = None,
    pressure: Sequence[float] | None = None,
) -> List[SensorSample]:
    """Build samples from per-axis arrays; lengths must agree."""
    t = np.asarray(t_ns, dtype=np.int64).ravel()
    n = t.shape[0]
    A = np.asarray(acc, dtype=float)
    W = np.asarray(gyro, dtype=float)
    M = np.zeros((n, 3), dtype=float) if mag is None else np.asarray(mag, dtype=float)
    P = np.zeros(n, dtype=float) if pressure is None else np.asarray(pressure, dtype=float).ravel()
    for name, arr in (("acc", A), ("gyro", W), ("mag", M)):
        if arr.ndim != 2 or arr.shape[1] != 3:
            raise ValueError(f"{name} must be shaped (T,3), got {arr.shape}")
        if arr.shape[0] != n:
            raise ValueError(f"{name} has {arr.shape[0]} rows but there are {n} timestamps")
    if P.shape[0] != n:
        raise ValueError(f"pressure has {P.shape[0]} values but there are {n} timestamps")
    return [
        SensorSample(int(t[i]), tuple(A[i]), tuple(W[i]), tuple(M[i]), float(P[i]))
        for i in range(n)
    ]


def segments_to_arrays(segments: Iterable[Sequence[SensorSample]]) -> SegmentArrays:
    """Concatenate segments into one columnar buffer, recording boundaries."""
    starts: List[int] = []
    rows: List[SensorSample] = []
    for seg in segments:
        if len(seg) == 0:
            continue
        starts.append(len(rows))
        rows.extend(seg)
    n = len(rows)
    if n == 0:
        empty3 = np.zeros((0, 3), dtype=float)
        return SegmentArrays(
            np.zeros(0, dtype=np.int64), empty3, empty3.copy(), empty3.copy(),
            np.zeros(0, dtype=float), [0],
        )
    return SegmentArrays(
        t_ns=np.fromiter((s.timestamp_nanos for s in rows), dtype=np.int64, count=n),
        acc=np.array([s.acc for s in rows], dtype=float),
        gyro=np.array([s.gyro for s in rows], dtype=float),
        mag=np.array([s.mag for s in rows], dtype=float),
        pressure=np.fromiter((s.pressure for s in rows), dtype=float, count=n),
        segment_starts=starts,
    )
