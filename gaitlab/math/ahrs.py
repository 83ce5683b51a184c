"""
Gradient-descent attitude and heading reference system (Madgwick-style).

The filter state is a single unit quaternion (w, x, y, z) carried sample to
sample in a ``MadgwickState``. Each update integrates the gyro rate and
subtracts a normalized gradient step built from the accelerometer (and the
magnetometer when it reports a non-zero field), scaled by ``beta``.

Segments are independent: ``estimate_orientation`` starts a fresh state at
every segment boundary, so separate segments (or limbs) can be processed in
parallel by the caller.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from ..config.constants import AHRS_BETA

__all__ = ["MadgwickState", "estimate_orientation"]


def _identity() -> np.ndarray:
    return np.array([1.0, 0.0, 0.0, 0.0], dtype=float)


@dataclass
class MadgwickState:
    """Running orientation accumulator for one contiguous segment.

    sample_period: seconds between samples (1 / sample rate)
    beta: gradient-descent gain
    q: current unit quaternion, earth frame relative to sensor frame
    """
    sample_period: float
    beta: float = AHRS_BETA
    q: np.ndarray = field(default_factory=_identity)

    def __post_init__(self) -> None:
        if not math.isfinite(self.sample_period) or self.sample_period <= 0:
            raise ValueError(f"sample_period must be positive, got {self.sample_period!r}")

    @property
    def quaternion(self) -> np.ndarray:
        return self.q.copy()

    def reset(self) -> None:
        self.q = _identity()

    def _integrate(self, q0, q1, q2, q3, qd0, qd1, qd2, qd3) -> None:
        dt = self.sample_period
        q0 += qd0 * dt
        q1 += qd1 * dt
        q2 += qd2 * dt
        q3 += qd3 * dt
        n = math.sqrt(q0 * q0 + q1 * q1 + q2 * q2 + q3 * q3)
        if n == 0.0 or not math.isfinite(n):
            self.reset()
            return
        self.q = np.array([q0 / n, q1 / n, q2 / n, q3 / n], dtype=float)

    def update(self, gyro: Sequence[float], acc: Sequence[float], mag: Sequence[float]) -> np.ndarray:
        """MARG update. Falls back to ``update_imu`` for a zero magnetometer."""
        mx, my, mz = float(mag[0]), float(mag[1]), float(mag[2])
        if mx == 0.0 and my == 0.0 and mz == 0.0:
            return self.update_imu(gyro, acc)

        gx, gy, gz = float(gyro[0]), float(gyro[1]), float(gyro[2])
        ax, ay, az = float(acc[0]), float(acc[1]), float(acc[2])
        q0, q1, q2, q3 = (float(v) for v in self.q)

        # Rate of change of quaternion from gyroscope
        qd0 = 0.5 * (-q1 * gx - q2 * gy - q3 * gz)
        qd1 = 0.5 * (q0 * gx + q2 * gz - q3 * gy)
        qd2 = 0.5 * (q0 * gy - q1 * gz + q3 * gx)
        qd3 = 0.5 * (q0 * gz + q1 * gy - q2 * gx)

        if not (ax == 0.0 and ay == 0.0 and az == 0.0):
            an = math.sqrt(ax * ax + ay * ay + az * az)
            ax, ay, az = ax / an, ay / an, az / an
            mn = math.sqrt(mx * mx + my * my + mz * mz)
            mx, my, mz = mx / mn, my / mn, mz / mn

            _2q0mx = 2.0 * q0 * mx
            _2q0my = 2.0 * q0 * my
            _2q0mz = 2.0 * q0 * mz
            _2q1mx = 2.0 * q1 * mx
            _2q0 = 2.0 * q0
            _2q1 = 2.0 * q1
            _2q2 = 2.0 * q2
            _2q3 = 2.0 * q3
            _2q0q2 = 2.0 * q0 * q2
            _2q2q3 = 2.0 * q2 * q3
            q0q0 = q0 * q0
            q0q1 = q0 * q1
            q0q2 = q0 * q2
            q0q3 = q0 * q3
            q1q1 = q1 * q1
            q1q2 = q1 * q2
            q1q3 = q1 * q3
            q2q2 = q2 * q2
            q2q3 = q2 * q3
            q3q3 = q3 * q3

            # Reference direction of earth's magnetic field
            hx = (mx * q0q0 - _2q0my * q3 + _2q0mz * q2 + mx * q1q1 + _2q1 * my * q2
                  + _2q1 * mz * q3 - mx * q2q2 - mx * q3q3)
            hy = (_2q0mx * q3 + my * q0q0 - _2q0mz * q1 + _2q1mx * q2 - my * q1q1
                  + my * q2q2 + _2q2 * mz * q3 - my * q3q3)
            _2bx = math.sqrt(hx * hx + hy * hy)
            _2bz = (-_2q0mx * q2 + _2q0my * q1 + mz * q0q0 + _2q1mx * q3 - mz * q1q1
                    + _2q2 * my * q3 - mz * q2q2 + mz * q3q3)
            _4bx = 2.0 * _2bx
            _4bz = 2.0 * _2bz

            # Objective function terms shared by the gradient components
            fa_x = 2.0 * q1q3 - _2q0q2 - ax
            fa_y = 2.0 * q0q1 + _2q2q3 - ay
            fa_z = 1.0 - 2.0 * q1q1 - 2.0 * q2q2 - az
            fm_x = _2bx * (0.5 - q2q2 - q3q3) + _2bz * (q1q3 - q0q2) - mx
            fm_y = _2bx * (q1q2 - q0q3) + _2bz * (q0q1 + q2q3) - my
            fm_z = _2bx * (q0q2 + q1q3) + _2bz * (0.5 - q1q1 - q2q2) - mz

            s0 = (-_2q2 * fa_x + _2q1 * fa_y - _2bz * q2 * fm_x
                  + (-_2bx * q3 + _2bz * q1) * fm_y + _2bx * q2 * fm_z)
            s1 = (_2q3 * fa_x + _2q0 * fa_y - 4.0 * q1 * fa_z + _2bz * q3 * fm_x
                  + (_2bx * q2 + _2bz * q0) * fm_y + (_2bx * q3 - _4bz * q1) * fm_z)
            s2 = (-_2q0 * fa_x + _2q3 * fa_y - 4.0 * q2 * fa_z
                  + (-_4bx * q2 - _2bz * q0) * fm_x + (_2bx * q1 + _2bz * q3) * fm_y
                  + (_2bx * q0 - _4bz * q2) * fm_z)
            s3 = (_2q1 * fa_x + _2q2 * fa_y + (-_4bx * q3 + _2bz * q1) * fm_x
                  + (-_2bx * q0 + _2bz * q2) * fm_y + _2bx * q1 * fm_z)

            sn = math.sqrt(s0 * s0 + s1 * s1 + s2 * s2 + s3 * s3)
            # A zero gradient means the estimate already matches the measurement
            if sn > 0.0 and math.isfinite(sn):
                qd0 -= self.beta * s0 / sn
                qd1 -= self.beta * s1 / sn
                qd2 -= self.beta * s2 / sn
                qd3 -= self.beta * s3 / sn

        self._integrate(q0, q1, q2, q3, qd0, qd1, qd2, qd3)
        return self.quaternion

    def update_imu(self, gyro: Sequence[float], acc: Sequence[float]) -> np.ndarray:
        """Gyro + accelerometer update (no heading correction)."""
        gx, gy, gz = float(gyro[0]), float(gyro[1]), float(gyro[2])
        ax, ay, az = float(acc[0]), float(acc[1]), float(acc[2])
        q0, q1, q2, q3 = (float(v) for v in self.q)

        qd0 = 0.5 * (-q1 * gx - q2 * gy - q3 * gz)
        qd1 = 0.5 * (q0 * gx + q2 * gz - q3 * gy)
        qd2 = 0.5 * (q0 * gy - q1 * gz + q3 * gx)
        qd3 = 0.5 * (q0 * gz + q1 * gy - q2 * gx)

        if not (ax == 0.0 and ay == 0.0 and az == 0.0):
            an = math.sqrt(ax * ax + ay * ay + az * az)
            ax, ay, az = ax / an, ay / an, az / an

            _2q0 = 2.0 * q0
            _2q1 = 2.0 * q1
            _2q2 = 2.0 * q2
            _2q3 = 2.0 * q3
            _4q0 = 4.0 * q0
            _4q1 = 4.0 * q1
            _4q2 = 4.0 * q2
            _8q1 = 8.0 * q1
            _8q2 = 8.0 * q2
            q0q0 = q0 * q0
            q1q1 = q1 * q1
            q2q2 = q2 * q2
            q3q3 = q3 * q3

            s0 = _4q0 * q2q2 + _2q2 * ax + _4q0 * q1q1 - _2q1 * ay
            s1 = (_4q1 * q3q3 - _2q3 * ax + 4.0 * q0q0 * q1 - _2q0 * ay - _4q1
                  + _8q1 * q1q1 + _8q1 * q2q2 + _4q1 * az)
            s2 = (4.0 * q0q0 * q2 + _2q0 * ax + _4q2 * q3q3 - _2q3 * ay - _4q2
                  + _8q2 * q1q1 + _8q2 * q2q2 + _4q2 * az)
            s3 = 4.0 * q1q1 * q3 - _2q1 * ax + 4.0 * q2q2 * q3 - _2q2 * ay

            sn = math.sqrt(s0 * s0 + s1 * s1 + s2 * s2 + s3 * s3)
            if sn > 0.0 and math.isfinite(sn):
                qd0 -= self.beta * s0 / sn
                qd1 -= self.beta * s1 / sn
                qd2 -= self.beta * s2 / sn
                qd3 -= self.beta * s3 / sn

        self._integrate(q0, q1, q2, q3, qd0, qd1, qd2, qd3)
        return self.quaternion


def estimate_orientation(
    acc: np.ndarray,
    gyro: np.ndarray,
    mag: np.ndarray,
    fs_hz: float,
    beta: float = AHRS_BETA,
    segment_starts: Sequence[int] | None = None,
) -> np.ndarray:
    """Run the AHRS over (T,3) acc/gyro/mag and return (T,4) quaternions.

    segment_starts: sample indices where a new segment begins; the state is
    reset to identity there. Index 0 is always a start.
    """
    A = np.asarray(acc, dtype=float)
    W = np.asarray(gyro, dtype=float)
    M = np.asarray(mag, dtype=float)
    if not (A.shape == W.shape == M.shape) or (A.ndim != 2 or A.shape[1] != 3):
        raise ValueError(
            f"acc {A.shape}, gyro {W.shape} and mag {M.shape} must all be (T,3)"
        )
    fs = float(fs_hz)
    if not math.isfinite(fs) or fs <= 0:
        raise ValueError(f"sample rate must be positive, got {fs_hz!r}")

    starts = set(int(s) for s in (segment_starts or ()))
    state = MadgwickState(sample_period=1.0 / fs, beta=float(beta))
    out = np.zeros((A.shape[0], 4), dtype=float)
    for i in range(A.shape[0]):
        if i in starts:
            state.reset()
        out[i] = state.update(W[i], A[i], M[i])
    return out
