"""Synthetic thigh recordings for demos and tests."""
from __future__ import annotations

from typing import List, Optional

import numpy as np

from ..config.constants import G, PRESSURE_STANDARD_ATMOSPHERE_HPA
from .samples import SensorSample, samples_from_arrays

__all__ = ["synthetic_walk", "altitude_to_pressure"]


def altitude_to_pressure(alt_m, p0: float = PRESSURE_STANDARD_ATMOSPHERE_HPA) -> np.ndarray:
    return p0 * np.power(1.0 - np.asarray(alt_m, dtype=float) / 44330.0, 5.255)


def synthetic_walk(
    duration_s: float = 6.0,
    fs: float = 100.0,
    step_hz: float = 1.8,
    acc_amp: float = 2.0,
    gyro_amp: float = 0.5,
    rest_s: float = 0.0,
    noise_std: float = 0.0,
    start_alt_m: Optional[float] = None,
    climb_m: float = 0.0,
    t0_ns: int = 0,
    seed: int = 0,
) -> List[SensorSample]:
    """Walking as vertical acc 9.81 + acc_amp*sin(2*pi*step_hz*t) with a matching
    sagittal gyro, optionally framed by rest_s of stillness on both sides.

    start_alt_m enables the barometer; climb_m is gained linearly while walking.
    """
    dt = 1.0 / fs
    n_walk = int(round(duration_s * fs))
    n_rest = int(round(rest_s * fs))
    n = n_walk + 2 * n_rest
    t = np.arange(n) * dt
    walking = np.zeros(n, dtype=bool)
    walking[n_rest:n_rest + n_walk] = True
    tw = t - n_rest * dt
    phase = 2.0 * np.pi * step_hz * tw

    acc = np.zeros((n, 3), dtype=float)
    acc[:, 2] = G + np.where(walking, acc_amp * np.sin(phase), 0.0)
    gyro = np.zeros((n, 3), dtype=float)
    gyro[:, 1] = np.where(walking, gyro_amp * np.cos(phase), 0.0)
    if noise_std > 0:
        rng = np.random.default_rng(seed)
        acc += rng.normal(0.0, noise_std, size=acc.shape)
        gyro += rng.normal(0.0, noise_std * 0.1, size=gyro.shape)

    pressure = None
    if start_alt_m is not None:
        frac = np.clip(tw / max(duration_s, dt), 0.0, 1.0)
        pressure = altitude_to_pressure(start_alt_m + climb_m * frac)

    t_ns = int(t0_ns) + np.round(t * 1e9).astype(np.int64)
    return samples_from_arrays(t_ns, acc, gyro, None, pressure)
