from __future__ import annotations

import numpy as np
from scipy.signal import butter, lfilter, sosfiltfilt

from ..config.constants import FILTER_CUTOFF_HZ, FILTER_ORDER, FILTER_MIN_SAMPLES

__all__ = [
    "butter_lowpass_ba",
    "filtfilt_zero_state",
    "lowpass",
    "smooth_lowpass",
    "condition_imu",
]


def _check_rate(fs_hz: float) -> float:
    fs = float(fs_hz)
    if not np.isfinite(fs) or fs <= 0:
        raise ValueError(f"sample rate must be a positive finite number, got {fs_hz!r}")
    return fs


def butter_lowpass_ba(cutoff_hz: float, fs_hz: float, order: int = FILTER_ORDER):
    """Butterworth low-pass (b, a) via the bilinear transform.

    The normalized cutoff is clamped below Nyquist so low sample rates still
    yield a stable (if nearly transparent) filter.
    """
    fs = _check_rate(fs_hz)
    wn = max(1e-4, min(0.99, float(cutoff_hz) / (0.5 * fs)))
    b, a = butter(int(order), wn, btype="low")
    return b, a


def filtfilt_zero_state(x: np.ndarray, b: np.ndarray, a: np.ndarray) -> np.ndarray:
    """Forward pass, then a second pass over the reversed output, reversed back.

    Both passes start from rest (zero initial conditions), no edge padding.
    """
    fwd = lfilter(b, a, np.asarray(x, dtype=float))
    bwd = lfilter(b, a, fwd[::-1])
    return bwd[::-1].copy()


def lowpass(
    x: np.ndarray,
    fs_hz: float,
    fc_hz: float = FILTER_CUTOFF_HZ,
    order: int = FILTER_ORDER,
) -> np.ndarray:
    """Zero-phase low-pass along time axis, each column independently.

    - x: (T,) or (T,D)
    - inputs shorter than FILTER_MIN_SAMPLES are returned unfiltered (copy)
    """
    X = np.asarray(x, dtype=float)
    fs = _check_rate(fs_hz)
    if X.ndim not in (1, 2):
        raise ValueError(f"expected a (T,) or (T,D) array, got shape {X.shape}")
    if X.shape[0] < FILTER_MIN_SAMPLES:
        return X.copy()
    b, a = butter_lowpass_ba(fc_hz, fs, order=order)
    if X.ndim == 1:
        return filtfilt_zero_state(X, b, a)
    return np.column_stack([filtfilt_zero_state(X[:, j], b, a) for j in range(X.shape[1])])


def smooth_lowpass(x: np.ndarray, fs_hz: float, fc_hz: float, order: int = FILTER_ORDER) -> np.ndarray:
    """Zero-phase low-pass (Butterworth SOS, padded edges) for slow 1-D series.

    Used where an absolute offset (e.g. altitude in metres) would turn the
    rest-state start of filtfilt_zero_state into a spurious ramp.
    """
    X = np.asarray(x, dtype=float)
    fs = _check_rate(fs_hz)
    if X.shape[0] < FILTER_MIN_SAMPLES:
        return X.copy()
    wn = max(1e-4, min(0.99, float(fc_hz) / (0.5 * fs)))
    sos = butter(int(order), wn, btype="low", output="sos")
    return sosfiltfilt(sos, X, axis=0)


def condition_imu(acc: np.ndarray, gyro: np.ndarray, fs_hz: float) -> tuple[np.ndarray, np.ndarray]:
    """Apply the same low-pass to acceleration and angular rate."""
    A = np.asarray(acc, dtype=float)
    W = np.asarray(gyro, dtype=float)
    if A.shape != W.shape:
        raise ValueError(f"acc {A.shape} and gyro {W.shape} must have the same shape")
    return lowpass(A, fs_hz), lowpass(W, fs_hz)
