"""Zero-safe descriptive statistics used by the metric and symmetry stages.

Every helper returns 0.0 (never NaN) for empty input or a zero denominator.
"""
from __future__ import annotations

import numpy as np
from scipy.stats import mannwhitneyu

__all__ = [
    "mean_or_zero",
    "std_or_zero",
    "var_or_zero",
    "safe_ratio",
    "percentile_range",
    "symmetry_index",
    "mann_whitney_p",
]


def _finite(x) -> np.ndarray:
    a = np.asarray(x, dtype=float).ravel()
    return a[np.isfinite(a)]


def mean_or_zero(x) -> float:
    a = _finite(x)
    return float(np.mean(a)) if a.size else 0.0


def std_or_zero(x) -> float:
    """Sample standard deviation (ddof=1); 0.0 with fewer than two values."""
    a = _finite(x)
    return float(np.std(a, ddof=1)) if a.size > 1 else 0.0


def var_or_zero(x) -> float:
    """Sample variance (ddof=1); 0.0 with fewer than two values."""
    a = _finite(x)
    return float(np.var(a, ddof=1)) if a.size > 1 else 0.0


def safe_ratio(num: float, den: float) -> float:
    if den == 0 or not np.isfinite(den) or not np.isfinite(num):
        return 0.0
    return float(num / den)


def percentile_range(x, lo: float, hi: float) -> float:
    """hi-th minus lo-th percentile; robust to isolated outliers."""
    a = _finite(x)
    if a.size == 0:
        return 0.0
    p_hi, p_lo = np.percentile(a, [hi, lo])
    return float(p_hi - p_lo)


def symmetry_index(left: float, right: float) -> float:
    """1 - |L-R| / mean(L,R); 1.0 when both are zero (or the sum is not positive)."""
    s = float(left) + float(right)
    if s <= 0 or not np.isfinite(s):
        return 1.0
    return float(1.0 - abs(float(left) - float(right)) / (s / 2.0))


def mann_whitney_p(a, b) -> float:
    """Two-sided Mann-Whitney U p-value; 1.0 when either sample has < 2 values."""
    x = _finite(a)
    y = _finite(b)
    if x.size < 2 or y.size < 2:
        return 1.0
    # Identical constant samples make the U statistic degenerate
    if np.ptp(np.concatenate([x, y])) == 0:
        return 1.0
    res = mannwhitneyu(x, y, alternative="two-sided")
    p = float(res.pvalue)
    return p if np.isfinite(p) else 1.0
