"""Left/right comparison of two LegMetrics, and a single-limb fallback score."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping

import numpy as np

from ..config.constants import MIN_SINGLE_LIMB_CYCLES, NEUTRAL_SYMMETRY_SCORE, SYMMETRY_WEIGHTS
from ..math.stats import mann_whitney_p, mean_or_zero, symmetry_index
from .metrics import LegMetrics

__all__ = ["ComparisonMetrics", "compare_legs", "estimate_single_limb_symmetry"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonMetrics:
    """Per-metric symmetry indices (1.0 = identical), weighted score 0..100,
    and Mann-Whitney p-values on the raw cycle-time / step-length samples."""
    time_symmetry: float = 1.0
    step_length_symmetry: float = 1.0
    stance_symmetry: float = 1.0
    swing_symmetry: float = 1.0
    flexion_symmetry: float = 1.0
    abduction_symmetry: float = 1.0
    overall_symmetry_score: float = 0.0
    cycle_time_p_value: float = 1.0
    step_length_p_value: float = 1.0

    def to_dict(self) -> Dict[str, float]:
        return {k: float(v) for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ComparisonMetrics":
        names = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in data.items() if k in names and v is not None})


def compare_legs(left: LegMetrics, right: LegMetrics) -> ComparisonMetrics:
    idx = {
        "time": symmetry_index(left.avg_gait_cycle, right.avg_gait_cycle),
        "step_length": symmetry_index(left.step_length_mean, right.step_length_mean),
        "stance": symmetry_index(left.stance_time, right.stance_time),
        "swing": symmetry_index(left.swing_time, right.swing_time),
        "flexion": symmetry_index(left.flexion_range, right.flexion_range),
        "abduction": symmetry_index(left.abduction_range, right.abduction_range),
    }
    score = 100.0 * sum(SYMMETRY_WEIGHTS[k] * v for k, v in idx.items())
    score = float(np.clip(score, 0.0, 100.0))
    logger.debug("symmetry indices %s -> score %.1f", idx, score)
    return ComparisonMetrics(
        time_symmetry=idx["time"],
        step_length_symmetry=idx["step_length"],
        stance_symmetry=idx["stance"],
        swing_symmetry=idx["swing"],
        flexion_symmetry=idx["flexion"],
        abduction_symmetry=idx["abduction"],
        overall_symmetry_score=score,
        cycle_time_p_value=mann_whitney_p(left.raw_gait_cycles, right.raw_gait_cycles),
        step_length_p_value=mann_whitney_p(left.raw_step_lengths, right.raw_step_lengths),
    )


def estimate_single_limb_symmetry(cycle_times) -> float:
    """Even- vs odd-indexed cycle-time balance, 0..100.

    Alternate cycles of one limb stand in for the two sides; fewer than
    MIN_SINGLE_LIMB_CYCLES cycles give NEUTRAL_SYMMETRY_SCORE.
    """
    c = np.asarray(cycle_times, dtype=float).ravel()
    if c.size < MIN_SINGLE_LIMB_CYCLES:
        return NEUTRAL_SYMMETRY_SCORE
    even = mean_or_zero(c[0::2])
    odd = mean_or_zero(c[1::2])
    hi = max(even, odd)
    if hi <= 0:
        return NEUTRAL_SYMMETRY_SCORE
    return float(min(even, odd) / hi * 100.0)
