from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config.constants import MIN_RECORDING_WALK_S
from .activity import detect_walking_activity, estimate_sample_rate
from .io_utils import raw_bundle
from .metrics import LegMetrics, analyze_single_limb
from .samples import LegSide, SensorSample
from .symmetry import ComparisonMetrics, compare_legs, estimate_single_limb_symmetry

__all__ = [
    "process_full_analysis",
    "Recording",
    "prepare_recording",
    "AnalysisSummary",
    "AnalysisResult",
    "run_analysis",
    "analyze_recording",
]

logger = logging.getLogger(__name__)

Segments = Sequence[Sequence[SensorSample]]


def process_full_analysis(
    local_segments: Segments,
    leg_side: LegSide | str,
    remote_segments: Optional[Segments] = None,
    remote_leg_side: LegSide | str | None = None,
) -> Tuple[LegMetrics, Optional[LegMetrics], Optional[ComparisonMetrics]]:
    """Analyse the local limb and, when given, the remote limb and their symmetry.

    Without a remote limb the local metrics carry the even/odd single-limb
    symmetry estimate and the remaining two results are None.
    """
    local_side = LegSide.parse(leg_side)
    if remote_segments is None:
        local = analyze_single_limb(local_segments, local_side)
        if not local.is_empty:
            local = local.with_symmetry_score(estimate_single_limb_symmetry(local.raw_gait_cycles))
        return local, None, None

    if remote_leg_side is None:
        raise ValueError("remote_leg_side is required when remote_segments are given")
    remote_side = LegSide.parse(remote_leg_side)
    if remote_side is local_side:
        raise ValueError(f"local and remote limbs are both {local_side.value}")

    local = analyze_single_limb(local_segments, local_side)
    remote = analyze_single_limb(remote_segments, remote_side)
    if local.is_empty or remote.is_empty:
        logger.debug(
            "paired analysis with insufficient data (local empty=%s, remote empty=%s)",
            local.is_empty, remote.is_empty,
        )
    left, right = (local, remote) if local_side is LegSide.LEFT else (remote, local)
    return local, remote, compare_legs(left, right)


# ---------------------------------------------------------------------------
# Whole-recording front end
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Recording:
    """Walking segments cut from one raw stream."""
    segments: List[List[SensorSample]]
    sample_rate: float
    duration_s: float

    @property
    def walking_samples(self) -> int:
        return sum(len(s) for s in self.segments)

    @property
    def walking_s(self) -> float:
        return self.walking_samples / self.sample_rate if self.sample_rate > 0 else 0.0


def prepare_recording(
    samples: Sequence[SensorSample], min_walking_s: float = MIN_RECORDING_WALK_S
) -> Optional[Recording]:
    """Cut walking segments; None when there are fewer than min_walking_s of walking."""
    fs = estimate_sample_rate(samples)
    segments = detect_walking_activity(samples, fs)
    duration = (samples[-1].timestamp_nanos - samples[0].timestamp_nanos) / 1e9 if samples else 0.0
    rec = Recording(segments=segments, sample_rate=fs, duration_s=float(duration))
    if not segments or rec.walking_samples < min_walking_s * fs:
        logger.info(
            "insufficient walking: %d segment(s), %.1f s of %.1f s recorded",
            len(segments), rec.walking_s, rec.duration_s,
        )
        return None
    return rec


@dataclass(frozen=True)
class AnalysisSummary:
    mode: str
    duration_s: float
    total_steps: int
    overall_score: float
    local_side: str
    remote_side: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "duration_s": float(self.duration_s),
            "total_steps": int(self.total_steps),
            "overall_score": float(self.overall_score),
            "local_side": self.local_side,
            "remote_side": self.remote_side,
        }


@dataclass(frozen=True)
class AnalysisResult:
    summary: AnalysisSummary
    local: LegMetrics
    remote: Optional[LegMetrics] = None
    comparison: Optional[ComparisonMetrics] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "local": self.local.to_dict(),
            "remote": self.remote.to_dict() if self.remote is not None else None,
            "comparison": self.comparison.to_dict() if self.comparison is not None else None,
            "raw": {
                "local": raw_bundle(self.local),
                "remote": raw_bundle(self.remote) if self.remote is not None else None,
            },
        }


def run_analysis(
    local: Recording,
    leg_side: LegSide | str,
    remote: Optional[Recording] = None,
    remote_leg_side: LegSide | str | None = None,
) -> AnalysisResult:
    local_side = LegSide.parse(leg_side)
    remote_side = None
    if remote is not None:
        remote_side = LegSide.parse(remote_leg_side) if remote_leg_side is not None else local_side.opposite
    local_m, remote_m, comparison = process_full_analysis(
        local.segments, local_side,
        remote.segments if remote is not None else None, remote_side,
    )
    if comparison is not None:
        mode, score = "paired", comparison.overall_symmetry_score
    else:
        mode, score = "single", local_m.estimated_symmetry_score
    steps = local_m.total_steps + (remote_m.total_steps if remote_m is not None else 0)
    summary = AnalysisSummary(
        mode=mode,
        duration_s=local.duration_s,
        total_steps=steps,
        overall_score=score,
        local_side=local_side.value,
        remote_side=remote_side.value if remote_side is not None else None,
    )
    return AnalysisResult(summary=summary, local=local_m, remote=remote_m, comparison=comparison)


def analyze_recording(
    local_samples: Sequence[SensorSample],
    leg_side: LegSide | str,
    remote_samples: Optional[Sequence[SensorSample]] = None,
    remote_leg_side: LegSide | str | None = None,
) -> Optional[AnalysisResult]:
    """Raw stream(s) in, full result out; None when any stream has too little walking."""
    local = prepare_recording(local_samples)
    if local is None:
        return None
    remote = None
    if remote_samples is not None:
        remote = prepare_recording(remote_samples)
        if remote is None:
            return None
    return run_analysis(local, leg_side, remote, remote_leg_side)
