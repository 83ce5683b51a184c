from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from ..config.constants import G, G_VEC, ZUPT_ACC_THR, ZUPT_GYRO_THR
from ..math.kinematics import rotate_to_earth, vec_norm

__all__ = ["StrapdownState", "Trajectory", "stationary_mask", "reconstruct_trajectory"]

logger = logging.getLogger(__name__)


def stationary_mask(acc_filt: np.ndarray, gyro_filt: np.ndarray,
                    th_a: float = ZUPT_ACC_THR, th_w: float = ZUPT_GYRO_THR) -> np.ndarray:
    """Samples where |acc| is within th_a of G and |gyro| is below th_w."""
    amag = vec_norm(acc_filt)
    wmag = vec_norm(gyro_filt)
    return (np.abs(amag - G) < th_a) & (wmag < th_w)


def _zeros3() -> np.ndarray:
    return np.zeros(3, dtype=float)


@dataclass
class StrapdownState:
    """Euler-integration accumulator for one segment.

    The first sample of a segment anchors the origin; every later sample adds
    a*dt to velocity (zeroed when stationary) and v*dt to position.
    """
    dt: float
    velocity: np.ndarray = field(default_factory=_zeros3)
    position: np.ndarray = field(default_factory=_zeros3)
    started: bool = False

    def reset(self) -> None:
        self.velocity = _zeros3()
        self.position = _zeros3()
        self.started = False

    def step(self, lin_acc: np.ndarray, stationary: bool) -> tuple[np.ndarray, np.ndarray]:
        if not self.started:
            self.started = True
            return self.velocity.copy(), self.position.copy()
        vel = self.velocity + np.asarray(lin_acc, dtype=float) * self.dt
        if stationary:
            vel = _zeros3()
        self.velocity = vel
        self.position = self.position + vel * self.dt
        return self.velocity.copy(), self.position.copy()


@dataclass(frozen=True)
class Trajectory:
    """Per-sample earth-frame kinematics, local to each segment."""
    linear_acc: np.ndarray
    velocity: np.ndarray
    position: np.ndarray
    stationary: np.ndarray

    def __len__(self) -> int:
        return int(self.position.shape[0])


def reconstruct_trajectory(
    quats: np.ndarray,
    acc_filt: np.ndarray,
    gyro_filt: np.ndarray,
    fs_hz: float,
    segment_starts: Sequence[int] | None = None,
) -> Trajectory:
    """Rotate acceleration to the earth frame, remove gravity, integrate with ZUPT.

    Velocity and position restart from zero at every index in segment_starts.
    """
    Q = np.asarray(quats, dtype=float)
    A = np.asarray(acc_filt, dtype=float)
    W = np.asarray(gyro_filt, dtype=float)
    if not (Q.shape[0] == A.shape[0] == W.shape[0]):
        raise ValueError(
            f"quats ({Q.shape[0]}), acc ({A.shape[0]}) and gyro ({W.shape[0]}) lengths differ"
        )
    fs = float(fs_hz)
    if not np.isfinite(fs) or fs <= 0:
        raise ValueError(f"sample rate must be positive, got {fs_hz!r}")

    n = A.shape[0]
    lin = rotate_to_earth(Q, A) - G_VEC if n else np.zeros((0, 3), dtype=float)
    still = stationary_mask(A, W) if n else np.zeros(0, dtype=bool)

    vel = np.zeros((n, 3), dtype=float)
    pos = np.zeros((n, 3), dtype=float)
    starts = set(int(s) for s in (segment_starts or ()))
    state = StrapdownState(dt=1.0 / fs)
    for i in range(n):
        if i in starts:
            state.reset()
        vel[i], pos[i] = state.step(lin[i], bool(still[i]))
    logger.debug("trajectory: %d samples, %d stationary", n, int(still.sum()))
    return Trajectory(linear_acc=lin, velocity=vel, position=pos, stationary=still)
