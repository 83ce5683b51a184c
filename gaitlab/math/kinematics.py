from __future__ import annotations
import numpy as np

__all__ = [
    "normalize_quat",
    "quats_to_R_batch",
    "world_vec",
    "rotate_to_earth",
    "euler_pitch_roll_yaw_deg",
    "vec_norm",
]


def normalize_quat(q: np.ndarray) -> np.ndarray:
    q = np.asarray(q, dtype=float)
    n = np.linalg.norm(q, axis=-1, keepdims=True) + 1e-12
    return q / n


def quats_to_R_batch(quats: np.ndarray) -> np.ndarray:
    q = normalize_quat(np.asarray(quats, dtype=float))
    w, x, y, z = q[:, 0], q[:, 1], q[:, 2], q[:, 3]
    ww, xx, yy, zz = w * w, x * x, y * y, z * z
    wx, wy, wz = w * x, w * y, w * z
    xy, xz, yz = x * y, x * z, y * z
    R = np.empty((q.shape[0], 3, 3), dtype=float)
    R[:, 0, 0] = 1 - 2 * (yy + zz)
    R[:, 0, 1] = 2 * (xy - wz)
    R[:, 0, 2] = 2 * (xz + wy)
    R[:, 1, 0] = 2 * (xy + wz)
    R[:, 1, 1] = 1 - 2 * (xx + zz)
    R[:, 1, 2] = 2 * (yz - wx)
    R[:, 2, 0] = 2 * (xz - wy)
    R[:, 2, 1] = 2 * (yz + wx)
    R[:, 2, 2] = 1 - 2 * (xx + yy)
    return R


def world_vec(R_WS: np.ndarray, v_S: np.ndarray) -> np.ndarray:
    return (R_WS @ v_S[..., None]).squeeze(-1)


def rotate_to_earth(quats: np.ndarray, v_S: np.ndarray) -> np.ndarray:
    """Rotate sensor-frame vectors into the earth frame: q ⊗ v ⊗ q*.

    The AHRS quaternion predicts the sensor reading of earth vectors as
    q* ⊗ v_E ⊗ q, so the inverse mapping is sandwiched with the conjugate
    on the right.
    """
    Q = np.asarray(quats, dtype=float)
    V = np.asarray(v_S, dtype=float)
    if Q.shape[0] != V.shape[0]:
        raise ValueError(f"quaternion count {Q.shape[0]} != vector count {V.shape[0]}")
    if V.shape[0] == 0:
        return np.zeros((0, 3), dtype=float)
    return world_vec(quats_to_R_batch(Q), V)


def euler_pitch_roll_yaw_deg(quats: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Pitch (Y), roll (X) and yaw (Z) in degrees from (T,4) quaternions.

    Pitch argument is clipped to [-1, 1] to absorb rounding near gimbal lock.
    """
    q = np.asarray(quats, dtype=float)
    if q.size == 0:
        empty = np.zeros(0, dtype=float)
        return empty, empty.copy(), empty.copy()
    w, x, y, z = q[:, 0], q[:, 1], q[:, 2], q[:, 3]
    pitch = np.arcsin(np.clip(2.0 * (w * y - z * x), -1.0, 1.0))
    roll = np.arctan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))
    yaw = np.arctan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
    return np.rad2deg(pitch), np.rad2deg(roll), np.rad2deg(yaw)


def vec_norm(v: np.ndarray) -> np.ndarray:
    """Row-wise Euclidean norm of a (T,3) array."""
    return np.linalg.norm(np.asarray(v, dtype=float), axis=1)
