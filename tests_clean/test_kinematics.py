from __future__ import annotations
import numpy as np
import pytest
from gaitlab.math.kinematics import euler_pitch_roll_yaw_deg, rotate_to_earth


def _hamilton(p, q):
    pw, px, py, pz = p[:, 0], p[:, 1], p[:, 2], p[:, 3]
    qw, qx, qy, qz = q[:, 0], q[:, 1], q[:, 2], q[:, 3]
    return np.column_stack([
        pw * qw - px * qx - py * qy - pz * qz,
        pw * qx + px * qw + py * qz - pz * qy,
        pw * qy - px * qz + py * qw + pz * qx,
        pw * qz + px * qy - py * qx + pz * qw,
    ])


def test_rotation_matches_sandwich_product(rng):
    q = rng.normal(size=(50, 4))
    q /= np.linalg.norm(q, axis=1, keepdims=True)
    v = rng.normal(size=(50, 3))
    vq = np.column_stack([np.zeros(50), v])
    q_conj = q * np.array([1.0, -1.0, -1.0, -1.0])
    ref = _hamilton(_hamilton(q, vq), q_conj)[:, 1:]
    assert np.allclose(rotate_to_earth(q, v), ref)


def test_euler_of_single_axis_rotations():
    deg = np.deg2rad
    qs = np.array([
        [np.cos(deg(15)), np.sin(deg(15)), 0.0, 0.0],   # roll 30
        [np.cos(deg(10)), 0.0, np.sin(deg(10)), 0.0],   # pitch 20
        [np.cos(deg(45)), 0.0, 0.0, np.sin(deg(45))],   # yaw 90
    ])
    pitch, roll, yaw = euler_pitch_roll_yaw_deg(qs)
    assert np.allclose(roll, [30.0, 0.0, 0.0], atol=1e-9)
    assert np.allclose(pitch, [0.0, 20.0, 0.0], atol=1e-9)
    assert np.allclose(yaw, [0.0, 0.0, 90.0], atol=1e-9)


def test_gimbal_lock_pitch_is_finite():
    h = np.deg2rad(45.0)
    q = np.array([[np.cos(h), 0.0, np.sin(h) * (1 + 1e-12), 0.0]])
    pitch, _, _ = euler_pitch_roll_yaw_deg(q)
    assert np.isfinite(pitch).all()
    assert abs(pitch[0] - 90.0) < 1e-3


def test_count_mismatch_raises():
    with pytest.raises(ValueError):
        rotate_to_earth(np.tile([1.0, 0, 0, 0], (3, 1)), np.zeros((2, 3)))
