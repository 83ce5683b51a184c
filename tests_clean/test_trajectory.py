import numpy as np
import pytest
from gaitlab.math.ahrs import estimate_orientation
from gaitlab.pipeline.trajectory import StrapdownState, reconstruct_trajectory, stationary_mask


def test_strapdown_zero_velocity_update():
    st = StrapdownState(dt=0.1)
    v, p = st.step(np.array([1.0, 0.0, 0.0]), False)
    assert np.allclose(v, 0) and np.allclose(p, 0)
    v, p = st.step(np.array([1.0, 0.0, 0.0]), False)
    assert np.allclose(v, [0.1, 0.0, 0.0])
    assert np.allclose(p, [0.01, 0.0, 0.0])
    v, p = st.step(np.array([1.0, 0.0, 0.0]), True)
    assert np.allclose(v, 0)
    assert np.allclose(p, [0.01, 0.0, 0.0])


def test_static_level_sensor_stays_put():
    T = 300
    acc = np.tile([0.0, 0.0, 9.81], (T, 1))
    q = np.tile([1.0, 0.0, 0.0, 0.0], (T, 1))
    tr = reconstruct_trajectory(q, acc, np.zeros((T, 3)), 100.0)
    assert np.all(tr.stationary)
    assert np.allclose(tr.linear_acc, 0.0, atol=1e-12)
    assert np.allclose(tr.position, 0.0)


def test_static_tilt_removes_gravity():
    T = 3000
    tilt = np.deg2rad(25.0)
    acc = np.tile([0.0, 9.81 * np.sin(tilt), 9.81 * np.cos(tilt)], (T, 1))
    z = np.zeros((T, 3))
    q = estimate_orientation(acc, z, z, 100.0)
    tr = reconstruct_trajectory(q, acc, z, 100.0)
    assert np.max(np.linalg.norm(tr.linear_acc[-100:], axis=1)) < 0.2


def test_integration_resets_at_segment_boundary():
    T = 100
    acc = np.tile([0.0, 0.0, 11.81], (T, 1))
    q = np.tile([1.0, 0.0, 0.0, 0.0], (T, 1))
    tr = reconstruct_trajectory(q, acc, np.zeros((T, 3)), 100.0, segment_starts=[0, 50])
    assert not tr.stationary.any()
    assert tr.position[49, 2] > 0
    assert np.allclose(tr.position[50], 0.0)
    assert np.allclose(tr.velocity[50], 0.0)
    assert np.allclose(tr.position[50:], tr.position[:50])


def test_stationary_mask_thresholds():
    acc = np.array([[0, 0, 9.81], [0, 0, 10.5], [0, 0, 9.81]], dtype=float)
    gyro = np.array([[0, 0, 0], [0, 0, 0], [0, 1.5, 0]], dtype=float)
    assert stationary_mask(acc, gyro).tolist() == [True, False, False]


def test_length_mismatch_raises():
    with pytest.raises(ValueError):
        reconstruct_trajectory(np.zeros((4, 4)), np.zeros((5, 3)), np.zeros((5, 3)), 100.0)
