import numpy as np
import pytest
from gaitlab.math.ahrs import MadgwickState, estimate_orientation
from gaitlab.math.kinematics import euler_pitch_roll_yaw_deg


def test_quaternion_norm_stays_unit(rng):
    T = 800
    gyro = rng.normal(0.0, 2.0, size=(T, 3))
    acc = rng.normal(0.0, 6.0, size=(T, 3)) + [0.0, 0.0, 9.81]
    mag = rng.normal(0.0, 30.0, size=(T, 3))
    mag[::7] = 0.0  # exercise the IMU-only path too
    acc[::11] = 0.0  # degenerate accelerometer samples
    q = estimate_orientation(acc, gyro, mag, 100.0)
    assert q.shape == (T, 4)
    assert np.all(np.abs(np.linalg.norm(q, axis=1) - 1.0) < 1e-6)


def test_gravity_only_holds_identity():
    T = 500
    acc = np.tile([0.0, 0.0, 9.81], (T, 1))
    z = np.zeros((T, 3))
    q = estimate_orientation(acc, z, z, 100.0)
    pitch, roll, _ = euler_pitch_roll_yaw_deg(q)
    assert np.allclose(q[-1], [1.0, 0.0, 0.0, 0.0], atol=1e-9)
    assert np.max(np.abs(pitch)) < 1e-6
    assert np.max(np.abs(roll)) < 1e-6


def test_tilted_start_converges_to_level():
    half = np.deg2rad(20.0) / 2
    st = MadgwickState(sample_period=0.01, q=np.array([np.cos(half), np.sin(half), 0.0, 0.0]))
    for _ in range(3000):
        st.update_imu([0.0, 0.0, 0.0], [0.0, 0.0, 9.81])
    pitch, roll, _ = euler_pitch_roll_yaw_deg(st.quaternion[None, :])
    assert abs(pitch[0]) < 0.5
    assert abs(roll[0]) < 0.5


def test_zero_magnetometer_matches_imu_update():
    a = MadgwickState(sample_period=0.01)
    b = MadgwickState(sample_period=0.01)
    for k in range(50):
        g = [0.1 * np.sin(k / 5), 0.2, -0.05]
        acc = [0.3, -0.2, 9.7]
        qa = a.update(g, acc, [0.0, 0.0, 0.0])
        qb = b.update_imu(g, acc)
        assert np.allclose(qa, qb)


def test_state_resets_at_segment_starts(rng):
    n = 60
    gyro = rng.normal(0.0, 1.0, size=(n, 3))
    acc = rng.normal(0.0, 1.0, size=(n, 3)) + [0.0, 0.0, 9.81]
    mag = np.zeros((n, 3))
    q = estimate_orientation(
        np.vstack([acc, acc]), np.vstack([gyro, gyro]), np.vstack([mag, mag]), 100.0,
        segment_starts=[0, n],
    )
    assert np.allclose(q[:n], q[n:])


def test_invalid_inputs():
    with pytest.raises(ValueError):
        MadgwickState(sample_period=0.0)
    with pytest.raises(ValueError):
        estimate_orientation(np.zeros((5, 3)), np.zeros((4, 3)), np.zeros((5, 3)), 100.0)
