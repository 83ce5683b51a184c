"""Centralized constants, thresholds, and column aliases for the thigh-IMU gait pipeline."""
from __future__ import annotations

import numpy as np

# Physics
G = 9.81
G_VEC = np.array([0.0, 0.0, G], dtype=float)
PRESSURE_STANDARD_ATMOSPHERE_HPA = 1013.25

# Sampling
DEFAULT_SAMPLE_RATE_HZ = 100.0
MIN_SAMPLES_FOR_RATE = 10
MIN_RATE_SPAN_S = 1.0
MIN_ANALYSIS_RATE_HZ = 20.0

# Activity segmentation
ACTIVITY_WINDOW_S = 1.0
ACTIVITY_VARIANCE_THR = 0.5     # (m/s^2)^2
MIN_WALK_SEGMENT_S = 2.0
MIN_RECORDING_WALK_S = 3.0

# Zero-phase low-pass
FILTER_CUTOFF_HZ = 15.0
FILTER_ORDER = 2
FILTER_MIN_SAMPLES = 10
ALTITUDE_CUTOFF_HZ = 1.0

# Orientation (gradient-descent AHRS)
AHRS_BETA = 0.1

# Gait events (normalized acceleration magnitude)
HEEL_STRIKE_PEAK_HEIGHT = 1.2
TOE_OFF_VALLEY_HEIGHT = -0.8
MIN_PEAK_DISTANCE_S = 0.4
MIN_HEEL_STRIKES = 3

# Zero-velocity update
ZUPT_ACC_THR = 0.5              # m/s^2 around G
ZUPT_GYRO_THR = 1.0             # rad/s

# Derived metrics
MAX_STEP_LENGTH_M = 2.2
MIN_ANGLE_SAMPLES = 20
ANGLE_RANGE_PCT_LO = 2.0
ANGLE_RANGE_PCT_HI = 98.0
ABNORMAL_SWING_Z = 2.0
TURN_YAW_RATE_THR_DEG_S = 45.0
MIN_TURN_DURATION_S = 0.5

# Symmetry
SYMMETRY_WEIGHTS = {
    "time": 0.25,
    "step_length": 0.25,
    "stance": 0.15,
    "swing": 0.15,
    "flexion": 0.10,
    "abduction": 0.10,
}
NEUTRAL_SYMMETRY_SCORE = 50.0
MIN_SINGLE_LIMB_CYCLES = 4

# CSV column aliases (sanitized, lower-case)
TIME_NS_CANDS = ["timestamp", "timestamp_ns", "timestamp_nanos", "time_ns", "t_ns", "nanos"]
TIME_S_CANDS = ["time_s", "timestamp_s", "time", "seconds", "sec", "t"]
ACC = {
    "x": ["accx", "acc_x", "ax", "accel_x", "acceleration_x"],
    "y": ["accy", "acc_y", "ay", "accel_y", "acceleration_y"],
    "z": ["accz", "acc_z", "az", "accel_z", "acceleration_z"],
}
GYR = {
    "x": ["gyrox", "gyro_x", "gyr_x", "gx", "wx", "rate_x"],
    "y": ["gyroy", "gyro_y", "gyr_y", "gy", "wy", "rate_y"],
    "z": ["gyroz", "gyro_z", "gyr_z", "gz", "wz", "rate_z"],
}
MAG = {
    "x": ["magx", "mag_x", "mx", "magnetic_x"],
    "y": ["magy", "mag_y", "my", "magnetic_y"],
    "z": ["magz", "mag_z", "mz", "magnetic_z"],
}
PRESSURE = ["pressure", "pressure_hpa", "baro", "barometer", "p_hpa"]
