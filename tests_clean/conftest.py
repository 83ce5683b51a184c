from __future__ import annotations
import numpy as np
import pytest

from gaitlab.pipeline.io_utils import samples_to_frame
from gaitlab.pipeline.synthetic import synthetic_walk


@pytest.fixture
def walk_segment():
    """6 s at 100 Hz, vertical acc 9.81 + 2 sin(2*pi*1.8*t)."""
    return synthetic_walk(duration_s=6.0, fs=100.0, step_hz=1.8)


@pytest.fixture
def walk_recording():
    """8 s walk framed by 1 s of stillness, light sensor noise."""
    return synthetic_walk(duration_s=8.0, fs=100.0, step_hz=1.8, rest_s=1.0, noise_std=0.02, seed=3)


@pytest.fixture
def walk_csv_bytes(walk_recording) -> bytes:
    return samples_to_frame(walk_recording).to_csv(index=False).encode("utf-8")


@pytest.fixture
def still_csv_bytes() -> bytes:
    samples = synthetic_walk(duration_s=0.0, fs=100.0, rest_s=5.0)
    return samples_to_frame(samples).to_csv(index=False).encode("utf-8")


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
