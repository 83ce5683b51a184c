import numpy as np
import pytest
from gaitlab.pipeline.samples import SensorSample, samples_from_arrays


def test_sample_vectors_need_three_components():
    with pytest.raises(ValueError, match="acc"):
        SensorSample(0, acc=(1.0, 2.0))
    with pytest.raises(ValueError, match="gyro"):
        SensorSample(0, gyro=(1.0, 2.0, 3.0, 4.0))
    s = SensorSample(5, acc=[0, 0, 9.81])
    assert s.acc == (0.0, 0.0, 9.81)
    assert s.mag == (0.0, 0.0, 0.0) and s.pressure == 0.0


@pytest.mark.parametrize("field", ["acc", "gyro", "mag", "pressure"])
def test_mismatched_lengths_fail_fast(field):
    n = 10
    cols = {
        "acc": np.zeros((n, 3)),
        "gyro": np.zeros((n, 3)),
        "mag": np.zeros((n, 3)),
        "pressure": np.full(n, 1000.0),
    }
    cols[field] = cols[field][:-1]
    with pytest.raises(ValueError, match=field):
        samples_from_arrays(np.arange(n), **cols)


def test_axis_count_is_checked():
    with pytest.raises(ValueError, match=r"\(T,3\)"):
        samples_from_arrays(np.arange(4), np.zeros((4, 2)), np.zeros((4, 3)))


def test_optional_channels_default_to_zero():
    out = samples_from_arrays([0, 10, 20], np.ones((3, 3)), np.zeros((3, 3)))
    assert len(out) == 3
    assert [s.timestamp_nanos for s in out] == [0, 10, 20]
    assert all(s.pressure == 0.0 and s.mag == (0.0, 0.0, 0.0) for s in out)
