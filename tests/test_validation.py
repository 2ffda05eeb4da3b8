"""Tests for the input-boundary sample validator."""

from paddle_input.config import ValidationConfig
from paddle_input.models import SensorSample, Vec3
from paddle_input.streaming import SampleValidator


class TestSampleValidator:
    def test_accepts_dict(self):
        v = SampleValidator()
        sample = v.validate({"gyro": [1.0, 2.0, 3.0], "accel_y": 100, "t": 0.0})
        assert sample == SensorSample(gyro=Vec3(1.0, 2.0, 3.0), accel_y=100, t=0.0)
        assert v.accepted == 1

    def test_accepts_json(self):
        v = SampleValidator()
        assert v.validate_json('{"gyro": {"x": 1, "y": 0, "z": 0}, "t": 0.5}') is not None

    def test_rejects_garbage_json(self):
        v = SampleValidator()
        assert v.validate_json("not json") is None
        assert v.validate_json('{"gyro": "fast", "t": 0}') is None
        assert v.rejected == 2
        assert v.accepted == 0

    def test_rejects_missing_timestamp(self):
        v = SampleValidator()
        assert v.validate({"gyro": [0, 0, 0]}) is None

    def test_rejects_out_of_range_gyro(self):
        v = SampleValidator(ValidationConfig(max_abs_gyro=500.0))
        assert v.validate({"gyro": [0, 600.0, 0], "t": 0.0}) is None
        assert v.validate({"gyro": [0, 499.0, 0], "t": 0.0}) is not None

    def test_rejects_non_finite(self):
        v = SampleValidator()
        assert v.validate_json('{"gyro": [NaN, 0, 0], "t": 0}') is None

    def test_rejects_stale_timestamps(self):
        v = SampleValidator()
        assert v.validate({"gyro": [0, 0, 0], "t": 1.0}) is not None
        assert v.validate({"gyro": [0, 0, 0], "t": 1.0}) is None
        assert v.validate({"gyro": [0, 0, 0], "t": 0.5}) is None
        assert v.validate({"gyro": [0, 0, 0], "t": 1.02}) is not None
        assert (v.accepted, v.rejected) == (2, 2)

    def test_rejected_sample_does_not_advance_clock(self):
        v = SampleValidator()
        v.validate({"gyro": [0, 0, 0], "t": 1.0})
        v.validate({"gyro": [9999, 0, 0], "t": 2.0})
        assert v.validate({"gyro": [0, 0, 0], "t": 1.5}) is not None

    def test_stale_check_can_be_disabled(self):
        v = SampleValidator(ValidationConfig(reject_stale=False))
        v.validate({"gyro": [0, 0, 0], "t": 1.0})
        assert v.validate({"gyro": [0, 0, 0], "t": 0.5}) is not None

    def test_reset_clears_clock(self):
        v = SampleValidator()
        v.validate({"gyro": [0, 0, 0], "t": 1.0})
        v.reset()
        assert v.validate({"gyro": [0, 0, 0], "t": 0.0}) is not None
