"""Tests for the signal conditioner."""

import math

import pytest

from conftest import DT
from paddle_input.conditioning import SignalConditioner
from paddle_input.config import ConditionerConfig
from paddle_input.models import Vec3


class TestDeadZoneAndSmoothing:
    def test_dead_zone_zeroes_small_components(self, conditioner):
        assert conditioner.apply_dead_zone(Vec3(0.4, -0.49, 0.6)) == Vec3(0.0, 0.0, 0.6)
        assert conditioner.apply_dead_zone(Vec3(-0.5, 0.5, 0.0)) == Vec3(-0.5, 0.5, 0.0)

    def test_fixed_smoothing(self):
        cond = SignalConditioner(ConditionerConfig(time_scaled=False, smoothing_factor=0.3))
        assert cond.smoothing_alpha(0.0) == 0.3
        assert cond.smoothing_alpha(0.5) == 0.3
        out = cond.condition(Vec3(10.0, 0.0, 0.0), dt=DT)
        assert out.smoothed.x == pytest.approx(3.0)
        out = cond.condition(Vec3(10.0, 0.0, 0.0), dt=DT)
        assert out.smoothed.x == pytest.approx(5.1)

    def test_time_scaled_alpha(self, conditioner):
        assert conditioner.smoothing_alpha(0.0) == 0.0
        assert conditioner.smoothing_alpha(DT) == pytest.approx(0.3)
        assert conditioner.smoothing_alpha(2 * DT) == pytest.approx(0.51)

    def test_time_scaled_is_rate_independent(self):
        slow = SignalConditioner(ConditionerConfig())
        fast = SignalConditioner(ConditionerConfig())
        for _ in range(25):
            a = slow.condition(Vec3(10.0, 0.0, 0.0), dt=0.02)
        for _ in range(50):
            b = fast.condition(Vec3(10.0, 0.0, 0.0), dt=0.01)
        assert a.smoothed.x == pytest.approx(b.smoothed.x)

    def test_raw_is_dead_zoned_input(self, conditioner):
        out = conditioner.condition(Vec3(0.2, 3.0, 0.0), dt=DT)
        assert out.raw == Vec3(0.0, 3.0, 0.0)

    def test_combined_magnitude_is_weighted_abs_sum(self):
        cond = SignalConditioner(
            ConditionerConfig(time_scaled=False, smoothing_factor=1.0, axis_weights=Vec3(2.0, 1.0, 0.0))
        )
        out = cond.condition(Vec3(-3.0, 4.0, 5.0), dt=DT)
        assert out.smoothed == Vec3(-3.0, 4.0, 5.0)
        assert out.combined_magnitude == pytest.approx(10.0)

    def test_reset(self, conditioner):
        conditioner.condition(Vec3(10.0, 0.0, 0.0), dt=DT)
        conditioner.reset()
        out = conditioner.condition(Vec3(), dt=DT)
        assert out.smoothed == Vec3()


class TestDriftCorrection:
    def _settle(self, cond: SignalConditioner, seconds: float, *, idle: bool, accel_y: int | None = 0):
        out = None
        for _ in range(round(seconds / DT)):
            out = cond.condition(Vec3(2.0, 0.0, 0.0), idle, dt=DT, accel_y=accel_y)
        return out

    def test_bias_is_removed_after_idle_timeout(self, conditioner):
        before = self._settle(conditioner, 1.5, idle=True)
        assert before.smoothed.x == pytest.approx(2.0, abs=1e-3)
        assert not conditioner.drift_active

        after = self._settle(conditioner, 4.5, idle=True)
        assert conditioner.drift_active
        assert abs(after.smoothed.x) < 0.05
        assert conditioner.baseline.x == pytest.approx(2.0, abs=0.05)

    def test_movement_freezes_baseline(self, conditioner):
        self._settle(conditioner, 6.0, idle=True)
        baseline = conditioner.baseline
        out = conditioner.condition(Vec3(20.0, 0.0, 0.0), False, dt=DT, accel_y=0)
        assert not conditioner.drift_active
        assert conditioner.baseline == baseline
        assert out.smoothed.x > 5.0

    def test_tilt_rate_is_not_absorbed(self, conditioner):
        # Steady accel-derived rotation matching the gyro: nothing to correct.
        tilt_per_tick = 2.0 * DT  # degrees, i.e. 2 deg/s
        out = None
        for i in range(round(6.0 / DT)):
            accel = round(16384 * math.sin(math.radians(i * tilt_per_tick)))
            out = conditioner.condition(Vec3(2.0, 0.0, 0.0), True, dt=DT, accel_y=accel)
        assert conditioner.drift_active
        assert out.smoothed.x == pytest.approx(2.0, abs=0.3)

    def test_no_accel_no_correction(self, conditioner):
        out = self._settle(conditioner, 6.0, idle=True, accel_y=None)
        assert not conditioner.drift_active
        assert out.smoothed.x == pytest.approx(2.0, abs=1e-3)

    def test_disabled(self):
        cond = SignalConditioner(ConditionerConfig(drift_correction=False))
        out = self._settle(cond, 6.0, idle=True)
        assert out.smoothed.x == pytest.approx(2.0, abs=1e-3)
        assert cond.baseline == Vec3()

    def test_tilt_degrees(self, conditioner):
        assert conditioner.tilt_degrees(0) == 0.0
        assert conditioner.tilt_degrees(16384) == pytest.approx(90.0)
        assert conditioner.tilt_degrees(40000) == pytest.approx(90.0)
        assert conditioner.tilt_degrees(-8192) == pytest.approx(-30.0)
