"""End-to-end scenarios through the input engine."""

import pytest

from conftest import DT, make_samples
from paddle_input.calibration import Calibrator
from paddle_input.conditioning import SignalConditioner
from paddle_input.config import CalibrationConfig, ConditionerConfig, Settings
from paddle_input.detection import GestureDetector, PatternClassifier
from paddle_input.engine import InputEngine, create_engine
from paddle_input.errors import CalibrationTimeout
from paddle_input.events import EventEmitter
from paddle_input.models import (
    CalibrationProfile,
    CalibrationStatus,
    EventType,
    MovementState,
    SensorSample,
    Vec3,
)


def _run(engine: InputEngine, samples):
    events = []
    for s in samples:
        events.extend(engine.tick(s))
    return events


def _types(events):
    return [e.type for e in events]


class TestClassification:
    def test_sustained_turn_right(self, engine):
        events = _run(engine, make_samples(2.5, Vec3(20.0, 0.0, 0.0)))
        turns = [e for e in events if e.type is EventType.TURN_RIGHT]
        assert len(turns) == 1
        assert 2.0 <= turns[0].t <= 2.2
        assert EventType.TURN_LEFT not in _types(events)
        assert engine.state is MovementState.TURN_RIGHT

    def test_quiet_sensor_emits_nothing(self, engine):
        assert _run(engine, make_samples(5.0, Vec3(0.3, -0.2, 0.1))) == []
        assert engine.state is MovementState.IDLE

    def test_alternating_strokes_forward(self):
        emitter = EventEmitter()
        engine = InputEngine(
            calibrator=Calibrator(),
            conditioner=SignalConditioner(ConditionerConfig(time_scaled=False, smoothing_factor=1.0)),
            classifier=PatternClassifier(),
            gestures=GestureDetector(),
            emitter=emitter,
        )
        engine.calibrator.adopt(CalibrationProfile.identity())

        def paddle(i: int) -> Vec3:
            phase = i % 20  # 0.4 s per stroke
            if phase >= 5:
                return Vec3()
            side = -1.0 if (i // 20) % 2 == 0 else 1.0
            return Vec3(side * 25.0, 0.0, 0.0)

        events = _run(engine, make_samples(1.6, paddle))
        assert _types(events) == [
            EventType.PADDLE_LEFT,
            EventType.PADDLE_RIGHT,
            EventType.PADDLE_LEFT,
            EventType.FORWARD,
            EventType.PADDLE_RIGHT,
        ]
        assert [e.seq for e in events] == [1, 2, 3, 4, 5]
        assert events[3].t == pytest.approx(0.8)

    def test_callback_sees_same_events(self, engine, emitted):
        events = _run(engine, make_samples(2.5, Vec3(20.0, 0.0, 0.0)))
        assert [e.id for e in emitted] == [e.id for e in events]


class TestGestures:
    def test_start_gesture_once(self, engine):
        samples = make_samples(0.5, Vec3(), accel_y=9000)
        events = _run(engine, samples)
        assert _types(events) == [EventType.START_GAME]

    def test_gesture_tick_skips_classification(self, engine):
        engine.tick(SensorSample(gyro=Vec3(), t=0.0))
        # Smoothed x reaches 18 deg/s here, which would otherwise be a stroke.
        events = engine.tick(SensorSample(gyro=Vec3(60.0, 0.0, 0.0), accel_y=-9000, t=DT))
        assert _types(events) == [EventType.RESTART_GAME]
        assert engine.last_signal.smoothed.x == pytest.approx(18.0)
        assert engine.classifier.history == ()

    def test_gesture_tick_keeps_turn_timer_running(self, engine):
        turning = Vec3(20.0, 0.0, 0.0)
        samples = [
            *make_samples(1.0, turning),
            SensorSample(gyro=turning, accel_y=9000, t=1.5),
            *make_samples(1.5, turning, start=1.52),
        ]
        events = _run(engine, samples)
        assert _types(events) == [EventType.PADDLE_RIGHT, EventType.START_GAME, EventType.TURN_RIGHT]
        # Stability time runs from the first tick above threshold, gap included.
        assert 2.0 <= events[2].t <= 2.12


class TestCalibrationFlow:
    def test_no_events_while_calibrating(self, engine):
        engine.request_calibration()
        events = _run(engine, make_samples(2.0, Vec3(20.0, 0.0, 0.0), accel_y=9000))
        assert events == []
        assert engine.calibration_status is CalibrationStatus.CALIBRATING

    def test_calibrate_then_classify(self, engine):
        engine.request_calibration()
        _run(engine, make_samples(1.2, Vec3(1.0, 0.0, 0.0)))
        assert engine.calibration_status is CalibrationStatus.CALIBRATED
        assert engine.calibrator.profile.offset.x == pytest.approx(1.0)

        events = _run(engine, make_samples(2.5, Vec3(21.0, 0.0, 0.0), start=1.2))
        assert EventType.TURN_RIGHT in _types(events)

    def test_uncalibrated_engine_is_silent(self):
        engine = create_engine(Settings())
        assert _run(engine, make_samples(2.5, Vec3(20.0, 0.0, 0.0))) == []
        assert engine.calibration_status is CalibrationStatus.UNCALIBRATED

    def test_recalibration_publishes_idle_first(self, engine):
        _run(engine, make_samples(2.5, Vec3(20.0, 0.0, 0.0)))
        assert engine.state is MovementState.TURN_RIGHT

        engine.request_calibration()
        events = engine.tick(SensorSample(gyro=Vec3(), t=2.5))
        assert _types(events) == [EventType.IDLE]
        assert engine.state is MovementState.IDLE
        assert engine.calibration_status is CalibrationStatus.CALIBRATING

    def test_reset_drops_profile(self, engine):
        _run(engine, make_samples(2.5, Vec3(20.0, 0.0, 0.0)))
        engine.request_reset()
        events = _run(engine, make_samples(2.5, Vec3(20.0, 0.0, 0.0), start=2.5))
        assert _types(events) == [EventType.IDLE]
        assert engine.calibration_status is CalibrationStatus.UNCALIBRATED

    def test_exhausted_retries_raise(self):
        engine = create_engine(Settings(calibration_max_retries=0))
        engine.request_calibration()
        with pytest.raises(CalibrationTimeout):
            _run(engine, make_samples(6.0, Vec3(50.0, 0.0, 0.0)))

    def test_failed_recalibration_keeps_previous_profile(self):
        engine = InputEngine(
            calibrator=Calibrator(CalibrationConfig(max_retries=0)),
            conditioner=SignalConditioner(),
            classifier=PatternClassifier(),
            gestures=GestureDetector(),
            emitter=EventEmitter(),
        )
        engine.calibrator.adopt(CalibrationProfile.identity())
        engine.request_calibration()
        with pytest.raises(CalibrationTimeout):
            _run(engine, make_samples(6.0, Vec3(50.0, 0.0, 0.0)))

        events = _run(engine, make_samples(2.5, Vec3(20.0, 0.0, 0.0), start=6.0))
        assert EventType.TURN_RIGHT in _types(events)


class TestTickBoundary:
    def test_none_is_noop(self, engine):
        assert engine.tick(None) == []
        assert engine.ticks_total == 0

    def test_out_of_order_sample_dropped(self, engine):
        engine.tick(SensorSample(gyro=Vec3(), t=1.0))
        assert engine.tick(SensorSample(gyro=Vec3(40.0, 0.0, 0.0), t=1.0 - DT)) == []
        assert engine.out_of_order_total == 1
        assert engine.stats["ticks_total"] == 1

    def test_last_signal_exposed(self, engine):
        engine.tick(SensorSample(gyro=Vec3(10.0, 0.0, 0.0), t=0.0))
        engine.tick(SensorSample(gyro=Vec3(10.0, 0.0, 0.0), t=DT))
        assert engine.last_signal is not None
        assert engine.last_signal.smoothed.x == pytest.approx(3.0)
