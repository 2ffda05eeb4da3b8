"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Callable

import pytest

from paddle_input.calibration import Calibrator
from paddle_input.conditioning import SignalConditioner
from paddle_input.config import (
    CalibrationConfig,
    ClassifierConfig,
    ConditionerConfig,
    GestureConfig,
)
from paddle_input.detection import GestureDetector, PatternClassifier
from paddle_input.engine import InputEngine
from paddle_input.events import EventEmitter
from paddle_input.models import CalibrationProfile, ConditionedSignal, SensorSample, Vec3

RATE_HZ = 50
DT = 1.0 / RATE_HZ


def make_samples(
    seconds: float,
    gyro: Vec3 | Callable[[int], Vec3] = Vec3(),
    *,
    start: float = 0.0,
    accel_y: int = 0,
) -> list[SensorSample]:
    """Deterministic 50 Hz sample run; *gyro* may vary with the sample index."""
    n = round(seconds * RATE_HZ)
    return [
        SensorSample(
            gyro=gyro(i) if callable(gyro) else gyro,
            accel_y=accel_y,
            t=round(start + i * DT, 6),
        )
        for i in range(n)
    ]


def turn_signal(value: float, *, axis: int = 0) -> ConditionedSignal:
    """A conditioned signal with *value* on one axis only."""
    components = [0.0, 0.0, 0.0]
    components[axis] = value
    vec = Vec3(*components)
    return ConditionedSignal(smoothed=vec, raw=vec, combined_magnitude=abs(value))


@pytest.fixture
def calibration_config() -> CalibrationConfig:
    return CalibrationConfig(
        required_samples=50,
        min_samples=15,
        stability_threshold=3.0,
        duration=5.0,
        retry_delay=1.0,
        max_retries=1,
    )


@pytest.fixture
def calibrator(calibration_config: CalibrationConfig) -> Calibrator:
    return Calibrator(calibration_config)


@pytest.fixture
def classifier() -> PatternClassifier:
    return PatternClassifier(ClassifierConfig())


@pytest.fixture
def conditioner() -> SignalConditioner:
    return SignalConditioner(ConditionerConfig())


@pytest.fixture
def gestures() -> GestureDetector:
    return GestureDetector(GestureConfig())


@pytest.fixture
def emitted() -> list:
    return []


@pytest.fixture
def engine(calibrator: Calibrator, emitted: list) -> InputEngine:
    """Engine with an identity profile so classification is live immediately."""
    eng = InputEngine(
        calibrator=calibrator,
        conditioner=SignalConditioner(ConditionerConfig()),
        classifier=PatternClassifier(ClassifierConfig()),
        gestures=GestureDetector(GestureConfig()),
        emitter=EventEmitter(lambda event, _ctx: emitted.append(event)),
    )
    eng.calibrator.adopt(CalibrationProfile.identity())
    return eng
