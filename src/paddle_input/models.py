"""Shared data models used across the input pipeline."""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ── Enums ─────────────────────────────────────────────────────


class Axis(str, Enum):
    """Sensor axis selector."""

    X = "x"
    Y = "y"
    Z = "z"

    @property
    def index(self) -> int:
        return "xyz".index(self.value)


class Direction(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> Direction:
        return Direction.RIGHT if self is Direction.LEFT else Direction.LEFT


class MovementState(str, Enum):
    """States of the pattern classifier.  Exactly one is active at a time."""

    IDLE = "idle"
    FORWARD = "forward"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"


class EventType(str, Enum):
    """Typed events delivered to the downstream game / boat controller."""

    PADDLE_LEFT = "paddle_left"
    PADDLE_RIGHT = "paddle_right"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    FORWARD = "forward"
    IDLE = "idle"
    START_GAME = "start_game"
    RESTART_GAME = "restart_game"


class CalibrationMode(str, Enum):
    ZERO_POINT = "zero_point"
    THREE_POINT = "three_point"


class CalibrationStatus(str, Enum):
    UNCALIBRATED = "uncalibrated"
    CALIBRATING = "calibrating"
    CALIBRATED = "calibrated"
    FAILED = "failed"


class CalibrationPhase(str, Enum):
    """Sub-session of a calibration run.

    Zero-point sessions use the single ``ZERO`` phase; three-point sessions
    walk ``NEUTRAL → LEFT → RIGHT``.
    """

    ZERO = "zero"
    NEUTRAL = "neutral"
    LEFT = "left"
    RIGHT = "right"


STATE_EVENTS: dict[MovementState, EventType] = {
    MovementState.IDLE: EventType.IDLE,
    MovementState.FORWARD: EventType.FORWARD,
    MovementState.TURN_LEFT: EventType.TURN_LEFT,
    MovementState.TURN_RIGHT: EventType.TURN_RIGHT,
}

STROKE_EVENTS: dict[Direction, EventType] = {
    Direction.LEFT: EventType.PADDLE_LEFT,
    Direction.RIGHT: EventType.PADDLE_RIGHT,
}

TURN_STATES: dict[Direction, MovementState] = {
    Direction.LEFT: MovementState.TURN_LEFT,
    Direction.RIGHT: MovementState.TURN_RIGHT,
}


# ── Vector ────────────────────────────────────────────────────


class Vec3(NamedTuple):
    """Immutable three-axis vector (deg/s for gyro data)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def zero(cls) -> Vec3:
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def mean(cls, vectors: Iterable[Vec3]) -> Vec3:
        """Arithmetic mean of *vectors*.  Raises ``ValueError`` when empty."""
        items = list(vectors)
        if not items:
            raise ValueError("mean of an empty vector sequence")
        n = len(items)
        return cls(
            sum(v.x for v in items) / n,
            sum(v.y for v in items) / n,
            sum(v.z for v in items) / n,
        )

    def __add__(self, other: Vec3) -> Vec3:  # type: ignore[override]
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, k: float) -> Vec3:  # type: ignore[override]
        return Vec3(self.x * k, self.y * k, self.z * k)

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def abs(self) -> Vec3:
        return Vec3(abs(self.x), abs(self.y), abs(self.z))

    def lerp(self, target: Vec3, t: float) -> Vec3:
        """Move ``t`` of the way towards *target* (``t`` is clamped to [0, 1])."""
        t = min(1.0, max(0.0, t))
        return Vec3(
            self.x + (target.x - self.x) * t,
            self.y + (target.y - self.y) * t,
            self.z + (target.z - self.z) * t,
        )

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self)


def _coerce_vec3(value: Any) -> Any:
    """Accept ``{"x": .., "y": .., "z": ..}`` as well as 3-sequences."""
    if isinstance(value, Mapping):
        return (value.get("x", 0.0), value.get("y", 0.0), value.get("z", 0.0))
    return value


# ── Data transfer objects ─────────────────────────────────────

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class SensorSample(BaseModel):
    """One decoded reading from the wearable: gyro rates, accel Y count, time."""

    model_config = ConfigDict(frozen=True)

    gyro: Vec3
    accel_y: int = Field(0, ge=INT32_MIN, le=INT32_MAX)
    t: float = Field(..., description="Monotonic timestamp in seconds.")

    @field_validator("gyro", mode="before")
    @classmethod
    def _gyro_from_mapping(cls, value: Any) -> Any:
        return _coerce_vec3(value)

    @field_validator("gyro")
    @classmethod
    def _gyro_finite(cls, value: Vec3) -> Vec3:
        if not value.is_finite():
            raise ValueError("gyro components must be finite")
        return value

    @field_validator("t")
    @classmethod
    def _t_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("timestamp must be finite")
        return value


class CalibrationProfile(BaseModel):
    """Result of a completed calibration session.  Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    offset: Vec3
    mode: CalibrationMode
    points: tuple[Vec3, Vec3, Vec3] | None = Field(
        None,
        description="Neutral, left and right means (three-point mode only).",
    )
    sensitivity: Vec3 | None = Field(
        None,
        description="Mean per-axis excursion of the tilt points from neutral. Diagnostic only.",
    )
    sample_count: int = 0

    @classmethod
    def identity(cls) -> CalibrationProfile:
        """Zero-offset profile for sensors that are already zeroed upstream."""
        return cls(offset=Vec3.zero(), mode=CalibrationMode.ZERO_POINT)


class ControlEvent(BaseModel):
    """A discrete event handed to the external controller."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    seq: int
    type: EventType
    t: float
    intensity: float | None = None
    confidence: float | None = None


@dataclass(frozen=True, slots=True)
class ConditionedSignal:
    """Per-sample output of the signal conditioner."""

    smoothed: Vec3
    raw: Vec3
    combined_magnitude: float


@dataclass(frozen=True, slots=True)
class MovementEvent:
    """A single accepted paddle stroke."""

    direction: Direction
    t: float
    intensity: float


@dataclass(frozen=True, slots=True)
class ClassifierUpdate:
    """What the classifier concluded on one tick."""

    state: MovementState
    confidence: float
    changed: bool
    stroke: MovementEvent | None = None
    forward_triggered: bool = False
