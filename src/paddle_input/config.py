"""Configuration: per-component models plus environment-driven settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from paddle_input.errors import ConfigurationError
from paddle_input.models import Axis, CalibrationMode, Vec3

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class ConfigModel(BaseModel):
    """Frozen base for component configuration.

    Construction failures surface as :class:`ConfigurationError` instead of
    pydantic's ``ValidationError``, whether the model is built directly or
    through :meth:`build`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid {type(self).__name__}: {exc}") from exc

    @classmethod
    def build(cls, **values: Any) -> Self:
        return cls(**values)


# ── Component configs ─────────────────────────────────────────


class CalibrationConfig(ConfigModel):
    mode: CalibrationMode = CalibrationMode.ZERO_POINT
    required_samples: int = Field(50, gt=0)
    min_samples: int = Field(15, gt=0)  # accepted at timeout
    stability_threshold: float = Field(3.0, gt=0)
    duration: float = Field(5.0, gt=0)  # zero-point session timeout (s)
    retry_delay: float = Field(1.0, ge=0)
    retry_backoff: float = Field(1.0, ge=1.0)
    max_retries: int = Field(1, ge=0)

    # Three-point sub-sessions
    phase_samples: int = Field(30, gt=0)
    settle_delay: float = Field(1.0, ge=0)
    phase_timeout: float = Field(6.0, gt=0)

    @model_validator(mode="after")
    def _check_sample_counts(self) -> Self:
        if self.min_samples > self.required_samples:
            raise ValueError("min_samples must not exceed required_samples")
        return self


class ConditionerConfig(ConfigModel):
    dead_zone: float = Field(0.5, ge=0)
    smoothing_factor: float = Field(0.3, gt=0, le=1)
    time_scaled: bool = True
    reference_rate: float = Field(50.0, gt=0)  # Hz at which smoothing_factor applies as-is
    axis_weights: Vec3 = Vec3(1.0, 1.0, 1.0)
    turn_axis: Axis = Axis.X

    # Idle drift correction
    drift_correction: bool = True
    idle_timeout: float = Field(2.0, gt=0)
    idle_follow_smoothing: float = Field(5.0, ge=0)
    accel_one_g: float = Field(16384.0, gt=0)  # counts per g (±2 g range)

    @field_validator("axis_weights")
    @classmethod
    def _non_negative_weights(cls, value: Vec3) -> Vec3:
        if any(w < 0 for w in value):
            raise ValueError("axis weights must be non-negative")
        return value


class ClassifierConfig(ConfigModel):
    turn_axis: Axis = Axis.X
    invert_direction: bool = False

    idle_threshold: float = Field(5.0, gt=0)
    idle_timeout: float = Field(2.0, gt=0)
    idle_angle_tolerance: float | None = Field(None, gt=0)

    turn_threshold: float = Field(15.0, gt=0)
    turn_stability_time: float = Field(2.0, ge=0)

    stroke_threshold: float = Field(15.0, gt=0)
    stroke_cooldown: float = Field(0.5, ge=0)
    consecutive_strokes_for_turn: int = Field(2, ge=2)
    consecutive_window: float = Field(1.5, gt=0)

    alternating_window: float = Field(1.5, gt=0)
    min_alternating_strokes: int = Field(3, ge=2)
    recency_window: float = Field(1.0, gt=0)


class GestureConfig(ConfigModel):
    start_threshold: int = 8000
    restart_threshold: int = -8000
    cooldown: float = Field(2.0, ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> Self:
        if self.restart_threshold >= self.start_threshold:
            raise ValueError("restart_threshold must be below start_threshold")
        return self


class ValidationConfig(ConfigModel):
    max_abs_gyro: float = Field(2000.0, gt=0)  # full scale of a ±2000 deg/s gyro
    reject_stale: bool = True


# ── Settings ──────────────────────────────────────────────────


class Settings(BaseSettings):
    """All runtime configuration, read from ``PADDLE_*`` environment variables
    first, then from a *.env* file at the project root.

    The namespace is flat; :meth:`calibration`, :meth:`conditioner`,
    :meth:`classifier`, :meth:`gestures` and :meth:`validation` assemble the
    per-component models so shared values (idle timeout, turn axis) stay
    consistent.
    """

    model_config = SettingsConfigDict(
        env_prefix="PADDLE_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Calibration ───────────────────────────────────────────
    calibration_mode: CalibrationMode = CalibrationMode.ZERO_POINT
    calibration_required_samples: int = 50
    calibration_min_samples: int = 15
    calibration_stability_threshold: float = 3.0
    calibration_duration: float = 5.0
    calibration_retry_delay: float = 1.0
    calibration_retry_backoff: float = 1.0
    calibration_max_retries: int = 1
    calibration_phase_samples: int = 30
    calibration_settle_delay: float = 1.0
    calibration_phase_timeout: float = 6.0

    # ── Signal conditioning ───────────────────────────────────
    dead_zone: float = 0.5
    smoothing_factor: float = 0.3
    time_scaled_smoothing: bool = True
    reference_rate: float = 50.0
    axis_weights: tuple[float, float, float] = (1.0, 1.0, 1.0)
    drift_correction: bool = True
    idle_follow_smoothing: float = 5.0
    accel_one_g: float = 16384.0

    # ── Pattern classification ────────────────────────────────
    turn_axis: Axis = Axis.X
    invert_direction: bool = False
    idle_threshold: float = 5.0
    idle_timeout: float = 2.0
    idle_angle_tolerance: float | None = None
    turn_threshold: float = 15.0
    turn_stability_time: float = 2.0
    stroke_threshold: float = 15.0
    stroke_cooldown: float = 0.5
    consecutive_strokes_for_turn: int = 2
    consecutive_window: float = 1.5
    alternating_window: float = 1.5
    min_alternating_strokes: int = 3

    # ── Gestures ──────────────────────────────────────────────
    gesture_start_threshold: int = 8000
    gesture_restart_threshold: int = -8000
    gesture_cooldown: float = 2.0

    # ── Input boundary / streaming ────────────────────────────
    max_abs_gyro: float = 2000.0
    queue_maxsize: int = 10_000

    # ── Event delivery ────────────────────────────────────────
    webhook_url: str = ""
    webhook_timeout: float = 5.0

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def calibration(self) -> CalibrationConfig:
        return CalibrationConfig.build(
            mode=self.calibration_mode,
            required_samples=self.calibration_required_samples,
            min_samples=self.calibration_min_samples,
            stability_threshold=self.calibration_stability_threshold,
            duration=self.calibration_duration,
            retry_delay=self.calibration_retry_delay,
            retry_backoff=self.calibration_retry_backoff,
            max_retries=self.calibration_max_retries,
            phase_samples=self.calibration_phase_samples,
            settle_delay=self.calibration_settle_delay,
            phase_timeout=self.calibration_phase_timeout,
        )

    def conditioner(self) -> ConditionerConfig:
        return ConditionerConfig.build(
            dead_zone=self.dead_zone,
            smoothing_factor=self.smoothing_factor,
            time_scaled=self.time_scaled_smoothing,
            reference_rate=self.reference_rate,
            axis_weights=Vec3(*self.axis_weights),
            turn_axis=self.turn_axis,
            drift_correction=self.drift_correction,
            idle_timeout=self.idle_timeout,
            idle_follow_smoothing=self.idle_follow_smoothing,
            accel_one_g=self.accel_one_g,
        )

    def classifier(self) -> ClassifierConfig:
        return ClassifierConfig.build(
            turn_axis=self.turn_axis,
            invert_direction=self.invert_direction,
            idle_threshold=self.idle_threshold,
            idle_timeout=self.idle_timeout,
            idle_angle_tolerance=self.idle_angle_tolerance,
            turn_threshold=self.turn_threshold,
            turn_stability_time=self.turn_stability_time,
            stroke_threshold=self.stroke_threshold,
            stroke_cooldown=self.stroke_cooldown,
            consecutive_strokes_for_turn=self.consecutive_strokes_for_turn,
            consecutive_window=self.consecutive_window,
            alternating_window=self.alternating_window,
            min_alternating_strokes=self.min_alternating_strokes,
        )

    def gestures(self) -> GestureConfig:
        return GestureConfig.build(
            start_threshold=self.gesture_start_threshold,
            restart_threshold=self.gesture_restart_threshold,
            cooldown=self.gesture_cooldown,
        )

    def validation(self) -> ValidationConfig:
        return ValidationConfig.build(max_abs_gyro=self.max_abs_gyro)

    def validate_components(self) -> None:
        """Build every component config once so bad values fail at startup."""
        self.calibration()
        self.conditioner()
        self.classifier()
        self.gestures()
        self.validation()
        if self.queue_maxsize < 0:
            raise ConfigurationError("queue_maxsize must be >= 0")


def load_settings(**overrides: Any) -> Settings:
    """Build :class:`Settings` and validate all derived component configs.

    Raises :class:`ConfigurationError` on any invalid value.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
    settings.validate_components()
    return settings


@lru_cache
def get_settings() -> Settings:
    """Return a cached, validated :class:`Settings` singleton."""
    return load_settings()
