"""Calibrator — baseline offset from a burst of stable gyro samples.

Sessions span many ticks: :meth:`Calibrator.feed` is called once per sample
and never blocks.  Two modes are supported:

* **Zero-point** — buffer samples whose magnitude is below the stability
  threshold until ``required_samples`` are collected or the session
  ``duration`` elapses.  The offset is the mean of the buffer.
* **Three-point** — three sub-sessions (neutral, left tilt, right tilt),
  each preceded by an operator instruction and a settle delay.  The offset
  comes from the neutral phase; the tilt phases give a per-axis sensitivity
  estimate that is kept for diagnostics only.

A failed attempt is retried automatically after ``retry_delay`` (scaled by
``retry_backoff`` per attempt).  Once ``max_retries`` is spent the failure
is raised as :class:`CalibrationTimeout`.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from paddle_input.config import CalibrationConfig
from paddle_input.errors import CalibrationTimeout
from paddle_input.models import (
    CalibrationMode,
    CalibrationPhase,
    CalibrationProfile,
    CalibrationStatus,
    SensorSample,
    Vec3,
)

logger = structlog.get_logger(__name__)

INSTRUCTIONS: dict[CalibrationPhase, str] = {
    CalibrationPhase.ZERO: "Hold the paddle still",
    CalibrationPhase.NEUTRAL: "Hold the paddle flat (neutral)",
    CalibrationPhase.LEFT: "Tilt the paddle to the LEFT and hold",
    CalibrationPhase.RIGHT: "Tilt the paddle to the RIGHT and hold",
}

_THREE_POINT_PHASES = (
    CalibrationPhase.NEUTRAL,
    CalibrationPhase.LEFT,
    CalibrationPhase.RIGHT,
)


@dataclass(frozen=True, slots=True)
class CalibrationProgress:
    """Snapshot of the calibrator after a :meth:`Calibrator.feed` call."""

    status: CalibrationStatus
    mode: CalibrationMode | None
    phase: CalibrationPhase | None
    collected: int
    required: int
    attempt: int
    instruction: str = ""

    @property
    def fraction(self) -> float:
        if self.status is CalibrationStatus.CALIBRATED:
            return 1.0
        if self.required <= 0:
            return 0.0
        return min(1.0, self.collected / self.required)

    @property
    def done(self) -> bool:
        return self.status is CalibrationStatus.CALIBRATED


class Calibrator:
    """Owns the calibration session state and the active profile."""

    def __init__(self, config: CalibrationConfig | None = None) -> None:
        self._config = config or CalibrationConfig()
        self._profile: CalibrationProfile | None = None
        self._status = CalibrationStatus.UNCALIBRATED
        self._mode: CalibrationMode | None = None
        self._failures = 0
        self._retry_at: float | None = None
        self._clear_session()

    # ── Read-only state ───────────────────────────────────────

    @property
    def config(self) -> CalibrationConfig:
        return self._config

    @property
    def status(self) -> CalibrationStatus:
        return self._status

    @property
    def profile(self) -> CalibrationProfile | None:
        return self._profile

    @property
    def mode(self) -> CalibrationMode | None:
        return self._mode

    @property
    def phase(self) -> CalibrationPhase | None:
        return self._phase

    @property
    def retries(self) -> int:
        """Failed attempts in the current session (the retry counter)."""
        return self._failures

    @property
    def is_active(self) -> bool:
        """``True`` while a session is collecting or waiting to retry."""
        return self._status is CalibrationStatus.CALIBRATING or (
            self._status is CalibrationStatus.FAILED and self._retry_at is not None
        )

    # ── Session control ───────────────────────────────────────

    def start_session(self, mode: CalibrationMode | None = None) -> None:
        """Begin a new session.  The current profile stays in place until
        the new session completes."""
        self._mode = mode or self._config.mode
        self._failures = 0
        self._retry_at = None
        self._begin_attempt()
        logger.info(
            "calibrator.session_started",
            mode=self._mode.value,
            required=self._required(),
            stability_threshold=self._config.stability_threshold,
        )

    def feed(self, sample: SensorSample) -> CalibrationProgress:
        """Advance the session by one sample.

        Raises :class:`CalibrationTimeout` when an attempt fails and no
        retries remain.
        """
        if self._status is CalibrationStatus.FAILED and self._retry_at is not None:
            if sample.t < self._retry_at:
                return self.progress()
            self._retry_at = None
            self._begin_attempt()
            logger.info("calibrator.retrying", attempt=self._failures + 1)

        if self._status is not CalibrationStatus.CALIBRATING:
            return self.progress()

        if self._phase_started_at is None:
            self._phase_started_at = sample.t

        if self._mode is CalibrationMode.ZERO_POINT:
            self._feed_zero_point(sample)
        else:
            self._feed_three_point(sample)
        return self.progress()

    def force_finish(self) -> bool:
        """Complete the running session from whatever has been collected.

        Returns ``False`` (and changes nothing) when there is nothing usable.
        """
        if self._status is not CalibrationStatus.CALIBRATING:
            return False
        anchor = CalibrationPhase.ZERO if self._mode is CalibrationMode.ZERO_POINT else CalibrationPhase.NEUTRAL
        if not self._buffers.get(anchor):
            return False
        logger.info("calibrator.force_finish", phase=self._phase.value if self._phase else None)
        self._complete()
        return True

    def cancel(self) -> None:
        """Abandon an in-progress session, keeping any previous profile."""
        self._clear_session()
        self._retry_at = None
        self._failures = 0
        self._status = CalibrationStatus.CALIBRATED if self._profile else CalibrationStatus.UNCALIBRATED
        logger.info("calibrator.cancelled", status=self._status.value)

    def reset(self) -> None:
        """Drop the session *and* the profile.  Safe to call repeatedly."""
        self._clear_session()
        self._profile = None
        self._mode = None
        self._failures = 0
        self._retry_at = None
        self._status = CalibrationStatus.UNCALIBRATED
        logger.info("calibrator.reset")

    def adopt(self, profile: CalibrationProfile) -> None:
        """Install an externally supplied profile, replacing the current one."""
        self._clear_session()
        self._retry_at = None
        self._profile = profile
        self._status = CalibrationStatus.CALIBRATED
        logger.info("calibrator.profile_adopted", offset=list(profile.offset), mode=profile.mode.value)

    # ── Application ───────────────────────────────────────────

    def calibrated(self, sample: SensorSample | Vec3) -> Vec3:
        """Return the gyro vector with the profile offset removed.

        Without a profile the raw vector is returned unchanged; callers must
        treat it as uncalibrated.
        """
        gyro = sample.gyro if isinstance(sample, SensorSample) else sample
        if self._profile is None:
            return gyro
        return gyro - self._profile.offset

    def progress(self) -> CalibrationProgress:
        phase = self._phase
        buffer = self._buffers.get(phase, []) if phase else []
        return CalibrationProgress(
            status=self._status,
            mode=self._mode,
            phase=phase,
            collected=len(buffer),
            required=self._required(),
            attempt=self._failures + 1,
            instruction=INSTRUCTIONS[phase] if phase else "",
        )

    # ── Internals ─────────────────────────────────────────────

    def _required(self) -> int:
        if self._mode is CalibrationMode.THREE_POINT:
            return self._config.phase_samples
        return self._config.required_samples

    def _clear_session(self) -> None:
        self._buffers: dict[CalibrationPhase, list[Vec3]] = {}
        self._phase: CalibrationPhase | None = None
        self._phase_started_at: float | None = None
        self._previous: Vec3 | None = None

    def _begin_attempt(self) -> None:
        self._clear_session()
        self._status = CalibrationStatus.CALIBRATING
        first = CalibrationPhase.ZERO if self._mode is CalibrationMode.ZERO_POINT else _THREE_POINT_PHASES[0]
        self._enter_phase(first)

    def _enter_phase(self, phase: CalibrationPhase) -> None:
        self._phase = phase
        self._buffers[phase] = []
        self._phase_started_at = None
        self._previous = None
        logger.info("calibrator.instruction", phase=phase.value, instruction=INSTRUCTIONS[phase])

    def _feed_zero_point(self, sample: SensorSample) -> None:
        cfg = self._config
        buffer = self._buffers[CalibrationPhase.ZERO]
        magnitude = sample.gyro.magnitude()
        if magnitude < cfg.stability_threshold:
            buffer.append(sample.gyro)
            logger.debug("calibrator.sample_accepted", count=len(buffer), magnitude=round(magnitude, 3))
        else:
            logger.debug("calibrator.sample_rejected", magnitude=round(magnitude, 3))

        if len(buffer) >= cfg.required_samples:
            self._complete()
        elif sample.t - self._phase_started_at >= cfg.duration:
            if len(buffer) >= cfg.min_samples:
                self._complete()
            else:
                self._fail(sample.t, collected=len(buffer), required=cfg.min_samples)

    def _feed_three_point(self, sample: SensorSample) -> None:
        cfg = self._config
        phase = self._phase
        elapsed = sample.t - self._phase_started_at
        if elapsed < cfg.settle_delay:
            self._previous = sample.gyro
            return

        buffer = self._buffers[phase]
        if self._is_steady(phase, sample.gyro):
            buffer.append(sample.gyro)
        self._previous = sample.gyro

        minimum = max(1, cfg.phase_samples // 2)
        if len(buffer) >= cfg.phase_samples:
            self._advance_phase()
        elif elapsed >= cfg.settle_delay + cfg.phase_timeout:
            if len(buffer) >= minimum:
                self._advance_phase()
            else:
                self._fail(sample.t, collected=len(buffer), required=minimum)

    def _is_steady(self, phase: CalibrationPhase, gyro: Vec3) -> bool:
        threshold = self._config.stability_threshold
        if phase is CalibrationPhase.NEUTRAL:
            return gyro.magnitude() < threshold
        # A tilt is held, not still: compare against the previous reading.
        if self._previous is None:
            return False
        return (gyro - self._previous).magnitude() < threshold

    def _advance_phase(self) -> None:
        index = _THREE_POINT_PHASES.index(self._phase)
        logger.info(
            "calibrator.phase_complete",
            phase=self._phase.value,
            samples=len(self._buffers[self._phase]),
        )
        if index + 1 < len(_THREE_POINT_PHASES):
            self._enter_phase(_THREE_POINT_PHASES[index + 1])
        else:
            self._complete()

    def _complete(self) -> None:
        buffers = self._buffers
        if self._mode is CalibrationMode.ZERO_POINT:
            samples = buffers[CalibrationPhase.ZERO]
            profile = CalibrationProfile(
                offset=Vec3.mean(samples),
                mode=CalibrationMode.ZERO_POINT,
                sample_count=len(samples),
            )
        else:
            neutral = Vec3.mean(buffers[CalibrationPhase.NEUTRAL])
            left_samples = buffers.get(CalibrationPhase.LEFT)
            right_samples = buffers.get(CalibrationPhase.RIGHT)
            points = sensitivity = None
            if left_samples and right_samples:
                left = Vec3.mean(left_samples)
                right = Vec3.mean(right_samples)
                points = (neutral, left, right)
                sensitivity = ((left - neutral).abs() + (right - neutral).abs()) * 0.5
            profile = CalibrationProfile(
                offset=neutral,
                mode=CalibrationMode.THREE_POINT,
                points=points,
                sensitivity=sensitivity,
                sample_count=sum(len(b) for b in buffers.values()),
            )

        self._profile = profile
        self._status = CalibrationStatus.CALIBRATED
        self._clear_session()
        logger.info(
            "calibrator.completed",
            mode=profile.mode.value,
            offset=[round(v, 4) for v in profile.offset],
            magnitude=round(profile.offset.magnitude(), 4),
            samples=profile.sample_count,
            sensitivity=list(profile.sensitivity) if profile.sensitivity else None,
        )

    def _fail(self, t: float, *, collected: int, required: int) -> None:
        cfg = self._config
        self._failures += 1
        self._clear_session()
        self._status = CalibrationStatus.FAILED

        if self._failures > cfg.max_retries:
            self._retry_at = None
            logger.error(
                "calibrator.failed",
                attempts=self._failures,
                collected=collected,
                required=required,
            )
            raise CalibrationTimeout(attempts=self._failures, collected=collected, required=required)

        delay = cfg.retry_delay * cfg.retry_backoff ** (self._failures - 1)
        self._retry_at = t + delay
        logger.warning(
            "calibrator.attempt_failed",
            attempt=self._failures,
            collected=collected,
            required=required,
            retry_in=delay,
        )
