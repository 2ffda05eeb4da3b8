"""Input engine — one synchronous pass over the pipeline per sensor sample.

The engine owns no algorithms of its own; it wires the calibrator,
conditioner, gesture detector, classifier and emitter together and keeps
the per-tick ordering fixed:

1. apply queued commands (recalibrate / reset),
2. calibration session, if one is active,
3. calibrate → condition → gesture check → classify,
4. flush staged events.

A tick on which a gesture fires does not classify; the classifier's
cooldowns and timers still advance.  All components are injected so tests can drive
each one in isolation; :func:`create_engine` builds a configured instance.
"""

from __future__ import annotations

from typing import Any

import structlog

from paddle_input.calibration import Calibrator
from paddle_input.conditioning import SignalConditioner
from paddle_input.config import Settings, get_settings
from paddle_input.detection import GestureDetector, PatternClassifier
from paddle_input.events.emitter import EventCallback, EventEmitter
from paddle_input.models import (
    CalibrationMode,
    CalibrationStatus,
    ConditionedSignal,
    ControlEvent,
    MovementState,
    SensorSample,
)

logger = structlog.get_logger(__name__)


class InputEngine:
    """Per-stream pipeline driver.  Not thread-safe: feed it from one task."""

    def __init__(
        self,
        calibrator: Calibrator,
        conditioner: SignalConditioner,
        classifier: PatternClassifier,
        gestures: GestureDetector,
        emitter: EventEmitter,
    ) -> None:
        self.calibrator = calibrator
        self.conditioner = conditioner
        self.classifier = classifier
        self.gestures = gestures
        self.emitter = emitter

        self._last_t: float | None = None
        self._last_signal: ConditionedSignal | None = None
        self._pending_calibration: CalibrationMode | None = None
        self._calibration_requested = False
        self._reset_requested = False

        self.ticks_total = 0
        self.out_of_order_total = 0

    # ── Commands (applied at the next tick boundary) ──────────

    def request_calibration(self, mode: CalibrationMode | None = None) -> None:
        """Start a new calibration session on the next tick."""
        self._calibration_requested = True
        self._pending_calibration = mode
        logger.info("engine.calibration_requested", mode=mode.value if mode else None)

    def request_reset(self) -> None:
        """Drop the profile and all detector state on the next tick."""
        self._reset_requested = True
        logger.info("engine.reset_requested")

    # ── Read-only state ───────────────────────────────────────

    @property
    def state(self) -> MovementState:
        return self.classifier.state

    @property
    def confidence(self) -> float:
        return self.classifier.confidence

    @property
    def calibration_status(self) -> CalibrationStatus:
        return self.calibrator.status

    @property
    def last_signal(self) -> ConditionedSignal | None:
        return self._last_signal

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "ticks_total": self.ticks_total,
            "out_of_order_total": self.out_of_order_total,
            "events_total": self.emitter.emitted_total,
            "state": self.classifier.state.value,
            "calibration": self.calibrator.status.value,
        }

    # ── Tick ──────────────────────────────────────────────────

    def tick(self, sample: SensorSample | None) -> list[ControlEvent]:
        """Process one sample and return the events it produced, in order.

        ``None`` (no data this tick) is a no-op.  Raises
        :class:`~paddle_input.errors.CalibrationTimeout` when a calibration
        session fails with no retries left.
        """
        if sample is None:
            return []

        self._apply_commands(sample.t)

        if self._last_t is not None and sample.t <= self._last_t:
            self.out_of_order_total += 1
            logger.warning("engine.out_of_order", t=sample.t, last_t=self._last_t)
            return self.emitter.flush()
        dt = 0.0 if self._last_t is None else sample.t - self._last_t
        self._last_t = sample.t
        self.ticks_total += 1

        if self.calibrator.is_active:
            self.calibrator.feed(sample)
            return self.emitter.flush()

        if self.calibrator.profile is None:
            return self.emitter.flush()

        signal = self.conditioner.condition(
            self.calibrator.calibrated(sample),
            self.classifier.resting,
            dt=dt,
            accel_y=sample.accel_y,
        )
        self._last_signal = signal

        gesture = self.gestures.check(sample.accel_y, dt)
        if gesture is not None:
            self.classifier.advance(sample.t, dt)
            self.emitter.gesture(gesture, sample.t)
            return self.emitter.flush()

        update = self.classifier.update(signal, sample.t, dt)
        if update.stroke is not None:
            self.emitter.stroke(update.stroke)
        self.emitter.state(update, sample.t)
        return self.emitter.flush()

    def _apply_commands(self, t: float) -> None:
        if not (self._reset_requested or self._calibration_requested):
            return

        self.conditioner.reset()
        self.classifier.reset()
        self.gestures.reset()
        self.emitter.force_idle(t)
        self._last_signal = None

        if self._reset_requested:
            self.calibrator.reset()
        if self._calibration_requested:
            self.calibrator.start_session(self._pending_calibration)

        self._reset_requested = False
        self._calibration_requested = False
        self._pending_calibration = None


def create_engine(
    settings: Settings | None = None,
    *,
    on_event: EventCallback | None = None,
    context: Any = None,
) -> InputEngine:
    """Build an :class:`InputEngine` from settings (defaults to the cached ones)."""
    settings = settings or get_settings()
    return InputEngine(
        calibrator=Calibrator(settings.calibration()),
        conditioner=SignalConditioner(settings.conditioner()),
        classifier=PatternClassifier(settings.classifier()),
        gestures=GestureDetector(settings.gestures()),
        emitter=EventEmitter(on_event, context),
    )
