"""Signal conditioner — turns calibrated gyro vectors into a smoothed signal.

Per sample:

1. **Dead zone** — components with ``|v| < dead_zone`` become exactly 0.
2. **Exponential smoothing** — ``smoothed = lerp(smoothed, raw, α)``.  With
   ``time_scaled`` the factor is rescaled by the tick duration,
   ``α = 1 - (1 - smoothing_factor) ** (dt * reference_rate)``, so the
   response does not depend on the sample rate.
3. **Idle drift correction** — after the classifier has reported idle for
   longer than ``idle_timeout``, a baseline follows the residual between the
   smoothed gyro and the angular rate implied by the accelerometer tilt
   estimate.  The baseline is subtracted from the output and frozen again
   as soon as movement resumes.
4. **Combined magnitude** — ``Σ weight_i · |smoothed_i|``.
"""

from __future__ import annotations

import math

import structlog

from paddle_input.config import ConditionerConfig
from paddle_input.models import ConditionedSignal, Vec3

logger = structlog.get_logger(__name__)


class SignalConditioner:
    """Stateful per-session conditioner.  One instance per sensor stream."""

    def __init__(self, config: ConditionerConfig | None = None) -> None:
        self._config = config or ConditionerConfig()
        self._axis = self._config.turn_axis.index
        self.reset()

    def reset(self) -> None:
        self._smoothed = Vec3.zero()
        self._baseline = Vec3.zero()
        self._idle_elapsed = 0.0
        self._last_tilt: float | None = None
        self._drift_active = False

    # ── State ─────────────────────────────────────────────────

    @property
    def config(self) -> ConditionerConfig:
        return self._config

    @property
    def baseline(self) -> Vec3:
        """Current drift estimate subtracted from the smoothed output."""
        return self._baseline

    @property
    def drift_active(self) -> bool:
        return self._drift_active

    # ── Building blocks ───────────────────────────────────────

    def smoothing_alpha(self, dt: float) -> float:
        cfg = self._config
        if not cfg.time_scaled:
            return cfg.smoothing_factor
        if dt <= 0:
            return 0.0
        return 1.0 - (1.0 - cfg.smoothing_factor) ** (dt * cfg.reference_rate)

    def apply_dead_zone(self, raw: Vec3) -> Vec3:
        dz = self._config.dead_zone
        return Vec3(*(0.0 if abs(v) < dz else v for v in raw))

    def tilt_degrees(self, accel_y: int) -> float:
        """Tilt of the turn axis estimated from the accelerometer Y count."""
        ratio = max(-1.0, min(1.0, accel_y / self._config.accel_one_g))
        return math.degrees(math.asin(ratio))

    # ── Main entry point ──────────────────────────────────────

    def condition(
        self,
        raw: Vec3,
        idle: bool = False,
        *,
        dt: float = 0.0,
        accel_y: int | None = None,
    ) -> ConditionedSignal:
        """Condition one calibrated gyro vector.

        *idle* is the classifier's current verdict; *dt* the seconds since
        the previous sample.
        """
        gated = self.apply_dead_zone(raw)
        self._smoothed = self._smoothed.lerp(gated, self.smoothing_alpha(dt))
        self._update_drift(idle, dt, accel_y)

        smoothed = self._smoothed - self._baseline
        weights = self._config.axis_weights
        combined = sum(w * abs(v) for w, v in zip(weights, smoothed))
        return ConditionedSignal(smoothed=smoothed, raw=gated, combined_magnitude=combined)

    def _update_drift(self, idle: bool, dt: float, accel_y: int | None) -> None:
        cfg = self._config
        tilt = self.tilt_degrees(accel_y) if accel_y is not None else None
        previous_tilt, self._last_tilt = self._last_tilt, tilt

        if not idle:
            self._idle_elapsed = 0.0
            self._set_drift_active(False)
            return

        self._idle_elapsed += dt
        if (
            not cfg.drift_correction
            or tilt is None
            or previous_tilt is None
            or dt <= 0
            or self._idle_elapsed <= cfg.idle_timeout
        ):
            return

        self._set_drift_active(True)
        components = [0.0, 0.0, 0.0]
        components[self._axis] = (tilt - previous_tilt) / dt
        target = self._smoothed - Vec3(*components)
        self._baseline = self._baseline.lerp(target, cfg.idle_follow_smoothing * dt)

    def _set_drift_active(self, active: bool) -> None:
        if active != self._drift_active:
            self._drift_active = active
            logger.debug(
                "conditioner.drift_correction",
                active=active,
                baseline=[round(v, 3) for v in self._baseline],
            )
