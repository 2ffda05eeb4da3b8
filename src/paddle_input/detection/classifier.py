"""Pattern classifier — state machine over the conditioned signal.

States: ``IDLE`` (initial), ``FORWARD``, ``TURN_LEFT``, ``TURN_RIGHT``.
Rules are evaluated every tick in fixed priority order:

1. **Dead zone** — while ``combined_magnitude < idle_threshold`` the state
   is held and the turn-stability timer is cleared.  Once the quiet period
   reaches ``idle_timeout`` the state becomes ``IDLE`` and stroke history is
   cleared.
2. **Sustained turn** — the turn axis beyond ``turn_threshold`` with a
   stable sign for ``turn_stability_time`` seconds.  A sign flip restarts
   the timer.
3. **Consecutive strokes** — ``consecutive_strokes_for_turn`` same-side
   strokes, each within ``consecutive_window`` of the previous one.
4. **Alternating pattern** — at least ``min_alternating_strokes`` strokes in
   the last ``alternating_window`` seconds whose directions strictly
   alternate → ``FORWARD``; the history is cleared afterwards.

Stroke accounting runs every tick regardless of which rule wins: a stroke
is the turn axis entering the ``|v| >= stroke_threshold`` band on a side it
was not on at the previous tick, accepted only when that side's cooldown
has expired.
"""

from __future__ import annotations

from collections import deque

import structlog

from paddle_input.config import ClassifierConfig
from paddle_input.detection.cooldown import Cooldown
from paddle_input.models import (
    TURN_STATES,
    ClassifierUpdate,
    ConditionedSignal,
    Direction,
    MovementEvent,
    MovementState,
)

logger = structlog.get_logger(__name__)

# Confidence weights: intensity, pattern consistency, recency.
_W_INTENSITY = 0.4
_W_CONSISTENCY = 0.4
_W_RECENCY = 0.2


class PatternClassifier:
    """Classifies the conditioned signal into a :class:`MovementState`."""

    def __init__(self, config: ClassifierConfig | None = None) -> None:
        self._config = config or ClassifierConfig()
        self._axis = self._config.turn_axis.index
        self._cooldowns = {
            Direction.LEFT: Cooldown(self._config.stroke_cooldown),
            Direction.RIGHT: Cooldown(self._config.stroke_cooldown),
        }
        self.reset()

    def reset(self) -> None:
        """Return to ``IDLE`` with empty history.  Idempotent."""
        self._state = MovementState.IDLE
        self._confidence = 0.0
        self._history: deque[MovementEvent] = deque()
        self._last_stroke: MovementEvent | None = None
        self._consecutive = 0
        self._band: Direction | None = None
        self._turn_direction: Direction | None = None
        self._turn_elapsed = 0.0
        self._quiet_elapsed = 0.0
        self._quiet_anchor: float | None = None
        for cooldown in self._cooldowns.values():
            cooldown.clear()

    # ── Read-only state ───────────────────────────────────────

    @property
    def config(self) -> ClassifierConfig:
        return self._config

    @property
    def state(self) -> MovementState:
        return self._state

    @property
    def confidence(self) -> float:
        return self._confidence

    @property
    def history(self) -> tuple[MovementEvent, ...]:
        return tuple(self._history)

    @property
    def consecutive(self) -> int:
        return self._consecutive

    @property
    def quiet_elapsed(self) -> float:
        return self._quiet_elapsed

    @property
    def resting(self) -> bool:
        """``IDLE`` and the last tick was inside the dead zone."""
        return self._state is MovementState.IDLE and self._quiet_anchor is not None

    def cooldown_remaining(self, direction: Direction) -> float:
        return self._cooldowns[direction].remaining

    def direction_of(self, value: float) -> Direction:
        direction = Direction.RIGHT if value > 0 else Direction.LEFT
        return direction.opposite if self._config.invert_direction else direction

    # ── Tick ──────────────────────────────────────────────────

    def advance(self, t: float, dt: float) -> None:
        """Let time pass without classifying (e.g. on a gesture tick).

        Cooldowns run down, whichever of the quiet and turn-stability timers
        is running keeps counting, and expired history is purged.  No rule
        is evaluated, so the state cannot change here.
        """
        self._tick_cooldowns(dt)
        if self._quiet_anchor is not None:
            self._quiet_elapsed += dt
        if self._turn_direction is not None:
            self._turn_elapsed += dt
        self._purge(t)

    def update(self, signal: ConditionedSignal, t: float, dt: float) -> ClassifierUpdate:
        cfg = self._config
        previous = self._state
        self._tick_cooldowns(dt)
        self._purge(t)

        value = signal.smoothed[self._axis]
        stroke = self._account_stroke(value, t)
        forward = False

        if self._track_quiet(signal.combined_magnitude, value, dt):
            self._clear_turn_tracking()
            if self._quiet_elapsed >= cfg.idle_timeout:
                self._clear_history()
                self._set_state(MovementState.IDLE, 1.0, t)
        else:
            turn = self._sustained_turn(value, dt)
            if turn is not None:
                self._set_state(turn, self._confidence_at(t, abs(value) / cfg.turn_threshold, 1.0), t)
            elif stroke is not None and self._consecutive >= cfg.consecutive_strokes_for_turn:
                consistency = self._consistency(alternating=False)
                self._set_state(TURN_STATES[stroke.direction], self._confidence_at(t, None, consistency), t)
            elif stroke is not None and self._is_alternating(t):
                forward = True
                consistency = self._consistency(alternating=True)
                self._set_state(MovementState.FORWARD, self._confidence_at(t, None, consistency), t)
                self._history.clear()

        return ClassifierUpdate(
            state=self._state,
            confidence=self._confidence,
            changed=self._state is not previous,
            stroke=stroke,
            forward_triggered=forward,
        )

    # ── Rules ─────────────────────────────────────────────────

    def _track_quiet(self, combined: float, value: float, dt: float) -> bool:
        """Accumulate quiet time; return ``True`` if this tick is in the dead zone."""
        if combined >= self._config.idle_threshold:
            self._quiet_elapsed = 0.0
            self._quiet_anchor = None
            return False

        tolerance = self._config.idle_angle_tolerance
        if self._quiet_anchor is None or (tolerance is not None and abs(value - self._quiet_anchor) > tolerance):
            self._quiet_anchor = value
            self._quiet_elapsed = 0.0
        else:
            self._quiet_elapsed += dt
        return True

    def _sustained_turn(self, value: float, dt: float) -> MovementState | None:
        cfg = self._config
        if abs(value) <= cfg.turn_threshold:
            self._clear_turn_tracking()
            return None

        direction = self.direction_of(value)
        if direction is not self._turn_direction:
            self._turn_direction = direction
            self._turn_elapsed = 0.0
        else:
            self._turn_elapsed += dt

        if self._turn_elapsed >= cfg.turn_stability_time:
            return TURN_STATES[direction]
        return None

    def _account_stroke(self, value: float, t: float) -> MovementEvent | None:
        cfg = self._config
        side = self.direction_of(value) if abs(value) >= cfg.stroke_threshold else None
        crossed = side is not None and side is not self._band
        self._band = side
        if not crossed:
            return None

        cooldown = self._cooldowns[side]
        if cooldown.active:
            logger.debug("classifier.stroke_suppressed", direction=side.value, remaining=round(cooldown.remaining, 3))
            return None

        last = self._last_stroke
        if last is not None and last.direction is side and t - last.t <= cfg.consecutive_window:
            self._consecutive += 1
        else:
            self._consecutive = 1

        event = MovementEvent(direction=side, t=t, intensity=abs(value) / cfg.stroke_threshold)
        self._history.append(event)
        self._last_stroke = event
        cooldown.arm()
        logger.debug(
            "classifier.stroke",
            direction=side.value,
            intensity=round(event.intensity, 3),
            consecutive=self._consecutive,
        )
        return event

    def _is_alternating(self, t: float) -> bool:
        window = self._config.alternating_window
        recent = [e for e in self._history if t - e.t <= window]
        if len(recent) < self._config.min_alternating_strokes:
            return False
        return all(a.direction is not b.direction for a, b in zip(recent, recent[1:]))

    # ── Helpers ───────────────────────────────────────────────

    def _consistency(self, *, alternating: bool) -> float:
        """Share of adjacent stroke pairs in the retained history that match
        the pattern: alternating sides for ``FORWARD``, same side for a turn."""
        strokes = list(self._history)
        pairs = list(zip(strokes, strokes[1:]))
        if not pairs:
            return 1.0
        matching = sum(1 for a, b in pairs if (a.direction is not b.direction) == alternating)
        return matching / len(pairs)

    def _confidence_at(self, t: float, intensity: float | None, consistency: float) -> float:
        if intensity is None:
            intensities = [e.intensity for e in self._history]
            intensity = sum(intensities) / len(intensities) if intensities else 0.0
        score = _W_INTENSITY * min(1.0, intensity) + _W_CONSISTENCY * consistency
        last = self._last_stroke
        if last is not None and t - last.t < self._config.recency_window:
            score += _W_RECENCY
        return max(0.0, min(1.0, score))

    def _set_state(self, state: MovementState, confidence: float, t: float) -> None:
        self._confidence = confidence
        if state is self._state:
            return
        logger.info(
            "classifier.transition",
            previous=self._state.value,
            state=state.value,
            confidence=round(confidence, 2),
            t=round(t, 3),
        )
        self._state = state

    def _tick_cooldowns(self, dt: float) -> None:
        for cooldown in self._cooldowns.values():
            cooldown.tick(dt)

    def _purge(self, t: float) -> None:
        horizon = 2 * self._config.alternating_window
        while self._history and t - self._history[0].t > horizon:
            self._history.popleft()

    def _clear_history(self) -> None:
        self._history.clear()
        self._consecutive = 0
        self._last_stroke = None

    def _clear_turn_tracking(self) -> None:
        self._turn_direction = None
        self._turn_elapsed = 0.0
