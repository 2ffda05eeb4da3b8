"""Event emitter — turns per-tick detector output into ordered control events.

* Classifier states are emitted on **transition** only; a repeated
  alternating-pattern detection is the one exception (it re-emits
  ``FORWARD`` because each detection is a discrete propulsion cue).
* Strokes and gestures are emitted on every accepted occurrence.
* Events are staged during a tick and released by :meth:`EventEmitter.flush`
  at the tick boundary, so no consumer sees a half-processed tick.
* Every event carries a monotonically increasing ``seq``.
"""

from __future__ import annotations

from typing import Any, Callable

import structlog

from paddle_input.models import (
    STATE_EVENTS,
    STROKE_EVENTS,
    ClassifierUpdate,
    ControlEvent,
    EventType,
    MovementEvent,
    MovementState,
)

logger = structlog.get_logger(__name__)

EventCallback = Callable[[ControlEvent, Any], None]


class EventEmitter:
    """De-duplicating, sequencing front of the output side.

    Parameters
    ----------
    on_event:
        Optional callback invoked as ``on_event(event, context)`` for every
        flushed event, in order.
    context:
        Opaque handle passed through to *on_event* (e.g. the game session
        the events belong to).
    """

    def __init__(self, on_event: EventCallback | None = None, context: Any = None) -> None:
        self._on_event = on_event
        self._context = context
        self._pending: list[ControlEvent] = []
        self._seq = 0
        self._published_state = MovementState.IDLE
        self.emitted_total = 0

    @property
    def published_state(self) -> MovementState:
        """Last classifier state the downstream controller was told about."""
        return self._published_state

    @property
    def pending(self) -> int:
        return len(self._pending)

    # ── Staging ───────────────────────────────────────────────

    def state(self, update: ClassifierUpdate, t: float) -> ControlEvent | None:
        """Stage a state event if *update* changes the published state."""
        if update.state is self._published_state and not update.forward_triggered:
            return None
        self._published_state = update.state
        return self._stage(STATE_EVENTS[update.state], t, confidence=update.confidence)

    def stroke(self, stroke: MovementEvent) -> ControlEvent:
        return self._stage(STROKE_EVENTS[stroke.direction], stroke.t, intensity=stroke.intensity)

    def gesture(self, gesture: EventType, t: float) -> ControlEvent:
        return self._stage(gesture, t, confidence=1.0)

    def force_idle(self, t: float) -> ControlEvent | None:
        """Publish ``IDLE`` if the controller currently believes otherwise."""
        if self._published_state is MovementState.IDLE:
            return None
        self._published_state = MovementState.IDLE
        return self._stage(EventType.IDLE, t, confidence=1.0)

    # ── Tick boundary ─────────────────────────────────────────

    def flush(self) -> list[ControlEvent]:
        """Release staged events, invoking the callback for each in order."""
        events, self._pending = self._pending, []
        for event in events:
            if self._on_event is None:
                continue
            try:
                self._on_event(event, self._context)
            except Exception:
                logger.exception("emitter.callback_error", event_type=event.type.value, seq=event.seq)
        self.emitted_total += len(events)
        return events

    def discard(self) -> None:
        """Drop staged events without delivering them."""
        self._pending.clear()

    def _stage(
        self,
        event_type: EventType,
        t: float,
        *,
        intensity: float | None = None,
        confidence: float | None = None,
    ) -> ControlEvent:
        self._seq += 1
        event = ControlEvent(
            seq=self._seq,
            type=event_type,
            t=t,
            intensity=intensity,
            confidence=confidence,
        )
        self._pending.append(event)
        logger.debug("emitter.staged", event_type=event_type.value, seq=self._seq)
        return event
