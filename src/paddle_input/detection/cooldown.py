"""Countdown timer shared by the stroke and gesture detectors."""

from __future__ import annotations


class Cooldown:
    """Scalar countdown decremented by elapsed time, never below zero.

    ``arm()`` starts a new countdown of ``duration`` seconds; the cooldown is
    *active* while time remains.
    """

    def __init__(self, duration: float) -> None:
        self.duration = duration
        self._remaining = 0.0

    @property
    def remaining(self) -> float:
        return self._remaining

    @property
    def active(self) -> bool:
        return self._remaining > 0.0

    def arm(self, duration: float | None = None) -> None:
        self._remaining = self.duration if duration is None else max(0.0, duration)

    def tick(self, dt: float) -> None:
        if dt > 0:
            self._remaining = max(0.0, self._remaining - dt)

    def clear(self) -> None:
        self._remaining = 0.0

    def __repr__(self) -> str:
        return f"Cooldown(duration={self.duration}, remaining={self._remaining:.3f})"
