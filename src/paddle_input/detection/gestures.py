"""Gesture detector — accelerometer spikes mapped to start / restart."""

from __future__ import annotations

import structlog

from paddle_input.config import GestureConfig
from paddle_input.detection.cooldown import Cooldown
from paddle_input.models import EventType

logger = structlog.get_logger(__name__)


class GestureDetector:
    """Threshold test on the raw accelerometer Y count.

    ``accel_y > start_threshold`` → :attr:`EventType.START_GAME`;
    ``accel_y < restart_threshold`` → :attr:`EventType.RESTART_GAME`.
    Both share one cooldown so a single jolt cannot fire twice.
    """

    def __init__(self, config: GestureConfig | None = None) -> None:
        self._config = config or GestureConfig()
        self._cooldown = Cooldown(self._config.cooldown)

    @property
    def config(self) -> GestureConfig:
        return self._config

    @property
    def in_cooldown(self) -> bool:
        return self._cooldown.active

    @property
    def cooldown_remaining(self) -> float:
        return self._cooldown.remaining

    def check(self, accel_y: int, dt: float = 0.0) -> EventType | None:
        """Advance the cooldown by *dt* and test *accel_y*."""
        self._cooldown.tick(dt)
        if self._cooldown.active:
            return None

        if accel_y > self._config.start_threshold:
            gesture = EventType.START_GAME
        elif accel_y < self._config.restart_threshold:
            gesture = EventType.RESTART_GAME
        else:
            return None

        self._cooldown.arm()
        logger.info("gesture.detected", gesture=gesture.value, accel_y=accel_y)
        return gesture

    def reset(self) -> None:
        self._cooldown.clear()
