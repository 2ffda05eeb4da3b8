"""Exception hierarchy shared across the package."""

from __future__ import annotations


class PaddleInputError(Exception):
    """Base class for every error raised by :mod:`paddle_input`."""


class ConfigurationError(PaddleInputError, ValueError):
    """A threshold, window or ratio is invalid.  Raised at construction time."""


class MalformedSample(PaddleInputError, ValueError):
    """A sample failed decoding or range checks at the input boundary."""


class CalibrationTimeout(PaddleInputError):
    """Calibration kept failing after the automatic retry budget was spent."""

    def __init__(self, attempts: int, collected: int, required: int) -> None:
        self.attempts = attempts
        self.collected = collected
        self.required = required
        super().__init__(
            f"Calibration failed after {attempts} attempt(s): "
            f"{collected}/{required} stable samples collected."
        )
