"""Signal conditioning — dead zone, smoothing and idle drift correction."""

from paddle_input.conditioning.conditioner import SignalConditioner

__all__ = ["SignalConditioner"]
