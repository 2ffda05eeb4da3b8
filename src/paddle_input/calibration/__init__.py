"""Calibration sub-package — zero-point and three-point baseline sessions."""

from paddle_input.calibration.calibrator import INSTRUCTIONS, CalibrationProgress, Calibrator

__all__ = ["CalibrationProgress", "Calibrator", "INSTRUCTIONS"]
