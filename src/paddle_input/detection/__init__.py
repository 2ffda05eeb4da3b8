"""Detection sub-package — stroke/turn/forward classification and gestures."""

from paddle_input.detection.classifier import PatternClassifier
from paddle_input.detection.cooldown import Cooldown
from paddle_input.detection.gestures import GestureDetector

__all__ = ["Cooldown", "GestureDetector", "PatternClassifier"]
