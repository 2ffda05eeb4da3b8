"""paddle-input — gesture and paddle-stroke recognition for a wearable IMU.

Pipeline (one pass per sample, see :class:`~paddle_input.engine.InputEngine`):

1. **Calibrator** — zero-point or three-point baseline offset.
2. **SignalConditioner** — dead zone, exponential smoothing, idle drift correction.
3. **GestureDetector** — accelerometer spikes → start / restart.
4. **PatternClassifier** — strokes, sustained turns, alternating forward pattern.
5. **EventEmitter** — de-duplicated, ordered :class:`~paddle_input.models.ControlEvent` output.
"""

from paddle_input.engine import InputEngine, create_engine
from paddle_input.models import (
    CalibrationMode,
    CalibrationProfile,
    ControlEvent,
    EventType,
    MovementState,
    SensorSample,
    Vec3,
)

__all__ = [
    "CalibrationMode",
    "CalibrationProfile",
    "ControlEvent",
    "EventType",
    "InputEngine",
    "MovementState",
    "SensorSample",
    "Vec3",
    "create_engine",
]

__version__ = "0.1.0"
