"""Input boundary: decode and sanity-check raw samples before the engine."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from paddle_input.config import ValidationConfig
from paddle_input.errors import MalformedSample
from paddle_input.models import SensorSample

logger = structlog.get_logger(__name__)


class SampleValidator:
    """Rejects malformed, out-of-range or stale samples.

    Rejected samples are logged and counted, never raised to the caller:
    a single bad packet from the wearable must not stop the stream.
    """

    def __init__(self, config: ValidationConfig | None = None) -> None:
        self._config = config or ValidationConfig()
        self._last_t: float | None = None
        self.accepted = 0
        self.rejected = 0

    def reset(self) -> None:
        self._last_t = None

    def validate(self, raw: SensorSample | dict[str, Any]) -> SensorSample | None:
        """Return a :class:`SensorSample`, or ``None`` if *raw* is rejected."""
        return self._guard(lambda: self._check(self._decode(raw)))

    def validate_json(self, line: str | bytes) -> SensorSample | None:
        """Same as :meth:`validate` for one JSON document."""
        return self._guard(lambda: self._check(self._decode_json(line)))

    # ── Internals ─────────────────────────────────────────────

    def _guard(self, fn) -> SensorSample | None:
        try:
            sample = fn()
        except MalformedSample as exc:
            self.rejected += 1
            logger.warning("sample.rejected", reason=str(exc), rejected_total=self.rejected)
            return None
        self.accepted += 1
        self._last_t = sample.t
        return sample

    @staticmethod
    def _decode(raw: SensorSample | dict[str, Any]) -> SensorSample:
        if isinstance(raw, SensorSample):
            return raw
        try:
            return SensorSample.model_validate(raw)
        except ValidationError as exc:
            raise MalformedSample(f"undecodable sample: {exc.error_count()} error(s)") from exc

    @staticmethod
    def _decode_json(line: str | bytes) -> SensorSample:
        try:
            return SensorSample.model_validate_json(line)
        except ValidationError as exc:
            raise MalformedSample(f"undecodable sample: {exc.error_count()} error(s)") from exc

    def _check(self, sample: SensorSample) -> SensorSample:
        limit = self._config.max_abs_gyro
        if any(abs(v) > limit for v in sample.gyro):
            raise MalformedSample(f"gyro component beyond ±{limit:g} deg/s")
        if self._config.reject_stale and self._last_t is not None and sample.t <= self._last_t:
            raise MalformedSample(f"stale timestamp {sample.t} <= {self._last_t}")
        return sample
