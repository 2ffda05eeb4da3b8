"""Async streaming pipeline connecting the sensor link → engine → dispatcher."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import structlog

from paddle_input.engine import InputEngine
from paddle_input.errors import CalibrationTimeout
from paddle_input.events.dispatch import EventDispatcher
from paddle_input.models import SensorSample
from paddle_input.streaming.validation import SampleValidator

logger = structlog.get_logger(__name__)

RawSample = SensorSample | dict[str, Any] | str | bytes


class StreamPipeline:
    """In-process async pipeline that buffers raw samples, runs them through
    the :class:`InputEngine` and hands resulting events to the dispatcher.

    The sensor link (producer) is decoupled from processing (consumer) by an
    :class:`asyncio.Queue`.  There is exactly one consumer, so samples are
    processed strictly in arrival order.
    """

    def __init__(
        self,
        engine: InputEngine,
        *,
        dispatcher: EventDispatcher | None = None,
        validator: SampleValidator | None = None,
        maxsize: int = 10_000,
    ) -> None:
        self._engine = engine
        self._dispatcher = dispatcher or EventDispatcher()
        self._validator = validator or SampleValidator()
        self._queue: asyncio.Queue[RawSample] = asyncio.Queue(maxsize=maxsize)
        self._running = False
        self.processed_total = 0
        self.events_total = 0
        self.calibration_failures = 0
        self.dropped_total = 0

    @property
    def engine(self) -> InputEngine:
        return self._engine

    @property
    def validator(self) -> SampleValidator:
        return self._validator

    # ── Producer side ─────────────────────────────────────────

    async def publish(self, sample: RawSample) -> None:
        """Enqueue a sample for downstream processing."""
        await self._queue.put(sample)

    async def publish_batch(self, samples: list[RawSample]) -> None:
        for s in samples:
            await self._queue.put(s)

    def publish_threadsafe(self, loop: asyncio.AbstractEventLoop, sample: RawSample) -> None:
        """Enqueue from a non-asyncio thread (e.g. a serial / BLE reader).

        The put runs on the loop; a sample that finds the queue full is
        dropped, counted in ``dropped_total`` and logged.
        """
        loop.call_soon_threadsafe(self._put_nowait, sample)

    def _put_nowait(self, sample: RawSample) -> None:
        try:
            self._queue.put_nowait(sample)
        except asyncio.QueueFull:
            self.dropped_total += 1
            logger.warning("stream_pipeline.queue_full", dropped_total=self.dropped_total, maxsize=self._queue.maxsize)

    # ── Consumer loop ─────────────────────────────────────────

    async def start(self) -> None:
        """Start the consumer loop (run as a background task)."""
        self._running = True
        logger.info("stream_pipeline.started", handlers=self._dispatcher.handler_names)

        last_stats_time = time.monotonic()

        while self._running:
            try:
                raw = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self._process(raw)
            finally:
                self._queue.task_done()

            # Periodic stats every 60 seconds
            now = time.monotonic()
            if now - last_stats_time >= 60:
                logger.info(
                    "stream_pipeline.stats",
                    processed_total=self.processed_total,
                    events_total=self.events_total,
                    rejected_total=self._validator.rejected,
                    dropped_total=self.dropped_total,
                    queue_pending=self._queue.qsize(),
                    **self._engine.stats,
                )
                last_stats_time = now

    async def _process(self, raw: RawSample) -> None:
        if isinstance(raw, (str, bytes)):
            sample = self._validator.validate_json(raw)
        else:
            sample = self._validator.validate(raw)
        if sample is None:
            return

        try:
            events = self._engine.tick(sample)
        except CalibrationTimeout as exc:
            self.calibration_failures += 1
            logger.error(
                "stream_pipeline.calibration_failed",
                attempts=exc.attempts,
                collected=exc.collected,
                required=exc.required,
            )
            return

        self.processed_total += 1
        if events:
            self.events_total += len(events)
            await self._dispatcher.dispatch_many(events)

    async def drain(self) -> None:
        """Wait until every queued sample has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Gracefully stop the consumer loop."""
        self._running = False
        logger.info("stream_pipeline.stopped", processed_total=self.processed_total)

    @property
    def pending(self) -> int:
        return self._queue.qsize()
