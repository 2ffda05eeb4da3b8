"""Application entrypoint — replay recorded sessions or inspect configuration."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from paddle_input.config import Settings, load_settings
from paddle_input.engine import create_engine
from paddle_input.errors import ConfigurationError
from paddle_input.events.dispatch import CallbackHandler, create_dispatcher
from paddle_input.logger import setup_logging
from paddle_input.models import CalibrationMode, CalibrationProfile, ControlEvent
from paddle_input.streaming import SampleValidator, StreamPipeline

logger = structlog.get_logger(__name__)


def _print_event(event: ControlEvent, _context: object) -> None:
    print(event.model_dump_json(), flush=True)


async def replay(
    path: Path,
    settings: Settings,
    *,
    mode: CalibrationMode | None = None,
    skip_calibration: bool = False,
) -> StreamPipeline:
    """Stream a JSON-lines recording through the full pipeline."""
    engine = create_engine(settings)
    if skip_calibration:
        engine.calibrator.adopt(CalibrationProfile.identity())
    else:
        engine.request_calibration(mode)

    dispatcher = create_dispatcher(settings)
    dispatcher.add_handler(CallbackHandler(_print_event, name="stdout"))
    pipeline = StreamPipeline(
        engine,
        dispatcher=dispatcher,
        validator=SampleValidator(settings.validation()),
        maxsize=settings.queue_maxsize,
    )

    consumer = asyncio.create_task(pipeline.start())
    with path.open("rb") as fh:
        for raw in fh:
            line = raw.strip()
            if not line:
                continue
            await pipeline.publish(line)

    await pipeline.drain()
    await pipeline.stop()
    await consumer
    logger.info(
        "replay.finished",
        path=str(path),
        processed=pipeline.processed_total,
        events=pipeline.events_total,
        rejected=pipeline.validator.rejected,
    )
    return pipeline


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="paddle-input",
        description="Paddle-stroke and gesture recognition for a wearable IMU.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── replay ────────────────────────────────────────────────
    replay_parser = sub.add_parser("replay", help="Replay a recorded JSON-lines session.")
    replay_parser.add_argument("file", type=Path)
    replay_parser.add_argument(
        "--mode",
        choices=[m.value for m in CalibrationMode],
        default=None,
        help="Calibration mode (defaults to PADDLE_CALIBRATION_MODE).",
    )
    replay_parser.add_argument(
        "--skip-calibration",
        action="store_true",
        help="Treat the recording as already zeroed.",
    )

    # ── config ────────────────────────────────────────────────
    sub.add_parser("config", help="Print the effective configuration.")

    args = parser.parse_args(argv)
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    setup_logging(settings.log_level)

    if args.command == "replay":
        if not args.file.is_file():
            print(f"no such file: {args.file}", file=sys.stderr)
            sys.exit(1)
        mode = CalibrationMode(args.mode) if args.mode else None
        asyncio.run(replay(args.file, settings, mode=mode, skip_calibration=args.skip_calibration))
    elif args.command == "config":
        print(json.dumps(settings.model_dump(mode="json"), indent=2))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
