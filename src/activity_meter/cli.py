"""
Run the activity meter from the command line.

Examples:
    python -m activity_meter --phyphox-url http://192.168.0.36:8080
    python -m activity_meter --replay recordings/walk_01.csv --replay-hz 50
    python -m activity_meter --phyphox-url http://192.168.0.36:8080 --gui
"""

import argparse
import asyncio
import logging
from functools import partial

from tabulate import tabulate

from activity_meter.config import PipelineConfig
from activity_meter.constants import (
    DEFAULT_LABELS_PATH,
    DEFAULT_MODEL_PATH,
    DEFAULT_SCALER_PATH,
    NOT_READY_NOTICE_MS,
    PHYPHOX_URL,
    RATE_LIMIT_MS,
    REPLAY_HZ,
    WINDOW_SIZE,
)
from activity_meter.inference_pipeline import InferencePipeline
from activity_meter.intensity import level_for_label
from activity_meter.log import setup_logging
from activity_meter.phone_interface import CaptureController, PhyphoxSource, ReplaySource
from activity_meter.sinks import ConsoleSink

log = logging.getLogger("activity_meter.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="activity_meter",
        description="Classify phone accelerometer data into activities and intensity levels in real time.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--phyphox-url",
        default=PHYPHOX_URL,
        help="phyphox remote-access URL, e.g. http://192.168.0.36:8080",
    )
    source.add_argument(
        "--replay",
        metavar="CSV",
        help="Replay a recorded session (headerless CSV) instead of polling the phone",
    )
    parser.add_argument("--replay-hz", type=float, default=REPLAY_HZ)
    parser.add_argument("--model", default=DEFAULT_MODEL_PATH, help="joblib classifier bundle (path or URL)")
    parser.add_argument("--scaler", default=DEFAULT_SCALER_PATH, help="scaler.json (path or URL)")
    parser.add_argument("--labels", default=DEFAULT_LABELS_PATH, help="labels.json (path or URL)")
    parser.add_argument("--window-size", type=int, default=WINDOW_SIZE)
    parser.add_argument("--rate-limit-ms", type=float, default=RATE_LIMIT_MS)
    parser.add_argument("--not-ready-notice-ms", type=float, default=NOT_READY_NOTICE_MS)
    parser.add_argument("--gui", action="store_true", help="Show the wxPython window instead of console output")
    parser.add_argument("--log-level", default="INFO")
    return parser


def config_from_args(args) -> PipelineConfig:
    if args.replay_hz <= 0:
        raise ValueError(f"--replay-hz must be > 0, got {args.replay_hz}")
    return PipelineConfig(
        window_size=args.window_size,
        rate_limit_ms=args.rate_limit_ms,
        not_ready_notice_ms=args.not_ready_notice_ms,
        model_path=args.model,
        scaler_path=args.scaler,
        labels_path=args.labels,
    ).validate()


def source_factory_from_args(args):
    if args.replay:
        return partial(ReplaySource, args.replay, rate_hz=args.replay_hz)
    return partial(PhyphoxSource, args.phyphox_url)


def print_label_table(labels) -> None:
    rows = [[i, label, level_for_label(label)] for i, label in enumerate(labels)]
    print("\nLABELS")
    print(tabulate(rows, headers=["Index", "Label", "Level"], tablefmt="pretty"))


async def run_console(pipeline: InferencePipeline, controller: CaptureController) -> int:
    if await pipeline.load_assets():
        print_label_table(pipeline.state.assets.labels)

    # Capture starts even without a model: samples are buffered, inference is skipped
    if not await controller.start():
        return 1

    try:
        while controller.active:
            await asyncio.sleep(0.2)
    finally:
        controller.stop()
        await pipeline.drain()

    print(f"\n{pipeline.inference_count} predictions, {pipeline.failure_count} failed.")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = config_from_args(args)
    except ValueError as e:
        log.error("Invalid configuration: %s", e)
        return 2

    if args.gui:
        # wxPython is optional, only import it when asked for
        from activity_meter.GUI import WxSink, run_gui

        sink = WxSink()
        pipeline = InferencePipeline(sink, config)
        controller = CaptureController(pipeline, source_factory_from_args(args))
        return run_gui(pipeline, controller, sink)

    pipeline = InferencePipeline(ConsoleSink(), config)
    controller = CaptureController(pipeline, source_factory_from_args(args))
    try:
        return asyncio.run(run_console(pipeline, controller))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0
