"""Command line entrypoint.

Runs automation scripts against an emulator and prepares the reference
images they watch for.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

from loguru import logger

from .config import HarnessConfig, load_config
from .errors import HarnessError
from .image_utils import load_frame
from .input.strokes import translate
from .logging_utils import configure_logging
from .script import run_script
from .vision.matcher import ImageMatcher, StillFrame
from .vision.watch_image import WatchImage, load_watch_image, save_watch_image


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="dosharness")
    p.add_argument(
        "--config",
        default=os.environ.get("DOSHARNESS_CONFIG", "dosharness.yml"),
        help="Path to config YAML (default: dosharness.yml or DOSHARNESS_CONFIG).",
    )
    p.add_argument("--log-level", default=None, help="Override the configured log level.")
    sub = p.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="Run an automation script.")
    run.add_argument("script", type=Path)
    run.add_argument(
        "--emulator",
        default=None,
        help="Emulator factory as module:attribute (overrides config).",
    )

    keys = sub.add_parser("keys", help="Print the key codes for stroke tokens.")
    keys.add_argument("tokens", nargs="+")

    crop = sub.add_parser("crop", help="Cut a watch image fixture out of a screenshot.")
    crop.add_argument("screenshot", type=Path)
    crop.add_argument("--sx", type=int, default=0)
    crop.add_argument("--sy", type=int, default=0)
    crop.add_argument("--sw", type=int, required=True)
    crop.add_argument("--sh", type=int, required=True)
    crop.add_argument("-o", "--output", type=Path, default=None)

    check = sub.add_parser("check", help="Test whether a screenshot shows a fixture.")
    check.add_argument("screenshot", type=Path)
    check.add_argument("fixture", type=Path)

    sub.add_parser("print-config", help="Load config and print resolved values.")
    return p.parse_args(argv)


def _cmd_run(config: HarnessConfig, args: argparse.Namespace) -> int:
    result = asyncio.run(run_script(config, args.script, args.emulator))
    for outcome in result.steps:
        logger.info(
            "{:>3} {:<12} {:>8.3f}s {}",
            outcome.index,
            outcome.kind,
            outcome.duration_s,
            outcome.detail or "",
        )
    logger.info("Script {} passed", result.name)
    return 0


def _cmd_keys(args: argparse.Namespace) -> int:
    codes = translate(args.tokens)
    print(" ".join(str(code) for code in codes))
    return 0


def _cmd_crop(args: argparse.Namespace) -> int:
    frame = load_frame(args.screenshot)
    try:
        image = WatchImage.from_frame(frame, args.sx, args.sy, args.sw, args.sh)
    except ValueError as exc:
        logger.error("{}", exc)
        return 2
    if args.output is None:
        print(image.to_json())
    else:
        save_watch_image(image, args.output)
        logger.info("Wrote watch image {}", args.output)
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    frame = load_frame(args.screenshot)
    image = load_watch_image(args.fixture)
    matched = ImageMatcher(StillFrame(frame)).matches(image)
    print("match" if matched else "no match")
    return 0 if matched else 1


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    args = _parse_args(argv)

    config = load_config(args.config)
    configure_logging(
        config.logging.log_dir,
        args.log_level or config.logging.level,
        serialize=config.logging.serialize,
        retention_days=config.logging.retention_days,
    )

    if args.cmd == "print-config":
        logger.info("Resolved config loaded from {}", args.config)
        logger.info("{}", config.model_dump(mode="json"))
        return

    handlers = {
        "run": lambda: _cmd_run(config, args),
        "keys": lambda: _cmd_keys(args),
        "crop": lambda: _cmd_crop(args),
        "check": lambda: _cmd_check(args),
    }
    try:
        code = handlers[args.cmd]()
    except (HarnessError, FileNotFoundError) as exc:
        logger.error("{}", exc)
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
