"""Main module for the image variants CLI."""

import sys
import json
import os
import argparse
from typing import Any, Dict, List, Optional

from . import __version__
from .core import ConfigurationError, ImageVariantsError, get_logger, load_config
from .handler import run_notification


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="image-variants",
        description="Image Variants - resize S3 uploads and store the variants as one zip",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay a saved SNS notification against the configured buckets
  image-variants replay event.json

  # Replay with a thread pool and write archives to another bucket
  image-variants replay event.json --processor multithread --concurrency 8 \\
                                   --dest-bucket my-archives

  # Show version
  image-variants version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    replay_parser: argparse.ArgumentParser = subparsers.add_parser(
        "replay", help="Run the pipeline on a notification saved as JSON"
    )
    replay_parser.add_argument("event_file", help="Path to the notification JSON ('-' for stdin)")
    replay_parser.add_argument(
        "--processor",
        type=str,
        default=None,
        choices=["serial", "multithread", "asyncio"],
        help="Processing strategy (default: IMAGE_VARIANTS_PROCESSOR or serial)",
    )
    replay_parser.add_argument(
        "--concurrency", type=int, default=None, help="Records processed at once"
    )
    replay_parser.add_argument(
        "--dest-bucket", default=None, help="Write archives here instead of the source bucket"
    )
    replay_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")
    return parser


def _read_event(path: str) -> Dict[str, Any]:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def replay(args: argparse.Namespace) -> int:
    """Run one saved notification; returns the process exit code."""
    logger = get_logger("cli")

    overrides: Dict[str, Any] = {}
    if args.processor:
        overrides["processor"] = args.processor
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    if args.dest_bucket:
        overrides["dest_bucket"] = args.dest_bucket
    if args.debug:
        overrides["debug"] = True

    try:
        base = load_config(os.environ)
        config = base.model_validate({**base.model_dump(), **overrides})
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if config.debug:
        logger.setLevel("DEBUG")

    try:
        event = _read_event(args.event_file)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read event {args.event_file}: {e}")
        return 2

    try:
        report = run_notification(event, config)
    except ImageVariantsError as e:
        logger.error(f"Replay failed: {e}", exc_info=True)
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.failed == 0 else 1


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the ``image-variants`` command.

    ``replay`` feeds a saved notification through the same pipeline the
    Lambda handler runs, which is how failed records are replayed by hand.
    """
    parser = build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.command == "replay":
        try:
            sys.exit(replay(args))
        except KeyboardInterrupt:
            get_logger("cli").warning("Replay interrupted by user.")
            sys.exit(130)

    elif args.command == "version":
        print("Image Variants CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
