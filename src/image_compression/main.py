"""Main module for the image compression CLI."""

import argparse
import json
import os
import sys
from typing import Any, Dict, Optional, Sequence

from . import __version__
from .core.logging_config import get_logger
from .handler import lambda_handler


def load_event(path: str) -> Dict[str, Any]:
    """Read an S3 event notification from a JSON file, ``-`` for stdin."""
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="image-compression",
        description="Image Compression - resize and re-encode S3 photos the way the Lambda does",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the handler locally against a saved S3 event
  image-compression invoke --event event.json --destination-bucket my-compressed

  # Read the event from stdin
  cat event.json | image-compression invoke --event -

  # Show version
  image-compression version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    invoke_parser: argparse.ArgumentParser = subparsers.add_parser(
        "invoke", help="Run the handler once against an S3 event file"
    )
    invoke_parser.add_argument(
        "--event", required=True, help="Path to the S3 event JSON, '-' for stdin"
    )
    invoke_parser.add_argument(
        "--destination-bucket",
        default=None,
        help="Destination bucket, overrides DESTINATION_BUCKET",
    )
    invoke_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    subparsers.add_parser("version", help="Show version information")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Entry point for the image compression command-line interface (CLI).

    ``invoke`` runs :func:`lambda_handler` in-process without a Lambda context and
    prints the response envelope as JSON. The exit code is 0 for a 200
    response and 1 otherwise.
    """
    parser = build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.command == "invoke":
        if args.debug:
            os.environ["LOG_LEVEL"] = "DEBUG"
        if args.destination_bucket:
            os.environ["DESTINATION_BUCKET"] = args.destination_bucket

        try:
            event = load_event(args.event)
        except (OSError, json.JSONDecodeError) as e:
            get_logger().error(f"Could not read event from {args.event}: {e}")
            sys.exit(1)

        response = lambda_handler(event, None)
        print(json.dumps(response, indent=2))
        sys.exit(0 if response["statusCode"] == 200 else 1)

    elif args.command == "version":
        print("Image Compression CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
