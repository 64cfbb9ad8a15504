#!/usr/bin/env python3
"""
Command-line interface for star-history.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from star_history import __version__
from star_history.config.settings import settings
from star_history.errors import StarHistoryError
from star_history.jobs.export import export_dataset
from star_history.models.targets import parse_target
from star_history.orchestrator import StarHistoryOrchestrator
from star_history.utils.logger import setup_logger

MISSING_TOKEN = """\
Error: environment variable GITHUB_TOKEN must be defined.

Log in to https://github.com/settings/tokens and click "Generate new
token". The default public access permission is sufficient; you can
leave all the checkboxes empty. Save the generated token somewhere like
~/.githubtoken and use:

    export GITHUB_TOKEN=$(cat ~/.githubtoken)
"""

EPILOG = """\
examples:
    star-history dtolnay
    star-history dtolnay/syn dtolnay/quote
    star-history serde-rs/serde
"""


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="star-history",
        description="Produce a graph dataset of GitHub stars of users or repos over time",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "targets",
        nargs="+",
        metavar="TARGET",
        help="owner (all owned repositories summed) or owner/repo",
    )
    parser.add_argument(
        "--max-samples",
        type=int,
        default=settings.MAX_SAMPLES,
        help=f"Maximum points per repository curve (default: {settings.MAX_SAMPLES})",
    )
    parser.add_argument("--output", help="File to write (default: a timestamped file in the temp dir)")
    parser.add_argument("--template", help="HTML template containing 'var data = [];'")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.RUN_TIMEOUT_SECONDS,
        help="Abort the whole run after this many seconds",
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Fail instead of waiting when the rate limit is exhausted",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every page fetch")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.max_samples < 2:
        parser.error("--max-samples must be at least 2")

    labeled_targets = []
    for raw in args.targets:
        try:
            target = parse_target(raw)
        except ValueError as e:
            parser.error(str(e))
        labeled_targets.append((target.display_name, target))

    setup_logger("star_history", level=logging.DEBUG if args.verbose or settings.DEBUG else logging.INFO)

    if not settings.GITHUB_TOKEN:
        print(MISSING_TOKEN, file=sys.stderr)
        return 1

    orchestrator = StarHistoryOrchestrator(
        max_samples=args.max_samples,
        blocking=False if args.no_wait else None,
        timeout_seconds=args.timeout,
    )

    try:
        dataset = asyncio.run(orchestrator.run(labeled_targets))
        path = export_dataset(dataset, output=args.output, template=args.template)
    except StarHistoryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130

    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
