"""CLI entrypoint for the backuplit service."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from backuplit.app import Backuplit
from backuplit.errors import BackuplitError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Back up a directory to object storage on an interval or on change.",
    )
    parser.add_argument(
        "--config",
        default="config.json",
        help="Path to the JSON config file (environment variables are used when it is missing).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single backup and exit instead of starting the trigger loop.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Instantiate the backup facade and run it, returning a process exit code."""
    args = build_parser().parse_args(argv)

    try:
        backup_system = Backuplit(
            args.config,
            log_level=logging.DEBUG if args.verbose else None,
        )
        if args.once:
            backup_system.backup_once()
        else:
            backup_system.run()
    except BackuplitError as exc:
        logging.getLogger("backuplit").error("Fatal: %s", exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
