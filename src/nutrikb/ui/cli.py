from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from nutrikb.app import import_dataset
from nutrikb.config import configure_logging, is_ci_environment
from nutrikb.domain.importing import ImportMode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nutrikb-import",
        description="Import an ingredient dataset package into the knowledge store",
    )
    parser.add_argument(
        "--file",
        type=Path,
        required=True,
        help="Path to the dataset package JSON file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and count rows without touching the store",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on the first data-quality issue (required under CI)",
    )
    parser.add_argument(
        "--skip-dataset-version",
        action="store_true",
        help="Do not record the package version in the dataset state",
    )
    subsets = parser.add_mutually_exclusive_group()
    subsets.add_argument(
        "--only-parsing",
        action="store_true",
        help="Import only the parsing tables (aliases, rules, tokens)",
    )
    subsets.add_argument(
        "--only-knowledge",
        action="store_true",
        help="Import only the knowledge tables (forms, evidence, targets, ...)",
    )
    parser.add_argument(
        "--force-pending",
        action="store_true",
        help="Store every audited row as needs_review",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(list(argv))


def _build_mode(args: argparse.Namespace) -> ImportMode:
    if is_ci_environment() and not args.strict:
        raise ValueError("--strict is required when running under CI")
    return ImportMode.from_flags(
        only_parsing=args.only_parsing,
        only_knowledge=args.only_knowledge,
        dry_run=args.dry_run,
        strict=args.strict,
        skip_dataset_version=args.skip_dataset_version,
        force_pending=args.force_pending,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)
    try:
        mode = _build_mode(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        import_dataset(parsed_args.file, mode=mode)
    except Exception:
        log.exception("Fatal error during dataset import")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) by exiting with status 130."""
    log.warning("Interrupted by user (Ctrl+C)")
    sys.exit(EXIT_INTERRUPTED)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
