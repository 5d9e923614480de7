from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from liftmatch.app import audit_same_name_lifters, ingest_result_sheet
from liftmatch.config import ConfigurationError, configure_logging
from liftmatch.domain.names import normalize_name

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve lifter identities for meet results")
    parser.add_argument("--verbose", action="store_true", help="Log resolution traces")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest a meet result sheet (CSV)")
    ingest.add_argument("path", type=Path, help="Result sheet exported from the ranking site")
    ingest.add_argument("--meet-id", required=True, help="Ranking-site meet id")
    ingest.add_argument("--meet-name", help="Meet name, when the sheet has no Meet column")
    ingest.add_argument(
        "--meet-date",
        type=str,
        help="ISO date (YYYY-MM-DD), when the sheet has no Date column",
    )
    ingest.add_argument(
        "--reprocess-file",
        type=Path,
        help="JSONL file receiving rows that could not be stored (defaults to the data dir)",
    )

    normalize = subparsers.add_parser("normalize-name", help="Show canonical name forms")
    normalize.add_argument("names", nargs="+", help="Names as printed on result sheets")

    subparsers.add_parser("audit-duplicates", help="List lifters that share a name")

    return parser.parse_args(list(argv))


def _parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid ISO date: {value}") from exc


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    meet_date: date | None = None
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(
            level=logging.DEBUG if parsed_args.verbose else logging.INFO,
            force=parsed_args.verbose,
        )
        if parsed_args.command == "ingest" and parsed_args.meet_date:
            meet_date = _parse_iso_date(parsed_args.meet_date)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "ingest":
            report = ingest_result_sheet(
                parsed_args.path,
                meet_id=parsed_args.meet_id,
                meet_name=parsed_args.meet_name,
                meet_date=meet_date,
                reprocess_path=parsed_args.reprocess_file,
            )
            for row in report.rows:
                print(f"{row.index}\t{row.code}\t{row.lifter_id or ''}\t{row.name}")
            print(report.summary())
            if report.failed:
                sys.exit(3)
        elif parsed_args.command == "normalize-name":
            for name in parsed_args.names:
                print(f"{name}\t{normalize_name(name)}")
        elif parsed_args.command == "audit-duplicates":
            for name, lifters in audit_same_name_lifters():
                ids = ", ".join(f"{lifter.lifter_id}:{lifter.stable_id or '-'}" for lifter in lifters)
                print(f"{name}\t{ids}")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
