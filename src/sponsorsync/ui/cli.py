from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from sponsorsync.app import reconcile_register, recent_runs
from sponsorsync.config import ConfigurationError, configure_logging
from sponsorsync.domain.model import RunStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from sponsorsync.domain.model import RunRecord

log = logging.getLogger(__name__)

EXIT_FAILED_RUN = 1
EXIT_VALIDATION = 2


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Not an integer: {value}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"Must be at least 1: {value}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sponsorsync",
        description="Reconcile the register of licensed sponsors",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Run one reconciliation against the register")
    sync.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Organisations inserted per batch (defaults to config)",
    )
    sync.add_argument(
        "--max-workers",
        type=_positive_int,
        default=None,
        help="Batches inserted concurrently (defaults to config)",
    )

    status = subparsers.add_parser("status", help="Show the most recent runs")
    status.add_argument(
        "--limit",
        type=_positive_int,
        default=5,
        help="Number of runs to show",
    )

    return parser.parse_args(list(argv))


def _describe(record: RunRecord) -> str:
    finished = record.finished_at.isoformat() if record.finished_at else "-"
    return (
        f"{record.started_at.isoformat()}  {record.status:<10}  finished={finished}  "
        f"file={record.file_name or '-'}  total={record.total_records_processed}  "
        f"added={record.added_records.count}  updated={record.updated_records.count}  "
        f"deleted={record.deleted_records.count}  errors={len(record.errors)}"
    )


def _run_sync(args: argparse.Namespace) -> int:
    result = reconcile_register(batch_size=args.batch_size, max_workers=args.max_workers)
    record = result.record
    if result.status is RunStatus.FAILED:
        for error in record.errors:
            log.error("%s: %s", error.origin, error.message)
        return EXIT_FAILED_RUN
    log.info(
        "Reconciliation %s: total=%d added=%d updated=%d deleted=%d",
        result.status,
        record.total_records_processed,
        record.added_records.count,
        record.updated_records.count,
        record.deleted_records.count,
    )
    return 0


def _show_status(args: argparse.Namespace) -> int:
    runs = recent_runs(limit=args.limit)
    if not runs:
        print("No runs recorded yet.")  # noqa: T201
    for record in runs:
        print(_describe(record))  # noqa: T201
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        if parsed_args.command == "sync":
            exit_code = _run_sync(parsed_args)
        elif parsed_args.command == "status":
            exit_code = _show_status(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ConfigurationError, ValueError):
        log.exception("CLI validation error")
        sys.exit(EXIT_VALIDATION)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(EXIT_FAILED_RUN)

    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
