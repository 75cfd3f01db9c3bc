from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from patchbatch.app import apply_results, batch_status, cancel_batch
from patchbatch.config import (
    MAX_PAGE_SIZE,
    ApplyConfig,
    ConfigurationError,
    configure_logging,
    get_apply_config,
)
from patchbatch.domain.model import StalenessReference

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

INTERRUPTED_EXIT_CODE = 130


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply stored diffs to repository objects")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Apply all pending diffs of a batch")
    apply.add_argument("--batch-id", type=int, required=True, help="Batch to apply")
    apply.add_argument(
        "--page-size",
        type=int,
        default=None,
        help=f"Diffs handled per step, at most {MAX_PAGE_SIZE} (defaults to config)",
    )
    apply.add_argument(
        "--staleness-reference",
        choices=[reference.value for reference in StalenessReference],
        default=None,
        help="Datastream timestamp compared with the batch creation time (defaults to config)",
    )
    apply.add_argument(
        "--lock-skipped",
        action="store_true",
        help="Also lock objects that are skipped as locked or stale until the batch ends",
    )

    status = subparsers.add_parser("status", help="Show diff counts per status for a batch")
    status.add_argument("--batch-id", type=int, required=True, help="Batch to inspect")

    cancel = subparsers.add_parser("cancel", help="Drop a batch and all of its queued diffs")
    cancel.add_argument("--batch-id", type=int, required=True, help="Batch to cancel")

    return parser.parse_args(list(argv))


def _build_apply_config(args: argparse.Namespace) -> ApplyConfig:
    base = get_apply_config()
    return ApplyConfig(
        page_size=args.page_size if args.page_size is not None else base.page_size,
        staleness_reference=(
            StalenessReference(args.staleness_reference)
            if args.staleness_reference
            else base.staleness_reference
        ),
        lock_skipped_targets=args.lock_skipped or base.lock_skipped_targets,
        lock_holder=base.lock_holder,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    config: ApplyConfig | None = None
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        if parsed_args.command == "apply":
            config = _build_apply_config(parsed_args)
    except (ValueError, ConfigurationError):
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "apply":
            report = apply_results(parsed_args.batch_id, config=config)
            if not report.success:
                sys.exit(1)
        elif parsed_args.command == "status":
            counts = batch_status(parsed_args.batch_id)
            for status, count in counts.items():
                log.info("%-22s %s", status, count)
        elif parsed_args.command == "cancel":
            removed = cancel_batch(parsed_args.batch_id)
            log.info("Cancelled batch %s (%s diffs removed)", parsed_args.batch_id, removed)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C): stop with the conventional interrupt status.

    Queued diffs stay pending, so ``apply`` resumes the batch and ``cancel``
    drops it together with any locks it still holds.
    """
    log.warning("Interrupted by user (Ctrl+C); rerun apply to resume or cancel the batch")
    sys.exit(INTERRUPTED_EXIT_CODE)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
