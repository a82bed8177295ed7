from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from listmirror.app import mirror_list
from listmirror.config import (
    ConfigurationError,
    configure_logging,
    get_mirror_config,
    get_sync_config,
)
from listmirror.domain.errors import ThrottleExhausted

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from listmirror.config import MirrorConfig, SyncConfig

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mirror the members of a Bluesky list into your own moderation list"
    )
    parser.add_argument(
        "--source-list",
        type=str,
        help="at:// URI of the list to mirror (defaults to LISTMIRROR_SOURCE_LIST)",
    )
    parser.add_argument(
        "--mirror-name",
        type=str,
        help="Name of the moderation list to keep in sync (defaults to LISTMIRROR_MIRROR_NAME)",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        help="Items to request per page when reading lists (max 100)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Number of list items to add or remove concurrently",
    )
    parser.add_argument(
        "--batch-delay",
        type=float,
        help="Seconds to pause between batches",
    )
    parser.add_argument(
        "--max-throttles",
        type=int,
        help="Consecutive rate-limit responses tolerated before the run stops early",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log idempotent no-ops and HTTP details",
    )
    return parser.parse_args(list(argv))


def _build_configs(args: argparse.Namespace) -> tuple[MirrorConfig, SyncConfig]:
    mirror = get_mirror_config(source_list_uri=args.source_list, mirror_name=args.mirror_name)
    overrides: dict[str, object] = {}
    if args.page_size is not None:
        overrides["page_size"] = args.page_size
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.batch_delay is not None:
        overrides["batch_delay_seconds"] = args.batch_delay
    if args.max_throttles is not None:
        overrides["max_consecutive_throttles"] = args.max_throttles
    sync = dataclasses.replace(get_sync_config(), **overrides)
    return mirror, sync


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        mirror, sync = _build_configs(parsed_args)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(EXIT_USAGE)

    try:
        summary = mirror_list(mirror=mirror, sync=sync)
    except ThrottleExhausted as exc:
        # a later scheduled run picks up where this one stopped
        partial = exc.summary
        log.warning(
            "Rate limit persisted, run ended early: %s%s",
            exc,
            f" (added={partial.added}, removed={partial.removed}, skipped={partial.skipped})"
            if partial is not None
            else "",
        )
        sys.exit(EXIT_OK)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(EXIT_USAGE)
    except Exception:
        log.exception("Fatal error during list mirror")
        sys.exit(EXIT_FAILURE)

    log.info(
        "Mirror %s up to date: added=%d, removed=%d, failed=%d",
        summary.mirror.uri if summary.mirror else "?",
        summary.added,
        summary.removed,
        summary.failed,
    )


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
