"""Command line front end: ``rim recycle|recover|list|purge|reconcile``."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime

from . import __version__
from .config import load_config
from .exceptions import InvalidEntryIdError, RimError
from .recycle_bin import DEFAULT_LIST_LIMIT, RecycleBin

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_entry_id(text: str) -> int:
    """Parse a ledger id given on the command line."""
    try:
        entry_id = int(text)
    except ValueError:
        raise InvalidEntryIdError(f"Invalid trash entry id: {text!r}") from None
    if entry_id < 1:
        raise InvalidEntryIdError(f"Invalid trash entry id: {text!r}")
    return entry_id


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rim",
        description="Recycle bin for the command line",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", help="Path to a YAML config file.")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    recycle = sub.add_parser("recycle", help="Move files or directories to the trash.")
    recycle.add_argument("paths", nargs="+", help="Files or directories to recycle.")
    recycle.add_argument(
        "-r", "--recursive", action="store_true", help="Recycle non-empty directories."
    )

    recover = sub.add_parser("recover", help="Restore a trashed entry.")
    target = recover.add_mutually_exclusive_group(required=True)
    target.add_argument("id", nargs="?", help="Ledger id of the entry.")
    target.add_argument("--path", help="Restore the latest entry recycled from PATH.")

    listing = sub.add_parser("list", help="Show recently recycled entries.")
    listing.add_argument("-n", type=int, default=DEFAULT_LIST_LIMIT, help="How many entries.")

    sub.add_parser("purge", help="Permanently delete expired entries.")

    reconcile = sub.add_parser("reconcile", help="Check the ledger against the trash directory.")
    reconcile.add_argument(
        "--dry-run", action="store_true", help="Report without deleting orphaned rows."
    )
    return parser


def _format_time(epoch: int) -> str:
    return datetime.fromtimestamp(epoch).strftime(DATE_FORMAT)


def run(args: argparse.Namespace) -> None:
    """Execute the parsed command.  Raises ``RimError`` on failure."""
    config = load_config(args.config)
    with RecycleBin(config) as recycle_bin:
        if args.command == "recycle":
            for path in args.paths:
                entry = recycle_bin.recycle(path, recursive=args.recursive)
                print(f"{entry.id}\t{entry.trash_path}")

        elif args.command == "recover":
            if args.path is not None:
                entry = recycle_bin.recover_path(args.path)
            else:
                entry = recycle_bin.recover(parse_entry_id(args.id))
            print(entry.original_path)

        elif args.command == "list":
            for entry in recycle_bin.list_recent(args.n):
                kind = "d" if entry.is_dir else "-"
                print(
                    f"{entry.id}\t{kind}\t{_format_time(entry.created_at)}\t"
                    f"expires {_format_time(entry.expiration)}\t{entry.original_path}"
                )

        elif args.command == "purge":
            result = recycle_bin.run_maintenance()
            print(
                f"deleted={result.deleted_count} skipped={result.skipped_count} "
                f"deferred={len(result.deferred_paths)} bytes_freed={result.bytes_freed}"
            )

        elif args.command == "reconcile":
            stats = recycle_bin.reconcile(dry_run=args.dry_run)
            print(" ".join(f"{key}={value}" for key, value in stats.items()))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stderr,
    )
    try:
        run(args)
    except RimError as e:
        logger.error("%s", e)
        return 1
    return 0
