# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from threading import Event
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from retentory.app import export_backup, import_backup, record_history, search_series
from retentory.config import configure_logging
from retentory.domain.filters import SeriesFilter, SortKey
from retentory.domain.interchange import audit_to_record
from retentory.domain.model import ApprovalStatus, EntityKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from retentory.domain.reconciliation import ImportSummary

log = logging.getLogger(__name__)

_cancel_requested = Event()
_import_running = Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Records-retention inventory backups")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_ = subparsers.add_parser("import", help="Merge a JSON backup into the inventory")
    import_.add_argument("path", help="Backup file to import")
    import_.add_argument(
        "--merge-drafts-by-title",
        action="store_true",
        default=None,
        help="Merge an incoming draft into the single stored draft with the same title",
    )

    export = subparsers.add_parser("export", help="Write the inventory to a JSON backup")
    export.add_argument("path", help="Destination file")
    _add_filter_arguments(export)

    history = subparsers.add_parser("history", help="Show the audit trail of one record")
    history.add_argument("kind", choices=[kind.value for kind in EntityKind])
    history.add_argument("identity", help="Store identity (UUID) of the record")

    search = subparsers.add_parser("search", help="List series items matching filters")
    _add_filter_arguments(search)
    search.add_argument(
        "--sort-by",
        choices=[key.value for key in SortKey],
        help="Sort order for the results",
    )
    search.add_argument("--descending", action="store_true", help="Reverse the sort order")

    return parser.parse_args(list(argv))


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--schedule", help="Application number of the owning schedule")
    parser.add_argument("--division", help="Exact division name")
    parser.add_argument(
        "--status",
        choices=[status.value for status in ApprovalStatus],
        help="Approval status of the owning schedule",
    )
    parser.add_argument(
        "--tag", action="append", default=[], help="Schedule tag (repeatable, any match)"
    )
    parser.add_argument(
        "--media-type", action="append", default=[], help="Media type (repeatable, any match)"
    )
    parser.add_argument(
        "--permanent",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only permanent (or, with --no-permanent, only temporary) series",
    )
    parser.add_argument("--text", help="Whitespace-separated terms that must all appear")


def _build_filter(args: argparse.Namespace) -> SeriesFilter | None:
    series_filter = SeriesFilter(
        application_number=args.schedule,
        division=args.division,
        approval_status=ApprovalStatus(args.status) if args.status else None,
        tags=tuple(args.tag),
        media_types=tuple(args.media_type),
        permanent=args.permanent,
        search_text=args.text,
        sort_by=SortKey(args.sort_by) if getattr(args, "sort_by", None) else None,
        descending=getattr(args, "descending", False),
    )
    if series_filter == SeriesFilter():
        return None
    return series_filter


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _report_import(summary: ImportSummary) -> None:
    log.info(
        "Schedules: %d created, %d updated, %d unchanged",
        summary.schedules.created,
        summary.schedules.updated,
        summary.schedules.unchanged,
    )
    log.info(
        "Series items: %d created, %d updated, %d unchanged",
        summary.series.created,
        summary.series.updated,
        summary.series.unchanged,
    )
    log.info(
        "History: %d appended, %d already present",
        summary.history_imported,
        summary.history_skipped,
    )
    for warning in summary.rejected:
        print(f"rejected {warning.entity} {warning.local_id} [{warning.kind}]: {warning.message}")
    for warning in summary.warnings:
        print(f"warning {warning.entity} {warning.local_id} [{warning.kind}]: {warning.message}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        identity = (
            _parse_uuid(parsed_args.identity) if parsed_args.command == "history" else None
        )
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "import":
            _import_running.set()
            try:
                summary = import_backup(
                    parsed_args.path,
                    merge_drafts_by_title=parsed_args.merge_drafts_by_title,
                    should_cancel=_cancel_requested.is_set,
                )
            finally:
                _import_running.clear()
            _report_import(summary)
            if not summary.completed:
                log.error("Import aborted: %s", summary.abort_reason)
                sys.exit(1)
        elif parsed_args.command == "export":
            payload = export_backup(parsed_args.path, _build_filter(parsed_args))
            log.info(
                "Exported %d schedules and %d series items to %s",
                len(payload["schedules"]),
                len(payload["series_items"]),
                parsed_args.path,
            )
        elif parsed_args.command == "history":
            if identity is None:
                raise ValueError("history needs a record identity")  # noqa: TRY301
            for event in record_history(EntityKind(parsed_args.kind), identity):
                print(json.dumps(audit_to_record(event), sort_keys=True))
        elif parsed_args.command == "search":
            for item in search_series(_build_filter(parsed_args) or SeriesFilter()):
                print(f"{item.item_number}\t{item.record_series_title}\t{item.division or ''}")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C): stop an import between records, otherwise exit."""
    if _import_running.is_set():
        log.info("Cancelling import after the current record (Ctrl+C)")
        _cancel_requested.set()
        return
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
