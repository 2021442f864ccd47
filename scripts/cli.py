"""CLI entry point for the Gmail PDF Archiver."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from gmail_pdf_archiver.config.settings import ArchiverSettings
from gmail_pdf_archiver.pipeline.runner import ArchiveRunner
from gmail_pdf_archiver.pipeline.scheduler import RUN_HANDLER, TriggerScheduler
from gmail_pdf_archiver.storage.state import SqlitePropertyStore


def setup_logging(level: str) -> None:
    """Configure logging with timestamp and module info."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Gmail PDF Archiver - Export labelled emails to PDF"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Archive every configured label once")
    run_parser.add_argument(
        "--label",
        "-l",
        action="append",
        dest="labels",
        help="Label to process (repeatable; default: from settings)",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        dest="dry_run",
        help="Render only: no file, label, archive or state change",
    )

    install_parser = subparsers.add_parser(
        "install-trigger", help="Schedule the archival run every N minutes"
    )
    install_parser.add_argument(
        "--every",
        type=int,
        default=None,
        help="Interval in minutes (default: from settings)",
    )

    subparsers.add_parser("remove-trigger", help="Remove the scheduled archival run")
    subparsers.add_parser("triggers", help="List installed triggers")
    subparsers.add_parser("watch", help="Run installed triggers until interrupted")
    subparsers.add_parser("status", help="Show processed-message counts and recent runs")

    return parser


def _settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if getattr(args, "dry_run", None):
        overrides["dry_run"] = True
    return overrides


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if getattr(args, "every", None) is not None and args.every < 1:
        print("Error: --every must be at least 1", file=sys.stderr)
        sys.exit(1)

    settings = ArchiverSettings(**_settings_overrides(args))
    setup_logging(settings.log_level)
    settings.ensure_directories()

    properties = SqlitePropertyStore(settings.database_path)
    properties.connect()
    runner = ArchiveRunner(settings=settings, properties=properties)
    scheduler = TriggerScheduler(properties)

    try:
        if args.command == "run":
            summary = runner.run(labels=args.labels)
            print(f"\nArchived {summary.archived} message(s), {summary.failed} failure(s)")
            if summary.fatal_error:
                print(f"Run aborted: {summary.fatal_error}", file=sys.stderr)
                sys.exit(1)
            if summary.failed_labels:
                print(f"Failed labels: {', '.join(summary.failed_labels)}", file=sys.stderr)
                sys.exit(1)

        elif args.command == "install-trigger":
            every = args.every or settings.trigger_interval_minutes
            if scheduler.install(RUN_HANDLER, every):
                print(f"\nTrigger created: archival run every {every} minutes")
            else:
                print("\nTrigger already exists")

        elif args.command == "remove-trigger":
            removed = scheduler.remove(RUN_HANDLER)
            print("\nTrigger removed" if removed else "\nNo trigger to remove")

        elif args.command == "triggers":
            triggers = scheduler.list_triggers()
            print(f"\nFound {len(triggers)} trigger(s):\n")
            for name, minutes in sorted(triggers.items()):
                print(f"  {name:20s} every {minutes} min")

        elif args.command == "watch":
            scheduler.run_forever({RUN_HANDLER: runner.run})

        elif args.command == "status":
            counts = runner.processed_counts()
            print("\nProcessed messages by label:")
            for label, count in sorted(counts.items()):
                print(f"  {label}: {count}")
            print("\nRecent runs:")
            for run in runner.recent_runs():
                print(
                    f"  #{run['run_id']} {run['label']} {run['started_at']} "
                    f"archived={run['messages_archived']} failed={run['messages_failed']}"
                    + (f" error={run['error_message']}" if run["error_message"] else "")
                )

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logging.getLogger(__name__).exception("Fatal error")
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        runner.close()


if __name__ == "__main__":
    main()
