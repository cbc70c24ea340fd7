#!/usr/bin/env python3
"""
Reconcile approver relationships with an employee directory export.

Reads the directory CSV, resolves who approves whom, and updates the
approver relationship table as of today: new pairs are granted, pairs the
directory no longer implies are ended (or soft-deleted, per config).

Usage:
    python3 scripts/sync_approvers.py --file <directory.csv> [options]

Examples:
    # Show the resolved approver graph without touching the database
    python3 scripts/sync_approvers.py --file directory.csv --dry-run

    # Apply against the database from the default config set
    python3 scripts/sync_approvers.py --file directory.csv

    # Probe the file (row count, columns, sample) and exit
    python3 scripts/sync_approvers.py --file directory.csv --probe-only
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sync approver relationships from an employee directory CSV.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--file", required=True, type=Path, help="Directory CSV to import.")
    parser.add_argument(
        "--config-set",
        default="default",
        help="Configuration set name (default: default).",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory holding configuration sets (default: timesheet_config/sets).",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL; overrides the configuration set.",
    )
    parser.add_argument(
        "--actor-id",
        type=UUID,
        default=None,
        help="User id recorded as creator/updater of changed rows "
        "(default: approver_sync.actor_email from the config set).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resolved approver graph and exit. No DB writes.",
    )
    parser.add_argument(
        "--probe-only",
        action="store_true",
        help="Probe the file (row count, columns, sample rows) and exit.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before syncing.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from timesheet_config import get_active_config
    from timesheet_ingestion.adapters.csv_adapter import CsvSourceAdapter
    from timesheet_ingestion.services import DirectoryImportService
    from timesheet_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from timesheet_kernel.domain.approver_graph import resolve_approvers
    from timesheet_kernel.domain.clock import SystemClock
    from timesheet_kernel.exceptions import DirectoryImportError
    from timesheet_kernel.logging_config import configure_logging
    from timesheet_kernel.selectors.user_selector import UserSelector
    from timesheet_kernel.services.approver_service import ApproverService

    config = get_active_config(args.config_set, args.config_dir)
    configure_logging(level=config.logging.level)

    options = {
        "encoding": config.directory_import.encoding,
        "delimiter": config.directory_import.delimiter,
        "has_header": config.directory_import.has_header,
    }
    source_path = args.file.resolve()

    if args.probe_only:
        if not source_path.is_file():
            print(f"ERROR: File not found: {source_path}", file=sys.stderr)
            return 1
        probe = CsvSourceAdapter().probe(source_path, options)
        print(f"Rows: {probe.row_count}")
        print(f"Columns: {list(probe.columns)}")
        missing = probe.missing_columns()
        if missing:
            print(f"Missing required columns: {list(missing)}")
        print("Sample (first 3):")
        for i, row in enumerate(probe.sample_rows[:3], 1):
            print(f"  {i}: {row}")
        return 0

    importer = DirectoryImportService(
        max_error_rate=config.directory_import.max_error_rate,
        options=options,
    )
    try:
        loaded = importer.load(source_path)
    except DirectoryImportError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"Loaded {len(loaded.snapshot)} employees from {loaded.total_rows} rows")
    for error in loaded.errors[:10]:
        print(f"  Row {error.row_number}: {error.message}")
    if len(loaded.errors) > 10:
        print(f"  ... and {len(loaded.errors) - 10} more invalid rows.")

    if args.dry_run:
        graph = resolve_approvers(loaded.snapshot)
        for target in sorted(graph):
            approvers = ", ".join(sorted(graph[target])) or "(none)"
            print(f"  {target} <- {approvers}")
        return 0

    init_engine_from_url(
        args.db_url or config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    if args.create_tables:
        create_tables()

    with session_scope() as session:
        actor_id = args.actor_id
        if actor_id is None and config.approver_sync.actor_email:
            actor_id = UserSelector(session).resolve_id(config.approver_sync.actor_email)
        service = ApproverService(
            session,
            clock=SystemClock(),
            end_strategy=config.approver_sync.end_strategy,
        )
        result = service.sync_from_directory(loaded.snapshot, actor_id=actor_id)

    print(
        f"Sync as of {result.as_of}: {len(result.added)} added, "
        f"{len(result.ended)} ended, {result.unchanged} unchanged"
    )
    for target, approver in result.scheduled:
        print(f"  scheduled, not granted: {target} <- {approver}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
