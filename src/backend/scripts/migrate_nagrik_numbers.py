"""
Nagrik number backfill script.

Assigns a nagrik number to every user profile that lacks one, then verifies
that every profile has a number and that no number is held twice.
Run with: python -m scripts.migrate_nagrik_numbers [--dry-run] [--verify-only]

Output contains counts only (no user ids or emails). Exits 0 when the run
completes and 1 on an unhandled error. Duplicates are reported, not fixed.
"""

import argparse
import asyncio
import sys
from typing import Optional

from scripts._common import banner, build_migration_service

from db.cosmos_session import close_cosmos
from services.migration_service import MigrationReport


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Backfill and verify nagrik numbers")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--dry-run",
        action="store_true",
        help="Count profiles that would be migrated without writing",
    )
    mode.add_argument(
        "--verify-only",
        action="store_true",
        help="Skip the migration pass and only verify",
    )
    return parser.parse_args(argv)


def format_report(report: MigrationReport) -> list[str]:
    """Summary lines for the console."""
    lines = []
    if report.dry_run:
        lines.append("DRY RUN - no profiles were written")
    lines += [
        f"Migrated:        {report.migrated}",
        f"Skipped:         {report.skipped}",
        f"Indexed:         {report.indexed}",
        f"Errors:          {report.errors}",
        f"Total profiles:  {report.total}",
        f"With number:     {report.with_number}",
        f"Without number:  {report.without_number}",
        f"Duplicate numbers: {len(report.duplicates)}",
    ]
    if report.duplicates:
        lines.append(f"  Duplicated: {', '.join(str(n) for n in report.duplicates)}")
    lines.append("All profiles have unique nagrik numbers" if report.ok else "Verification found problems")
    return lines


async def migrate(dry_run: bool = False, verify_only: bool = False) -> MigrationReport:
    service = build_migration_service()
    try:
        return await service.run(dry_run=dry_run, verify_only=verify_only)
    finally:
        await close_cosmos()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    banner("Nagrik number migration")
    try:
        report = asyncio.run(migrate(dry_run=args.dry_run, verify_only=args.verify_only))
    except Exception as e:
        print(f"Migration failed: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    for line in format_report(report):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
