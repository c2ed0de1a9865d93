"""
Nagrik number backfill.

Walks every user profile, records the numbers profiles already hold in the
nagrik-lookup index, assigns a nagrik number to each profile that lacks
one, then verifies that every profile has a number and that no number is
held twice. Safe to re-run: profiles that already have a number are never
renumbered.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import structlog

from core.config import settings

logger = structlog.get_logger(__name__)


class MigrationState(str, Enum):
    NOT_STARTED = "not_started"
    MIGRATING = "migrating"
    VERIFYING = "verifying"
    DONE = "done"


@dataclass
class MigrationReport:
    """
    Counts produced by a backfill run.

    Contains no user identifiers, so it can be printed or logged as is.
    """

    migrated: int = 0
    skipped: int = 0
    indexed: int = 0
    errors: int = 0
    total: int = 0
    with_number: int = 0
    without_number: int = 0
    duplicates: list[int] = field(default_factory=list)
    dry_run: bool = False
    verified: bool = False

    @property
    def ok(self) -> bool:
        """True when verification found every profile numbered and no duplicates."""
        return self.verified and self.without_number == 0 and not self.duplicates


class NagrikMigrationService:
    """
    Backfills nagrik numbers for existing profiles.

    Usage:
        service = NagrikMigrationService(user_repo, allocator)
        report = await service.run()
    """

    def __init__(
        self,
        user_repo,
        allocator,
        throttle_seconds: Optional[float] = None,
    ):
        self.user_repo = user_repo
        self.allocator = allocator
        self.nagrik_repo = allocator.nagrik_repo
        self.throttle_seconds = (
            throttle_seconds if throttle_seconds is not None else settings.MIGRATION_THROTTLE_SECONDS
        )
        self.state = MigrationState.NOT_STARTED

    async def run(self, dry_run: bool = False, verify_only: bool = False) -> MigrationReport:
        """Migrate (unless `verify_only`) and then verify."""
        report = MigrationReport(dry_run=dry_run)
        if not verify_only:
            await self.migrate(report, dry_run=dry_run)
        await self.verify(report)
        self.state = MigrationState.DONE
        logger.info(
            "nagrik_migration_complete",
            migrated=report.migrated,
            skipped=report.skipped,
            indexed=report.indexed,
            errors=report.errors,
            duplicates=len(report.duplicates),
            without_number=report.without_number,
        )
        return report

    async def migrate(self, report: MigrationReport, dry_run: bool = False) -> MigrationReport:
        """
        Index the numbers profiles already hold, then number the rest.

        Existing numbers are claimed in the nagrik-lookup index before any new
        number is allocated, so a fallback number can never collide with a
        legacy one. A failure on one profile is counted and the walk
        continues; failures while listing profiles propagate.
        """
        self.state = MigrationState.MIGRATING
        logger.info("nagrik_migration_started", dry_run=dry_run)

        unnumbered = []
        async for profile in self.user_repo.iter_all():
            if not profile.nagrik_number:
                unnumbered.append(profile.id)
                continue
            report.skipped += 1
            if not dry_run:
                await self._index_existing(report, profile.id, profile.nagrik_number)

        for user_id in unnumbered:
            if dry_run:
                report.migrated += 1
                continue

            number = None
            try:
                number = await self.allocator.assign(user_id)
                await self.user_repo.set_nagrik_number(user_id, number)
                report.migrated += 1
            except Exception as e:
                report.errors += 1
                logger.error("nagrik_migration_record_failed", error=str(e), error_type=type(e).__name__)
                if number is not None:
                    await self.nagrik_repo.release(number)

            if self.throttle_seconds > 0:
                await asyncio.sleep(self.throttle_seconds)

        return report

    async def _index_existing(self, report: MigrationReport, user_id: str, number: int) -> None:
        """Claim a number a profile already holds; a claim by another profile is a duplicate."""
        try:
            if await self.nagrik_repo.claim(number, user_id):
                report.indexed += 1
                return
            owner = await self.nagrik_repo.get_owner(number)
        except Exception as e:
            report.errors += 1
            logger.error("nagrik_index_failed", error=str(e), error_type=type(e).__name__)
            return

        if owner != user_id and number not in report.duplicates:
            report.duplicates.append(number)
            logger.warning("nagrik_number_claimed_elsewhere", nagrik_number=number)

    async def verify(self, report: MigrationReport) -> MigrationReport:
        """
        Re-read every profile and report missing and duplicate numbers.

        Duplicates are only reported; resolving them is a manual decision.
        """
        self.state = MigrationState.VERIFYING
        numbers: list[int] = []
        total = 0

        async for profile in self.user_repo.iter_all():
            total += 1
            if profile.nagrik_number:
                numbers.append(profile.nagrik_number)

        report.total = total
        report.with_number = len(numbers)
        report.without_number = total - len(numbers)
        if report.duplicates or len(numbers) != len(set(numbers)):
            report.duplicates = sorted(
                set(report.duplicates) | {n for n, count in Counter(numbers).items() if count > 1}
            )
            logger.warning("nagrik_duplicates_found", count=len(report.duplicates))
        report.verified = True
        return report
