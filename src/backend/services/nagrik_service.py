"""
Nagrik number allocation.

Every citizen gets a sequential public number ("Nagrik_1001", ...) that is
their only visible identity. Numbers come from an atomically incremented
counter document; each allocated number is then claimed in the nagrik-lookup
index so no two profiles can ever hold the same one.
"""

import random
from typing import Optional

import structlog

from core.config import settings
from core.exceptions import NagrikAllocationError, NotFoundError

logger = structlog.get_logger(__name__)


class NagrikNumberAllocator:
    """
    Issues unique nagrik numbers.

    Usage:
        allocator = NagrikNumberAllocator(user_repo, nagrik_repo)
        number = await allocator.assign(user_id)
    """

    def __init__(
        self,
        user_repo,
        nagrik_repo,
        floor: Optional[int] = None,
        fallback_max: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        self.user_repo = user_repo
        self.nagrik_repo = nagrik_repo
        self.floor = floor if floor is not None else settings.NAGRIK_NUMBER_FLOOR
        self.fallback_max = fallback_max if fallback_max is not None else settings.NAGRIK_FALLBACK_MAX
        self.max_attempts = max_attempts if max_attempts is not None else settings.NAGRIK_ALLOCATION_MAX_ATTEMPTS

    async def allocate(self) -> int:
        """
        Return the next number in the sequence.

        Concurrent callers always receive distinct values because the counter
        is advanced with a single atomic increment. If the counter cannot be
        reached, a random number in [floor, fallback_max] is returned instead;
        `assign` re-checks such numbers for uniqueness before using them.
        """
        try:
            return await self._increment()
        except Exception as e:
            fallback = random.randint(self.floor, self.fallback_max)
            logger.warning(
                "nagrik_counter_unavailable",
                error=str(e),
                fallback_number=fallback,
            )
            return fallback

    async def assign(self, user_id: str) -> int:
        """
        Allocate a number and claim it for `user_id`.

        Raises:
            NagrikAllocationError: No unclaimed number was found within
                the configured number of attempts.
        """
        for attempt in range(1, self.max_attempts + 1):
            number = await self.allocate()
            if await self.nagrik_repo.claim(number, user_id):
                return number
            logger.info("nagrik_number_taken", nagrik_number=number, attempt=attempt)

        logger.error("nagrik_allocation_failed", attempts=self.max_attempts)
        raise NagrikAllocationError(f"Could not claim a nagrik number after {self.max_attempts} attempts")

    async def _increment(self) -> int:
        try:
            return await self.nagrik_repo.increment_counter()
        except NotFoundError:
            await self._seed()
            return await self.nagrik_repo.increment_counter()

    async def _seed(self) -> None:
        """
        Create the counter so the next increment continues after existing data.

        Legacy or corrupt maxima below the floor are ignored so the sequence
        always starts at the floor.
        """
        current_max = await self.user_repo.get_max_nagrik_number()
        if current_max is not None and current_max >= self.floor:
            seed = current_max
        else:
            seed = self.floor - 1

        if await self.nagrik_repo.seed_counter(seed):
            logger.info("nagrik_counter_seeded", seed=seed)
