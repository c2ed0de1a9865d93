"""
Cosmos DB nagrik number repository.

Owns the atomic sequence counter and the nagrik-lookup secondary index
that guarantees each number belongs to exactly one profile.
"""

import logging
from typing import Optional

from core.exceptions import DocumentConflictError, NotFoundError
from db.cosmos_session import (
    COUNTERS_CONTAINER,
    NAGRIK_LOOKUP_CONTAINER,
    create_item,
    delete_item,
    patch_item,
    read_item,
)
from models.cosmos_documents import NAGRIK_COUNTER_ID, CounterDocument, NagrikLookupDocument

logger = logging.getLogger(__name__)


class CosmosNagrikRepository:
    """Counter and uniqueness index for nagrik numbers."""

    # ========================================================================
    # Sequence Counter
    # ========================================================================

    async def increment_counter(self) -> int:
        """
        Atomically increment the sequence and return the new value.

        Raises NotFoundError when the counter has not been seeded yet.
        """
        data = await patch_item(
            COUNTERS_CONTAINER,
            NAGRIK_COUNTER_ID,
            partition_key=NAGRIK_COUNTER_ID,
            operations=[{"op": "incr", "path": "/value", "value": 1}],
        )
        return int(data["value"])

    async def seed_counter(self, value: int) -> bool:
        """
        Create the counter with an initial value if it does not exist.

        Returns False when another instance seeded it first.
        """
        counter = CounterDocument(id=NAGRIK_COUNTER_ID, value=value)
        try:
            await create_item(COUNTERS_CONTAINER, counter.model_dump(mode="json"))
        except DocumentConflictError:
            return False
        logger.info(f"Seeded nagrik counter at {value}")
        return True

    # ========================================================================
    # Uniqueness Index
    # ========================================================================

    async def claim(self, nagrik_number: int, user_id: str) -> bool:
        """
        Claim a number for a profile. Returns False if it is already taken.

        The lookup document id is the number, so the claim is a single
        create-if-absent call.
        """
        lookup = NagrikLookupDocument(
            id=str(nagrik_number),
            nagrik_number=nagrik_number,
            user_id=user_id,
        )
        try:
            await create_item(NAGRIK_LOOKUP_CONTAINER, lookup.model_dump(mode="json"))
        except DocumentConflictError:
            logger.debug(f"Nagrik number {nagrik_number} already claimed")
            return False
        return True

    async def get_owner(self, nagrik_number: int) -> Optional[str]:
        key = str(nagrik_number)
        data = await read_item(NAGRIK_LOOKUP_CONTAINER, key, partition_key=key)
        if data is None:
            return None
        return data.get("user_id")

    async def release(self, nagrik_number: int) -> None:
        """Drop the index entry for a number that was never stored on a profile."""
        key = str(nagrik_number)
        try:
            await delete_item(NAGRIK_LOOKUP_CONTAINER, key, partition_key=key)
        except NotFoundError:
            logger.debug(f"Nagrik number {nagrik_number} was not claimed")
