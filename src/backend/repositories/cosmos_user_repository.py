"""
Cosmos DB User Profile repository.

Handles profile CRUD for the 'user_profiles' container. Single-assignment
fields (nagrik_number, constituency_id) are written with conditional patches
so a second write fails instead of overwriting.
"""

import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from core.exceptions import NotFoundError
from db.cosmos_session import (
    USER_PROFILES_CONTAINER,
    create_item,
    delete_item,
    iter_items,
    patch_item,
    query_count,
    query_items,
    read_item,
    replace_item,
)
from models.cosmos_documents import UserProfileDocument

logger = logging.getLogger(__name__)

UNSET_PREDICATE = "FROM c WHERE NOT IS_DEFINED(c.{field}) OR IS_NULL(c.{field})"
# Legacy profiles may carry a 0 placeholder, which counts as unnumbered.
NAGRIK_UNSET_PREDICATE = UNSET_PREDICATE.format(field="nagrik_number") + " OR c.nagrik_number = 0"


class CosmosUserRepository:
    """Repository for user profile operations using Cosmos DB."""

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_by_id(self, user_id: str) -> Optional[UserProfileDocument]:
        """Get a profile by uid (direct point read)."""
        data = await read_item(USER_PROFILES_CONTAINER, user_id, partition_key=user_id)
        if data is None:
            return None
        return UserProfileDocument(**data)

    async def get_max_nagrik_number(self) -> Optional[int]:
        """Highest assigned nagrik number, or None when no profile has one."""
        query = """
            SELECT TOP 1 VALUE c.nagrik_number FROM c
            WHERE IS_NUMBER(c.nagrik_number)
            ORDER BY c.nagrik_number DESC
        """
        results = await query_items(USER_PROFILES_CONTAINER, query, max_items=1)
        if not results:
            return None
        return int(results[0])

    async def get_nagrik_numbers(self, user_ids: list[str]) -> dict[str, Optional[int]]:
        """
        Look up nagrik numbers for a set of authors.

        Used when rendering posts and comments; users without a profile map
        to None so callers fall back to the generic label.
        """
        unique_ids = sorted(set(user_ids))
        if not unique_ids:
            return {}

        query = """
            SELECT c.id, c.nagrik_number FROM c
            WHERE ARRAY_CONTAINS(@ids, c.id)
        """
        results = await query_items(
            USER_PROFILES_CONTAINER,
            query,
            parameters=[{"name": "@ids", "value": unique_ids}],
        )
        numbers: dict[str, Optional[int]] = {uid: None for uid in unique_ids}
        for row in results:
            numbers[row["id"]] = row.get("nagrik_number")
        return numbers

    async def iter_all(self) -> AsyncIterator[UserProfileDocument]:
        """Stream every profile using the container's default paging."""
        async for data in iter_items(USER_PROFILES_CONTAINER, "SELECT * FROM c"):
            yield UserProfileDocument(**data)

    async def count(self) -> int:
        return await query_count(USER_PROFILES_CONTAINER, "SELECT VALUE COUNT(1) FROM c")

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create(
        self,
        user_id: str,
        email: Optional[str],
        nagrik_number: Optional[int] = None,
        referral_code: Optional[str] = None,
    ) -> UserProfileDocument:
        """
        Create a profile for a first-time sign-in.

        Raises DocumentConflictError if the profile already exists.
        """
        now = datetime.now(timezone.utc)
        profile = UserProfileDocument(
            id=user_id,
            email=email.lower() if email else None,
            nagrik_number=nagrik_number,
            referral_code=referral_code,
            created_at=now,
            updated_at=now,
        )
        data = await create_item(USER_PROFILES_CONTAINER, profile.model_dump(mode="json"))
        logger.info(f"Created profile with nagrik number {nagrik_number}")
        return UserProfileDocument(**data)

    async def update(self, profile: UserProfileDocument) -> UserProfileDocument:
        """Replace a profile, guarded by the etag it was read with."""
        profile.updated_at = datetime.now(timezone.utc)
        data = await replace_item(
            USER_PROFILES_CONTAINER,
            profile.model_dump(mode="json"),
            etag=profile.etag,
        )
        return UserProfileDocument(**data)

    async def _set_once(
        self, user_id: str, field: str, value: object, predicate: Optional[str] = None
    ) -> UserProfileDocument:
        data = await patch_item(
            USER_PROFILES_CONTAINER,
            user_id,
            partition_key=user_id,
            operations=[
                {"op": "set", "path": f"/{field}", "value": value},
                {"op": "set", "path": "/updated_at", "value": datetime.now(timezone.utc).isoformat()},
            ],
            filter_predicate=predicate or UNSET_PREDICATE.format(field=field),
        )
        return UserProfileDocument(**data)

    async def set_nagrik_number(self, user_id: str, nagrik_number: int) -> UserProfileDocument:
        """
        Merge-update a profile's nagrik number.

        A stored 0 is treated as no number. Raises PreconditionFailedError if
        the profile already has one, and NotFoundError if the profile is gone.
        """
        return await self._set_once(user_id, "nagrik_number", nagrik_number, NAGRIK_UNSET_PREDICATE)

    async def set_constituency(self, user_id: str, constituency_id: int) -> UserProfileDocument:
        """Set the constituency once; PreconditionFailedError if already chosen."""
        return await self._set_once(user_id, "constituency_id", constituency_id)

    async def add_engagement(self, user_id: str, points: int) -> UserProfileDocument:
        """Atomically add engagement points and return the updated profile."""
        data = await patch_item(
            USER_PROFILES_CONTAINER,
            user_id,
            partition_key=user_id,
            operations=[{"op": "incr", "path": "/engagement_score", "value": points}],
        )
        return UserProfileDocument(**data)

    async def set_tier(self, user_id: str, tier_level: int) -> None:
        await patch_item(
            USER_PROFILES_CONTAINER,
            user_id,
            partition_key=user_id,
            operations=[{"op": "set", "path": "/tier_level", "value": tier_level}],
        )

    async def delete(self, user_id: str) -> bool:
        """Delete a profile (admin-initiated only)."""
        profile = await self.get_by_id(user_id)
        if not profile:
            return False
        try:
            await delete_item(USER_PROFILES_CONTAINER, user_id, partition_key=user_id)
        except NotFoundError:
            return False
        logger.info(f"Deleted profile {user_id}")
        return True


