"""
User profile lifecycle.

Creates profiles on first sign-in (with a nagrik number and referral code),
records the one-time constituency choice, and tracks engagement points and
tiers.
"""

import secrets
import string
from enum import Enum
from typing import Optional

import structlog

from core.config import settings
from core.exceptions import (
    ConstituencyAlreadySetError,
    DocumentConflictError,
    InvalidConstituencyError,
    NotFoundError,
    PreconditionFailedError,
)
from models.cosmos_documents import UserProfileDocument

logger = structlog.get_logger(__name__)

REFERRAL_CODE_LENGTH = 8
REFERRAL_ALPHABET = string.ascii_uppercase + string.digits


class EngagementAction(str, Enum):
    POST = "post"
    COMMENT = "comment"
    VOTE = "vote"
    SHARE = "share"
    LIKE = "like"


ENGAGEMENT_POINTS = {
    EngagementAction.POST: 10,
    EngagementAction.COMMENT: 5,
    EngagementAction.VOTE: 3,
    EngagementAction.SHARE: 2,
    EngagementAction.LIKE: 1,
}

# (minimum score, tier), highest first
TIER_THRESHOLDS = [(100, 4), (50, 3), (20, 2)]


def generate_referral_code() -> str:
    return "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))


def tier_for_score(score: int) -> int:
    """Tier 1 below 20 points, then 2, 3 and 4 at 20, 50 and 100."""
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return 1


class ProfileService:
    """Profile operations over the user repository and the nagrik allocator."""

    def __init__(self, user_repo, allocator, constituency_count: Optional[int] = None):
        self.user_repo = user_repo
        self.allocator = allocator
        self.constituency_count = (
            constituency_count if constituency_count is not None else settings.CONSTITUENCY_COUNT
        )

    async def get_or_create(self, user_id: str, email: Optional[str] = None) -> UserProfileDocument:
        """
        Return the user's profile, creating it on first sign-in.

        Two concurrent first sign-ins for the same uid create one profile;
        the loser gives back its claimed number and returns the winner's profile.
        """
        profile = await self.user_repo.get_by_id(user_id)
        if profile is not None:
            return profile

        nagrik_number = await self.allocator.assign(user_id)
        try:
            profile = await self.user_repo.create(
                user_id,
                email,
                nagrik_number=nagrik_number,
                referral_code=generate_referral_code(),
            )
        except DocumentConflictError:
            await self.allocator.nagrik_repo.release(nagrik_number)
            existing = await self.user_repo.get_by_id(user_id)
            if existing is None:
                raise
            return existing

        logger.info("profile_created", nagrik_number=nagrik_number)
        return profile

    async def set_constituency(self, user_id: str, constituency_id: int) -> UserProfileDocument:
        """
        Record the user's constituency. Can only be done once.

        Raises:
            InvalidConstituencyError: Id outside 1..CONSTITUENCY_COUNT.
            ConstituencyAlreadySetError: A constituency was already chosen.
        """
        if not 1 <= constituency_id <= self.constituency_count:
            raise InvalidConstituencyError(f"Unknown constituency {constituency_id}")

        try:
            profile = await self.user_repo.set_constituency(user_id, constituency_id)
        except PreconditionFailedError as e:
            raise ConstituencyAlreadySetError("Constituency has already been set") from e

        logger.info("constituency_set", constituency_id=constituency_id)
        return profile

    async def record_engagement(self, user_id: str, action: EngagementAction) -> UserProfileDocument:
        """Add the points for an action and move the user up a tier when earned."""
        points = ENGAGEMENT_POINTS[EngagementAction(action)]
        profile = await self.user_repo.add_engagement(user_id, points)

        tier = tier_for_score(profile.engagement_score)
        if tier != profile.tier_level:
            await self.user_repo.set_tier(user_id, tier)
            profile.tier_level = tier
            logger.info("tier_changed", tier_level=tier)
        return profile

    async def get_profile(self, user_id: str) -> UserProfileDocument:
        profile = await self.user_repo.get_by_id(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    async def delete_profile(self, user_id: str) -> bool:
        """
        Delete a profile.

        The nagrik-lookup entry is kept so the number is never handed out again.
        """
        deleted = await self.user_repo.delete(user_id)
        if deleted:
            logger.info("profile_deleted")
        return deleted
