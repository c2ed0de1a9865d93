"""
Tests for the profile lifecycle.
"""

import asyncio

import pytest

from core.exceptions import ConstituencyAlreadySetError, InvalidConstituencyError, NotFoundError
from services.profile_service import (
    EngagementAction,
    ProfileService,
    generate_referral_code,
    tier_for_score,
)


@pytest.fixture
def profiles(user_repo, allocator) -> ProfileService:
    return ProfileService(user_repo, allocator, constituency_count=243)


@pytest.mark.unit
class TestHelpers:
    def test_referral_code_format(self) -> None:
        code = generate_referral_code()
        assert len(code) == 8
        assert code.isalnum() and code.upper() == code

    @pytest.mark.parametrize(
        "score,tier",
        [(0, 1), (19, 1), (20, 2), (49, 2), (50, 3), (99, 3), (100, 4), (5000, 4)],
    )
    def test_tier_for_score(self, score, tier) -> None:
        assert tier_for_score(score) == tier


@pytest.mark.unit
class TestGetOrCreate:
    """First sign-in creates a numbered profile."""

    async def test_creates_profile_with_number(self, profiles, user_repo, nagrik_repo) -> None:
        profile = await profiles.get_or_create("uid-1", "Citizen@Example.com")

        assert profile.nagrik_number == 1001
        assert profile.referral_code
        assert "uid-1" in user_repo.profiles
        assert nagrik_repo.lookups[1001] == "uid-1"

    async def test_returns_existing_profile(self, profiles, user_repo, nagrik_repo) -> None:
        user_repo.add("uid-1", nagrik_number=1500)

        profile = await profiles.get_or_create("uid-1")

        assert profile.nagrik_number == 1500
        assert nagrik_repo.counter is None

    async def test_concurrent_first_sign_in_creates_one_profile(self, profiles, user_repo, nagrik_repo) -> None:
        results = await asyncio.gather(*(profiles.get_or_create("uid-1") for _ in range(3)))

        assert len({p.nagrik_number for p in results}) == 1
        assert len(user_repo.profiles) == 1
        # Losers gave their numbers back
        assert list(nagrik_repo.lookups.values()) == ["uid-1"]


@pytest.mark.unit
class TestConstituency:
    async def test_set_once(self, profiles, user_repo) -> None:
        user_repo.add("uid-1", nagrik_number=1001)

        profile = await profiles.set_constituency("uid-1", 17)
        assert profile.constituency_id == 17

        with pytest.raises(ConstituencyAlreadySetError):
            await profiles.set_constituency("uid-1", 18)
        assert user_repo.profiles["uid-1"].constituency_id == 17

    @pytest.mark.parametrize("constituency_id", [0, 244])
    async def test_rejects_unknown(self, profiles, user_repo, constituency_id) -> None:
        user_repo.add("uid-1", nagrik_number=1001)
        with pytest.raises(InvalidConstituencyError):
            await profiles.set_constituency("uid-1", constituency_id)


@pytest.mark.unit
class TestEngagement:
    async def test_points_and_tier(self, profiles, user_repo) -> None:
        user_repo.add("uid-1", nagrik_number=1001, engagement_score=15)

        profile = await profiles.record_engagement("uid-1", EngagementAction.POST)

        assert profile.engagement_score == 25
        assert profile.tier_level == 2
        assert user_repo.profiles["uid-1"].tier_level == 2

    async def test_like_worth_one_point(self, profiles, user_repo) -> None:
        user_repo.add("uid-1", nagrik_number=1001)
        profile = await profiles.record_engagement("uid-1", "like")
        assert profile.engagement_score == 1
        assert profile.tier_level == 1


@pytest.mark.unit
class TestProfileReadsAndDeletes:
    async def test_get_profile_missing(self, profiles) -> None:
        with pytest.raises(NotFoundError):
            await profiles.get_profile("nobody")

    async def test_delete_keeps_number_reserved(self, profiles, user_repo, nagrik_repo) -> None:
        await profiles.get_or_create("uid-1")

        assert await profiles.delete_profile("uid-1") is True
        assert "uid-1" not in user_repo.profiles
        assert nagrik_repo.lookups[1001] == "uid-1"

        replacement = await profiles.get_or_create("uid-2")
        assert replacement.nagrik_number == 1002

    async def test_delete_missing(self, profiles) -> None:
        assert await profiles.delete_profile("nobody") is False
