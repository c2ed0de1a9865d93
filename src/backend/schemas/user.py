"""
User-related Pydantic schemas.

Public responses carry the nagrik label only; email is returned to the
profile owner and nobody else.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PublicProfileResponse(BaseModel):
    """Schema for another user's profile (public-safe)."""

    nagrik_number: Optional[int] = None
    display_name: str
    constituency_id: Optional[int] = None
    tier_level: int = 1

    model_config = {"from_attributes": True}


class UserResponse(PublicProfileResponse):
    """Schema for the signed-in user's own profile."""

    id: str
    email: Optional[str] = None
    display_name_en: str
    display_name_hi: str
    first_vote_year: Optional[int] = None
    referral_code: Optional[str] = None
    engagement_score: int = 0
    is_admin: bool = False
    created_at: Optional[datetime] = None


class ConstituencySelect(BaseModel):
    """One-time constituency choice during onboarding."""

    constituency_id: int = Field(..., ge=1)


class EngagementRequest(BaseModel):
    # Other actions are credited by the routes that perform them
    action: str = Field(..., pattern="^share$")


class EngagementResponse(BaseModel):
    engagement_score: int
    tier_level: int
