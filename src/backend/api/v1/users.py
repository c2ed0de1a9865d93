"""
User profile endpoints.

The signed-in user sees their own profile (including email); everyone else
sees only the nagrik label.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_current_user, get_language, get_profile_service
from core.exceptions import ConstituencyAlreadySetError, InvalidConstituencyError, NotFoundError
from core.nagrik import Language
from models.cosmos_documents import UserProfileDocument
from repositories.provider import get_nagrik_repository
from schemas.converters import profile_to_public_schema, profile_to_user_schema
from schemas.user import (
    ConstituencySelect,
    EngagementRequest,
    EngagementResponse,
    PublicProfileResponse,
    UserResponse,
)
from services.profile_service import EngagementAction, ProfileService

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    language: Annotated[Language, Depends(get_language)],
) -> UserResponse:
    """Get the current user's profile (created on first sign-in)."""
    return profile_to_user_schema(current_user, language)


@router.put("/me/constituency", response_model=UserResponse)
async def set_constituency(
    body: ConstituencySelect,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    language: Annotated[Language, Depends(get_language)],
    profile_service: ProfileService = Depends(get_profile_service),
) -> UserResponse:
    """Choose a constituency during onboarding. Can only be done once."""
    try:
        profile = await profile_service.set_constituency(current_user.id, body.constituency_id)
    except InvalidConstituencyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Constituency not found")
    except ConstituencyAlreadySetError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Constituency has already been set",
        )
    return profile_to_user_schema(profile, language)


@router.post("/me/engagement", response_model=EngagementResponse)
async def record_engagement(
    body: EngagementRequest,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    profile_service: ProfileService = Depends(get_profile_service),
) -> EngagementResponse:
    """Record a share, the only action the server cannot observe itself."""
    profile = await profile_service.record_engagement(current_user.id, EngagementAction(body.action))
    return EngagementResponse(engagement_score=profile.engagement_score, tier_level=profile.tier_level)


@router.get("/nagrik/{nagrik_number}", response_model=PublicProfileResponse)
async def get_public_profile(
    nagrik_number: int,
    language: Annotated[Language, Depends(get_language)],
    nagrik_repo=Depends(get_nagrik_repository),
    profile_service: ProfileService = Depends(get_profile_service),
) -> PublicProfileResponse:
    """Public view of a citizen by nagrik number."""
    owner = await nagrik_repo.get_owner(nagrik_number)
    if owner is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Nagrik not found")
    try:
        profile = await profile_service.get_profile(owner)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Nagrik not found")
    return profile_to_public_schema(profile, language)
