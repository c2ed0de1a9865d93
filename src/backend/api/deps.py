"""
Shared dependencies for API endpoints.

Includes:
- Identity token authentication (profile created on first sign-in)
- Service construction over the configured repositories
- Display language selection
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.exceptions import NagrikAllocationError
from core.nagrik import Language, parse_language
from core.security import decode_identity_token
from models.cosmos_documents import UserProfileDocument
from repositories.provider import (
    get_discussion_repository,
    get_ledger_repository,
    get_nagrik_repository,
    get_user_repository,
)
from services.constituency_data import ConstituencyDataset, get_constituency_dataset
from services.discussion_service import DiscussionService
from services.ledger_service import ConstituencyLedgerService
from services.nagrik_service import NagrikNumberAllocator
from services.profile_service import ProfileService

logger = structlog.get_logger(__name__)

# Security schemes
security = HTTPBearer()
security_optional = HTTPBearer(auto_error=False)


# =============================================================================
# Services
# =============================================================================


async def get_allocator(
    user_repo=Depends(get_user_repository),
    nagrik_repo=Depends(get_nagrik_repository),
) -> NagrikNumberAllocator:
    return NagrikNumberAllocator(user_repo, nagrik_repo)


async def get_profile_service(
    user_repo=Depends(get_user_repository),
    allocator: NagrikNumberAllocator = Depends(get_allocator),
) -> ProfileService:
    return ProfileService(user_repo, allocator)


async def get_ledger_service(ledger_repo=Depends(get_ledger_repository)) -> ConstituencyLedgerService:
    return ConstituencyLedgerService(ledger_repo)


async def get_discussion_service(
    discussion_repo=Depends(get_discussion_repository),
    user_repo=Depends(get_user_repository),
) -> DiscussionService:
    return DiscussionService(discussion_repo, user_repo)


def get_dataset() -> ConstituencyDataset:
    return get_constituency_dataset()


def get_language(
    request: Request,
    lang: Annotated[Optional[str], Query(description="Display language: en or hi")] = None,
) -> Language:
    """Language from `?lang=`, then Accept-Language, defaulting to Hindi."""
    if lang:
        return parse_language(lang)
    accept = request.headers.get("Accept-Language", "")
    primary = accept.split(",")[0].split("-")[0].strip() if accept else None
    return parse_language(primary)


# =============================================================================
# User Authentication (identity token)
# =============================================================================


def _credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    profile_service: ProfileService = Depends(get_profile_service),
) -> UserProfileDocument:
    """
    Validate the identity token and return the caller's profile.

    The profile (and its nagrik number) is created on first sign-in.

    Raises:
        HTTPException: If the token is invalid or no number could be assigned.
    """
    payload = decode_identity_token(credentials.credentials)
    if payload is None:
        raise _credentials_error("Invalid or expired token")

    try:
        return await profile_service.get_or_create(payload["sub"], payload.get("email"))
    except NagrikAllocationError:
        logger.error("profile_creation_failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not create your profile, please try again",
        )


async def get_current_user_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_optional)],
    user_repo=Depends(get_user_repository),
) -> UserProfileDocument | None:
    """
    The caller's existing profile, or None for anonymous or invalid tokens.

    Never creates a profile.
    """
    if credentials is None:
        return None
    payload = decode_identity_token(credentials.credentials)
    if payload is None:
        return None
    return await user_repo.get_by_id(payload["sub"])


async def get_current_admin_user(
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
) -> UserProfileDocument:
    """
    Ensure the current user is an admin.

    Raises:
        HTTPException: If user is not an admin.
    """
    if not current_user.is_admin:
        logger.warning("non_admin_access_attempt", nagrik_number=current_user.nagrik_number)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
