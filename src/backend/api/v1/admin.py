"""
Admin endpoints for system management.

These endpoints require admin authentication and are used for:
- Constituency score health checks and repair
- Discussion moderation
- Nagrik number verification and backfill
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from api.deps import (
    get_allocator,
    get_current_admin_user,
    get_discussion_service,
    get_ledger_service,
    get_profile_service,
)
from core.exceptions import InvalidConstituencyError, LedgerContentionError, NotFoundError
from models.cosmos_documents import PostStatus, UserProfileDocument
from repositories.provider import get_user_repository
from schemas.converters import scores_to_schema
from schemas.discussion import Post, PostStatusEnum, PostStatusUpdate
from schemas.ledger import ConstituencyScores
from services.discussion_service import DiscussionService
from services.ledger_service import ConstituencyLedgerService
from services.migration_service import NagrikMigrationService
from services.nagrik_service import NagrikNumberAllocator
from services.profile_service import ProfileService

logger = structlog.get_logger(__name__)

router = APIRouter()


class ScoreHealthResult(BaseModel):
    """Consistency of the constituency score documents."""

    healthy: bool
    total_documents: int
    valid: int
    invalid_ids: list[int]
    missing_ids: list[int]
    inconsistent_ids: list[int]


class InitializeResult(BaseModel):
    created_count: int
    created_ids: list[int]


class SatisfactionCorrection(BaseModel):
    satisfaction_yes: int = Field(..., ge=0)
    satisfaction_no: int = Field(..., ge=0)


class NagrikReport(BaseModel):
    """Counts only; never lists users."""

    migrated: int
    skipped: int
    indexed: int
    errors: int
    total: int
    with_number: int
    without_number: int
    duplicates: list[int]
    dry_run: bool
    ok: bool


# =============================================================================
# Constituency Scores
# =============================================================================


@router.get("/scores/health", response_model=ScoreHealthResult)
async def check_score_health(
    _admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
) -> ScoreHealthResult:
    report = await ledger.health_check()
    return ScoreHealthResult(
        healthy=report.healthy,
        total_documents=report.total_documents,
        valid=report.valid,
        invalid_ids=report.invalid_ids,
        missing_ids=report.missing_ids,
        inconsistent_ids=report.inconsistent_ids,
    )


@router.post("/scores/initialize", response_model=InitializeResult)
async def initialize_scores(
    _admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
) -> InitializeResult:
    """Create zeroed score documents for constituencies that have none."""
    created = await ledger.initialize_missing()
    return InitializeResult(created_count=len(created), created_ids=created)


@router.put("/scores/{constituency_id}/satisfaction", response_model=ConstituencyScores)
async def correct_satisfaction(
    constituency_id: int,
    body: SatisfactionCorrection,
    admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
) -> ConstituencyScores:
    """
    Overwrite a constituency's satisfaction counters.

    This is the only way a counter can go down.
    """
    try:
        scores = await ledger.correct_satisfaction(constituency_id, body.satisfaction_yes, body.satisfaction_no)
    except InvalidConstituencyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Constituency not found")
    except LedgerContentionError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Scores busy, retry")

    logger.warning("admin_score_correction", admin_nagrik=admin.nagrik_number, constituency_id=constituency_id)
    return scores_to_schema(scores)


# =============================================================================
# Moderation
# =============================================================================


@router.get("/posts", response_model=list[Post])
async def list_posts_by_status(
    _admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    post_status: PostStatusEnum = Query(PostStatusEnum.UNDER_REVIEW, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    discussions: DiscussionService = Depends(get_discussion_service),
) -> list[Post]:
    return await discussions.list_posts(limit=limit, offset=offset, status=PostStatus(post_status.value))


@router.put("/posts/{post_id}/status", response_model=Post)
async def set_post_status(
    post_id: str,
    body: PostStatusUpdate,
    _admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    discussions: DiscussionService = Depends(get_discussion_service),
) -> Post:
    try:
        return await discussions.set_post_status(post_id, PostStatus(body.status.value))
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")


# =============================================================================
# Users and Nagrik Numbers
# =============================================================================


@router.get("/nagrik/report", response_model=NagrikReport)
async def nagrik_report(
    _admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    user_repo=Depends(get_user_repository),
    allocator: NagrikNumberAllocator = Depends(get_allocator),
) -> NagrikReport:
    """Verify that every profile has a unique nagrik number (read-only)."""
    report = await NagrikMigrationService(user_repo, allocator).run(verify_only=True)
    return NagrikReport(**report.__dict__, ok=report.ok)


@router.post("/nagrik/backfill", response_model=NagrikReport)
async def nagrik_backfill(
    _admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    dry_run: bool = Query(True),
    user_repo=Depends(get_user_repository),
    allocator: NagrikNumberAllocator = Depends(get_allocator),
) -> NagrikReport:
    """Assign numbers to profiles that lack one, then verify."""
    report = await NagrikMigrationService(user_repo, allocator).run(dry_run=dry_run)
    return NagrikReport(**report.__dict__, ok=report.ok)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    _admin: Annotated[UserProfileDocument, Depends(get_current_admin_user)],
    profile_service: ProfileService = Depends(get_profile_service),
) -> None:
    if not await profile_service.delete_profile(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
