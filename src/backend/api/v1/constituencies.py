"""
Constituency endpoints.

Candidate reference data with live scores, and the once-per-user
satisfaction vote and department ratings.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import (
    get_current_user,
    get_dataset,
    get_language,
    get_ledger_service,
    get_profile_service,
)
from core.exceptions import (
    AlreadyVotedError,
    InvalidConstituencyError,
    InvalidRatingError,
    LedgerContentionError,
)
from core.nagrik import Language
from models.cosmos_documents import UserProfileDocument
from schemas.converters import scores_to_schema
from schemas.ledger import (
    ConstituencyListItem,
    ConstituencyScores,
    ConstituencySummary,
    DepartmentRatingsRequest,
    QuestionnaireRequest,
    SatisfactionVoteRequest,
    SubmissionResponse,
    SubmissionStatusResponse,
)
from services.constituency_data import ConstituencyDataset
from services.ledger_service import ConstituencyLedgerService
from services.profile_service import EngagementAction, ProfileService

logger = structlog.get_logger(__name__)

router = APIRouter()


def _ledger_error_to_http(error: Exception) -> HTTPException:
    if isinstance(error, AlreadyVotedError):
        logger.info("duplicate_submission_rejected", constituency_id=error.constituency_id, part=error.part)
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already voted")
    if isinstance(error, InvalidRatingError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    if isinstance(error, InvalidConstituencyError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Constituency not found")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Too many submissions at once, please try again",
    )


LEDGER_ERRORS = (AlreadyVotedError, InvalidRatingError, InvalidConstituencyError, LedgerContentionError)


@router.get("", response_model=list[ConstituencyListItem])
async def list_constituencies(
    language: Annotated[Language, Depends(get_language)],
    dataset: ConstituencyDataset = Depends(get_dataset),
) -> list[ConstituencyListItem]:
    """All constituencies with their area names."""
    return [ConstituencyListItem(**item) for item in dataset.list_constituencies(language)]


@router.get("/scores", response_model=list[ConstituencyScores])
async def list_scores(
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
) -> list[ConstituencyScores]:
    """Scores for every constituency, ordered by id."""
    return [scores_to_schema(s) for s in await ledger.list_scores()]


@router.get("/{constituency_id}", response_model=ConstituencySummary)
async def get_constituency(
    constituency_id: int,
    language: Annotated[Language, Depends(get_language)],
    dataset: ConstituencyDataset = Depends(get_dataset),
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
) -> ConstituencySummary:
    """Candidate record and live scores for one constituency."""
    candidate = dataset.get_candidate(constituency_id, language)
    if candidate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Constituency not found")

    try:
        scores = await ledger.get_scores(constituency_id)
    except InvalidConstituencyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Constituency not found")

    return ConstituencySummary(
        constituency_id=constituency_id,
        language=language.value,
        candidate=candidate,
        departments=dataset.department_names(constituency_id, language),
        scores=scores_to_schema(scores),
    )


@router.get("/{constituency_id}/submission-status", response_model=SubmissionStatusResponse)
async def get_submission_status(
    constituency_id: int,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
) -> SubmissionStatusResponse:
    """What the current user has already submitted for this constituency."""
    try:
        submitted = await ledger.has_submitted(current_user.id, constituency_id)
    except InvalidConstituencyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Constituency not found")
    return SubmissionStatusResponse(
        constituency_id=constituency_id,
        has_voted=submitted.voted,
        has_rated=submitted.rated,
        satisfaction_vote=submitted.satisfaction_vote,
        manifesto_score=submitted.manifesto_score,
    )


@router.post(
    "/{constituency_id}/satisfaction-vote",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_satisfaction_vote(
    constituency_id: int,
    body: SatisfactionVoteRequest,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
    profile_service: ProfileService = Depends(get_profile_service),
) -> SubmissionResponse:
    """
    Cast the yes/no satisfaction vote.

    Requirements:
    - User must be authenticated (enforced by dependency)
    - One vote per user per constituency, never editable
    """
    try:
        await ledger.submit_satisfaction_vote(current_user.id, constituency_id, body.vote)
    except LEDGER_ERRORS as e:
        raise _ledger_error_to_http(e)

    await profile_service.record_engagement(current_user.id, EngagementAction.VOTE)
    return SubmissionResponse(success=True, message="Vote recorded")


@router.post(
    "/{constituency_id}/department-ratings",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_department_ratings(
    constituency_id: int,
    body: DepartmentRatingsRequest,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
) -> SubmissionResponse:
    """Rate each department from 1 to 5; the mean feeds the manifesto average."""
    try:
        score = await ledger.submit_department_ratings(current_user.id, constituency_id, body.ratings)
    except LEDGER_ERRORS as e:
        raise _ledger_error_to_http(e)

    return SubmissionResponse(success=True, message="Ratings recorded", manifesto_score=round(score, 2))


@router.post(
    "/{constituency_id}/questionnaire",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_questionnaire(
    constituency_id: int,
    body: QuestionnaireRequest,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    ledger: ConstituencyLedgerService = Depends(get_ledger_service),
    profile_service: ProfileService = Depends(get_profile_service),
) -> SubmissionResponse:
    """Submit the satisfaction vote and department ratings together."""
    try:
        score = await ledger.submit_questionnaire(current_user.id, constituency_id, body.vote, body.ratings)
    except LEDGER_ERRORS as e:
        raise _ledger_error_to_http(e)

    await profile_service.record_engagement(current_user.id, EngagementAction.VOTE)
    return SubmissionResponse(success=True, message="Questionnaire recorded", manifesto_score=round(score, 2))
