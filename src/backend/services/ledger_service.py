"""
Constituency vote and rating ledger.

Records each user's satisfaction vote and department ratings for a
constituency at most once, and keeps the constituency's aggregate scores
consistent with the recorded submissions. Every commit writes the user's
submission marker and the score change in a single transactional batch.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional

import structlog

from core.config import settings
from core.exceptions import (
    AlreadyVotedError,
    DocumentConflictError,
    InvalidConstituencyError,
    InvalidRatingError,
    LedgerContentionError,
    NotFoundError,
    PreconditionFailedError,
)
from models.cosmos_documents import (
    ConstituencyScoreDocument,
    QuestionnaireSubmissionDocument,
    constituency_key,
    submission_id,
)

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


# ============================================================================
# Pure helpers
# ============================================================================


def validate_ratings(ratings: Optional[Mapping[str, object]]) -> dict[str, int]:
    """
    Check a department -> rating map and return it with trimmed names.

    Every rating must be an integer from 1 to 5; a missing, zero, or
    non-integer rating rejects the whole submission.
    """
    if not ratings:
        raise InvalidRatingError("At least one department rating is required")

    cleaned: dict[str, int] = {}
    for name, value in ratings.items():
        if not isinstance(name, str) or not name.strip():
            raise InvalidRatingError("Department name must not be blank")
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRatingError(f"Rating for '{name}' must be an integer")
        if not MIN_RATING <= value <= MAX_RATING:
            raise InvalidRatingError(f"Rating for '{name}' must be between {MIN_RATING} and {MAX_RATING}")
        cleaned[name.strip()] = value
    return cleaned


def manifesto_score(ratings: Mapping[str, int]) -> float:
    """Mean of the department ratings."""
    return sum(ratings.values()) / len(ratings)


def running_mean(average: float, count: int, score: float) -> tuple[float, int]:
    """Fold one more score into a mean over `count` scores."""
    new_count = count + 1
    return average + (score - average) / new_count, new_count


@dataclass
class SubmissionStatus:
    """What a user has already submitted for a constituency."""

    voted: bool = False
    rated: bool = False
    satisfaction_vote: Optional[bool] = None
    manifesto_score: Optional[float] = None


@dataclass
class ScoreHealthReport:
    """Consistency report over all constituency score documents."""

    total_documents: int = 0
    valid: int = 0
    invalid_ids: list[int] = field(default_factory=list)
    missing_ids: list[int] = field(default_factory=list)
    inconsistent_ids: list[int] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not (self.invalid_ids or self.missing_ids or self.inconsistent_ids)


# ============================================================================
# Ledger Service
# ============================================================================


class ConstituencyLedgerService:
    """Vote and rating ledger over a ledger repository."""

    def __init__(
        self,
        ledger_repo,
        max_retries: Optional[int] = None,
        constituency_count: Optional[int] = None,
    ):
        self.ledger_repo = ledger_repo
        self.max_retries = max_retries if max_retries is not None else settings.LEDGER_MAX_RETRIES
        self.constituency_count = (
            constituency_count if constituency_count is not None else settings.CONSTITUENCY_COUNT
        )

    def _check_constituency(self, constituency_id: int) -> None:
        if not 1 <= constituency_id <= self.constituency_count:
            raise InvalidConstituencyError(f"Unknown constituency {constituency_id}")

    @staticmethod
    def _marker_for(
        marker: Optional[QuestionnaireSubmissionDocument],
        user_id: str,
        constituency_id: int,
    ) -> tuple[QuestionnaireSubmissionDocument, bool]:
        if marker is not None:
            marker.updated_at = datetime.now(timezone.utc)
            return marker, False
        return (
            QuestionnaireSubmissionDocument(
                id=submission_id(user_id),
                constituency_key=constituency_key(constituency_id),
                constituency_id=constituency_id,
                user_id=user_id,
            ),
            True,
        )

    # ------------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------------

    async def submit_satisfaction_vote(self, user_id: str, constituency_id: int, vote: bool) -> None:
        """
        Record a yes/no satisfaction vote.

        Raises:
            AlreadyVotedError: The user already voted for this constituency.
            LedgerContentionError: The marker kept changing underneath us.
        """
        self._check_constituency(constituency_id)
        await self.ledger_repo.ensure_scores(constituency_id)

        for attempt in range(1, self.max_retries + 1):
            existing = await self.ledger_repo.get_submission(user_id, constituency_id)
            if existing is not None and existing.has_vote:
                raise AlreadyVotedError(user_id, constituency_id, part="vote")

            marker, is_new = self._marker_for(existing, user_id, constituency_id)
            marker.satisfaction_vote = vote
            try:
                await self.ledger_repo.commit_vote(marker, is_new, vote)
            except (DocumentConflictError, PreconditionFailedError):
                # A concurrent submission for this user landed first; re-evaluate
                logger.info("satisfaction_vote_retry", constituency_id=constituency_id, attempt=attempt)
                continue
            except NotFoundError:
                await self.ledger_repo.ensure_scores(constituency_id)
                continue

            logger.info("satisfaction_vote_recorded", constituency_id=constituency_id)
            return

        raise LedgerContentionError(f"Vote for constituency {constituency_id} could not be committed")

    async def submit_department_ratings(
        self,
        user_id: str,
        constituency_id: int,
        ratings: Mapping[str, object],
    ) -> float:
        """
        Record department ratings and fold their mean into the manifesto average.

        Returns the submitted manifesto score.

        Raises:
            InvalidRatingError: Ratings failed validation (nothing is read or written).
            AlreadyVotedError: The user already rated this constituency.
            LedgerContentionError: Optimistic retries were exhausted.
        """
        cleaned = validate_ratings(ratings)
        self._check_constituency(constituency_id)
        score = manifesto_score(cleaned)

        for attempt in range(1, self.max_retries + 1):
            existing = await self.ledger_repo.get_submission(user_id, constituency_id)
            if existing is not None and existing.has_ratings:
                raise AlreadyVotedError(user_id, constituency_id, part="ratings")

            scores = await self.ledger_repo.ensure_scores(constituency_id)
            marker, is_new = self._marker_for(existing, user_id, constituency_id)
            marker.department_ratings = cleaned
            marker.manifesto_score = score
            scores.manifesto_average, scores.ratings_count = running_mean(
                scores.manifesto_average, scores.ratings_count, score
            )
            try:
                await self.ledger_repo.commit_submission(marker, is_new, scores)
            except (DocumentConflictError, PreconditionFailedError):
                logger.info("department_ratings_retry", constituency_id=constituency_id, attempt=attempt)
                continue

            logger.info(
                "department_ratings_recorded",
                constituency_id=constituency_id,
                manifesto_score=round(score, 2),
            )
            return score

        logger.warning("ledger_contention", constituency_id=constituency_id, retries=self.max_retries)
        raise LedgerContentionError(f"Ratings for constituency {constituency_id} could not be committed")

    async def submit_questionnaire(
        self,
        user_id: str,
        constituency_id: int,
        vote: bool,
        ratings: Mapping[str, object],
    ) -> float:
        """
        Record a satisfaction vote and department ratings together.

        Either both parts are recorded or neither is. Rejected if the user
        already submitted either part.
        """
        cleaned = validate_ratings(ratings)
        self._check_constituency(constituency_id)
        score = manifesto_score(cleaned)

        for attempt in range(1, self.max_retries + 1):
            existing = await self.ledger_repo.get_submission(user_id, constituency_id)
            if existing is not None and (existing.has_vote or existing.has_ratings):
                raise AlreadyVotedError(user_id, constituency_id, part="questionnaire")

            scores = await self.ledger_repo.ensure_scores(constituency_id)
            marker, is_new = self._marker_for(existing, user_id, constituency_id)
            marker.satisfaction_vote = vote
            marker.department_ratings = cleaned
            marker.manifesto_score = score

            if vote:
                scores.satisfaction_yes += 1
            else:
                scores.satisfaction_no += 1
            scores.satisfaction_total += 1
            scores.manifesto_average, scores.ratings_count = running_mean(
                scores.manifesto_average, scores.ratings_count, score
            )
            try:
                await self.ledger_repo.commit_submission(marker, is_new, scores)
            except (DocumentConflictError, PreconditionFailedError):
                logger.info("questionnaire_retry", constituency_id=constituency_id, attempt=attempt)
                continue

            logger.info("questionnaire_recorded", constituency_id=constituency_id)
            return score

        logger.warning("ledger_contention", constituency_id=constituency_id, retries=self.max_retries)
        raise LedgerContentionError(f"Questionnaire for constituency {constituency_id} could not be committed")

    # ------------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------------

    async def has_submitted(self, user_id: str, constituency_id: int) -> SubmissionStatus:
        self._check_constituency(constituency_id)
        marker = await self.ledger_repo.get_submission(user_id, constituency_id)
        if marker is None:
            return SubmissionStatus()
        return SubmissionStatus(
            voted=marker.has_vote,
            rated=marker.has_ratings,
            satisfaction_vote=marker.satisfaction_vote,
            manifesto_score=marker.manifesto_score,
        )

    async def get_scores(self, constituency_id: int) -> ConstituencyScoreDocument:
        """Scores for a constituency; zeroed when nobody has submitted yet."""
        self._check_constituency(constituency_id)
        scores = await self.ledger_repo.get_scores(constituency_id)
        return scores or ConstituencyScoreDocument.empty(constituency_id)

    async def list_scores(self) -> list[ConstituencyScoreDocument]:
        return await self.ledger_repo.list_scores()

    # ------------------------------------------------------------------------
    # Maintenance (admin)
    # ------------------------------------------------------------------------

    async def health_check(self) -> ScoreHealthReport:
        """Find score documents with out-of-range ids or broken counters, and missing ones."""
        documents = await self.ledger_repo.list_scores()
        report = ScoreHealthReport(total_documents=len(documents))
        present: set[int] = set()

        for doc in documents:
            if not 1 <= doc.constituency_id <= self.constituency_count:
                report.invalid_ids.append(doc.constituency_id)
                continue
            present.add(doc.constituency_id)
            counts = (doc.satisfaction_yes, doc.satisfaction_no, doc.ratings_count)
            if min(counts) < 0 or doc.satisfaction_yes + doc.satisfaction_no != doc.satisfaction_total:
                report.inconsistent_ids.append(doc.constituency_id)
            else:
                report.valid += 1

        report.missing_ids = [cid for cid in range(1, self.constituency_count + 1) if cid not in present]
        logger.info(
            "score_health_checked",
            total=report.total_documents,
            valid=report.valid,
            invalid=len(report.invalid_ids),
            missing=len(report.missing_ids),
            inconsistent=len(report.inconsistent_ids),
        )
        return report

    async def initialize_missing(self) -> list[int]:
        """Create zeroed score documents for every constituency lacking one."""
        report = await self.health_check()
        for constituency_id in report.missing_ids:
            await self.ledger_repo.ensure_scores(constituency_id)
        if report.missing_ids:
            logger.info("score_documents_initialized", count=len(report.missing_ids))
        return report.missing_ids

    async def correct_satisfaction(
        self,
        constituency_id: int,
        satisfaction_yes: int,
        satisfaction_no: int,
    ) -> ConstituencyScoreDocument:
        """
        Set the satisfaction counters to corrected values.

        This is the only path that can lower a counter.
        """
        self._check_constituency(constituency_id)
        if satisfaction_yes < 0 or satisfaction_no < 0:
            raise ValueError("Satisfaction counts cannot be negative")

        for _ in range(self.max_retries):
            scores = await self.ledger_repo.ensure_scores(constituency_id)
            scores.satisfaction_yes = satisfaction_yes
            scores.satisfaction_no = satisfaction_no
            scores.satisfaction_total = satisfaction_yes + satisfaction_no
            try:
                corrected = await self.ledger_repo.save_scores(scores)
                break
            except PreconditionFailedError:
                continue
        else:
            raise LedgerContentionError(f"Scores for constituency {constituency_id} kept changing")

        logger.warning(
            "satisfaction_corrected",
            constituency_id=constituency_id,
            satisfaction_yes=corrected.satisfaction_yes,
            satisfaction_no=corrected.satisfaction_no,
        )
        return corrected
