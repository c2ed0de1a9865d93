"""
Cosmos DB constituency ledger repository.

A constituency's score aggregate and every user's submission marker live in
the same logical partition of 'constituency_scores', so each vote or rating
commits the marker and the counters in one transactional batch.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from core.exceptions import DocumentConflictError
from db.cosmos_session import (
    CONSTITUENCY_SCORES_CONTAINER,
    create_item,
    execute_batch,
    query_items,
    read_item,
    replace_item,
)
from models.cosmos_documents import (
    SCORE_DOCUMENT_ID,
    ConstituencyScoreDocument,
    QuestionnaireSubmissionDocument,
    constituency_key,
    submission_id,
)

logger = logging.getLogger(__name__)


def _marker_operation(submission: QuestionnaireSubmissionDocument, is_new: bool) -> tuple:
    body = submission.model_dump(mode="json")
    if is_new:
        return ("create", (body,))
    return ("replace", (submission.id, body), {"if_match_etag": submission.etag})


class CosmosLedgerRepository:
    """Repository for constituency scores and questionnaire submissions."""

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_scores(self, constituency_id: int) -> Optional[ConstituencyScoreDocument]:
        key = constituency_key(constituency_id)
        data = await read_item(CONSTITUENCY_SCORES_CONTAINER, SCORE_DOCUMENT_ID, partition_key=key)
        if data is None:
            return None
        return ConstituencyScoreDocument(**data)

    async def get_submission(
        self,
        user_id: str,
        constituency_id: int,
    ) -> Optional[QuestionnaireSubmissionDocument]:
        """Point read of the (user, constituency) marker."""
        key = constituency_key(constituency_id)
        data = await read_item(CONSTITUENCY_SCORES_CONTAINER, submission_id(user_id), partition_key=key)
        if data is None:
            return None
        return QuestionnaireSubmissionDocument(**data)

    async def list_scores(self) -> list[ConstituencyScoreDocument]:
        """All score documents ordered by constituency (cross-partition)."""
        query = """
            SELECT * FROM c
            WHERE c.doc_type = 'score'
            ORDER BY c.constituency_id ASC
        """
        results = await query_items(CONSTITUENCY_SCORES_CONTAINER, query)
        return [ConstituencyScoreDocument(**r) for r in results]

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def ensure_scores(self, constituency_id: int) -> ConstituencyScoreDocument:
        """Create the zeroed score document if missing and return the stored one."""
        existing = await self.get_scores(constituency_id)
        if existing is not None:
            return existing

        scores = ConstituencyScoreDocument.empty(constituency_id)
        try:
            data = await create_item(CONSTITUENCY_SCORES_CONTAINER, scores.model_dump(mode="json"))
            logger.info(f"Initialized scores for constituency {constituency_id}")
            return ConstituencyScoreDocument(**data)
        except DocumentConflictError:
            # Created concurrently
            created = await self.get_scores(constituency_id)
            if created is None:
                raise
            return created

    async def commit_vote(
        self,
        submission: QuestionnaireSubmissionDocument,
        is_new: bool,
        vote: bool,
    ) -> None:
        """
        Write the vote marker and increment the matching counter atomically.

        Raises DocumentConflictError if a new marker already exists and
        PreconditionFailedError if an existing marker changed since it was read.
        """
        field = "satisfaction_yes" if vote else "satisfaction_no"
        now = datetime.now(timezone.utc).isoformat()
        operations = [
            _marker_operation(submission, is_new),
            (
                "patch",
                (
                    SCORE_DOCUMENT_ID,
                    [
                        {"op": "incr", "path": f"/{field}", "value": 1},
                        {"op": "incr", "path": "/satisfaction_total", "value": 1},
                        {"op": "set", "path": "/last_updated", "value": now},
                    ],
                ),
            ),
        ]
        await execute_batch(CONSTITUENCY_SCORES_CONTAINER, submission.constituency_key, operations)
        logger.debug(f"Recorded satisfaction vote for constituency {submission.constituency_id}")

    async def commit_submission(
        self,
        submission: QuestionnaireSubmissionDocument,
        is_new: bool,
        scores: ConstituencyScoreDocument,
    ) -> None:
        """
        Write the marker and the recomputed score document atomically.

        The score replace is guarded by the etag the scores were read with,
        so concurrent running-mean updates cannot overwrite each other.
        """
        scores.last_updated = datetime.now(timezone.utc)
        operations = [
            _marker_operation(submission, is_new),
            (
                "replace",
                (scores.id, scores.model_dump(mode="json")),
                {"if_match_etag": scores.etag},
            ),
        ]
        await execute_batch(CONSTITUENCY_SCORES_CONTAINER, submission.constituency_key, operations)
        logger.debug(f"Recorded questionnaire submission for constituency {submission.constituency_id}")

    async def save_scores(self, scores: ConstituencyScoreDocument) -> ConstituencyScoreDocument:
        """
        Replace a score document, guarded by the etag it was read with.

        Raises PreconditionFailedError if the scores changed since they were read.
        """
        scores.last_updated = datetime.now(timezone.utc)
        data = await replace_item(
            CONSTITUENCY_SCORES_CONTAINER,
            scores.model_dump(mode="json"),
            etag=scores.etag,
        )
        return ConstituencyScoreDocument(**data)
