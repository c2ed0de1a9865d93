"""
Constituency vote and rating schemas.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, StrictInt


class SatisfactionVoteRequest(BaseModel):
    """Yes/no answer to "are you satisfied with your representative?"."""

    vote: bool


class DepartmentRatingsRequest(BaseModel):
    """
    Department name -> rating (1 to 5).

    Range checks happen in the ledger so that every caller gets the same
    validation; the schema only insists on integers.
    """

    ratings: dict[str, StrictInt] = Field(..., min_length=1)


class QuestionnaireRequest(BaseModel):
    vote: bool
    ratings: dict[str, StrictInt] = Field(..., min_length=1)


class SubmissionResponse(BaseModel):
    """Response after a vote or rating is recorded."""

    success: bool
    message: str
    manifesto_score: Optional[float] = None


class SubmissionStatusResponse(BaseModel):
    """Whether the current user already voted/rated (no answers revealed to others)."""

    constituency_id: int
    has_voted: bool
    has_rated: bool
    satisfaction_vote: Optional[bool] = None
    manifesto_score: Optional[float] = None


class ConstituencyScores(BaseModel):
    """Aggregate scores for one constituency."""

    constituency_id: int
    satisfaction_yes: int = 0
    satisfaction_no: int = 0
    satisfaction_total: int = 0
    satisfaction_percentage: int = 0
    manifesto_average: float = 0.0
    ratings_count: int = 0
    last_updated: Optional[datetime] = None


class ConstituencySummary(BaseModel):
    """Candidate record plus live scores."""

    constituency_id: int
    language: str
    candidate: Optional[dict[str, Any]] = None
    departments: list[str] = []
    scores: ConstituencyScores


class ConstituencyListItem(BaseModel):
    constituency_id: int
    area_name: Optional[str] = None
