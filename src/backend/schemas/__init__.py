"""Schemas module initialization."""

from schemas.blog import Blog, BlogLikeResponse
from schemas.discussion import Comment, CommentCreate, Post, PostCreate, ReactionRequest, ReactionResponse
from schemas.ledger import (
    ConstituencyScores,
    ConstituencySummary,
    DepartmentRatingsRequest,
    QuestionnaireRequest,
    SatisfactionVoteRequest,
    SubmissionResponse,
)
from schemas.user import PublicProfileResponse, UserResponse

__all__ = [
    "PublicProfileResponse",
    "UserResponse",
    "SatisfactionVoteRequest",
    "DepartmentRatingsRequest",
    "QuestionnaireRequest",
    "SubmissionResponse",
    "ConstituencyScores",
    "ConstituencySummary",
    "Post",
    "PostCreate",
    "Comment",
    "CommentCreate",
    "ReactionRequest",
    "ReactionResponse",
    "Blog",
    "BlogLikeResponse",
]
