"""
Discussion forum schemas.

Authors appear only as `author_label`, computed when the response is built.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PostStatusEnum(str, Enum):
    PUBLISHED = "published"
    UNDER_REVIEW = "under_review"
    REMOVED = "removed"


class ReactionKindEnum(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)
    constituency_id: Optional[int] = Field(None, ge=1)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    parent_id: Optional[str] = None


class ReactionRequest(BaseModel):
    kind: ReactionKindEnum


class PostStatusUpdate(BaseModel):
    status: PostStatusEnum


class Post(BaseModel):
    """Post as shown to readers."""

    id: str
    title: str
    content: str
    constituency_id: Optional[int] = None
    author_label: str
    status: PostStatusEnum
    likes_count: int = 0
    dislikes_count: int = 0
    comments_count: int = 0
    created_at: datetime


class Comment(BaseModel):
    """Comment with its replies (replies never nest further)."""

    id: str
    post_id: str
    parent_id: Optional[str] = None
    content: str
    author_label: str
    likes_count: int = 0
    dislikes_count: int = 0
    replies_count: int = 0
    created_at: datetime
    replies: list["Comment"] = []


class ReactionResponse(BaseModel):
    """The user's reaction after the change (None when toggled off) and new counts."""

    reaction: Optional[ReactionKindEnum] = None
    likes_count: int
    dislikes_count: int
