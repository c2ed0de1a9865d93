"""
Cosmos DB document models for Charcha Manch.

These Pydantic models define the document structure stored in Cosmos DB.
Documents are flat with denormalized counters where reads dominate.

Container Strategy:
- user_profiles: User profiles keyed by identity-provider uid (partition: /id)
- nagrik-lookup: Secondary index nagrik_number -> uid (partition: /id)
- counters: Atomically incremented sequences (partition: /id)
- constituency_scores: Score aggregate + per-user submission markers for one
  constituency share a partition (partition: /constituency_key), so a vote and
  its counter increment commit in one transactional batch
- discussion_posts: Forum posts (partition: /id)
- comments: Comments and replies (partition: /post_id)
- reactions: One like/dislike per user per post or comment (partition: /target_id)
- blogs: Blog/news articles (partition: /id)
- blog_likes: One like per user per blog (partition: /blog_id)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def constituency_key(constituency_id: int) -> str:
    """Partition key value for a constituency's ledger partition."""
    return str(constituency_id)


def submission_id(user_id: str) -> str:
    """Document id of a user's questionnaire submission marker."""
    return f"submission:{user_id}"


SCORE_DOCUMENT_ID = "score"
NAGRIK_COUNTER_ID = "nagrik_number"

# ============================================================================
# Enums
# ============================================================================


class PostStatus(str, Enum):
    """Moderation status of a discussion post."""

    PUBLISHED = "published"
    UNDER_REVIEW = "under_review"
    REMOVED = "removed"


class ReactionKind(str, Enum):
    """A user's reaction to a post or comment."""

    LIKE = "like"
    DISLIKE = "dislike"


class ReactionTarget(str, Enum):
    POST = "post"
    COMMENT = "comment"


class BlogStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# ============================================================================
# Base Document Model
# ============================================================================


class CosmosDocument(BaseModel):
    """
    Base class for Cosmos DB documents.

    All documents have:
    - id: Unique identifier within its partition
    - etag: Cosmos `_etag`, used for optimistic concurrency; never written back
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    etag: Optional[str] = Field(default=None, alias="_etag", exclude=True)

    model_config = {
        # Allow extra fields for Cosmos DB system properties (_ts, _rid, etc.)
        "extra": "allow",
        "populate_by_name": True,
        "use_enum_values": True,
    }


# ============================================================================
# Identity Documents
# ============================================================================


class UserProfileDocument(CosmosDocument):
    """
    User profile stored in the 'user_profiles' container.

    Partition key: /id (the identity provider uid)

    No display name is stored: public identity is the nagrik number only.
    """

    email: Optional[str] = None

    # Anonymous public identity, assigned once and never changed
    nagrik_number: Optional[int] = None

    # Chosen once during onboarding
    constituency_id: Optional[int] = None

    first_vote_year: Optional[int] = None
    referral_code: Optional[str] = None
    referred_by: Optional[str] = None

    # Engagement
    tier_level: int = 1
    engagement_score: int = 0

    is_admin: bool = False

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class NagrikLookupDocument(CosmosDocument):
    """
    Secondary index: nagrik_number -> uid.

    Partition key: /id (str(nagrik_number))
    Creating this document claims the number; a second create for the same
    number fails, which is what makes numbers unique.
    """

    nagrik_number: int
    user_id: str
    claimed_at: datetime = Field(default_factory=utcnow)


class CounterDocument(CosmosDocument):
    """
    Monotonic counter stored in the 'counters' container.

    Partition key: /id
    Only ever mutated with an atomic patch increment.
    """

    value: int = 0
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================================
# Constituency Ledger Documents
# ============================================================================


class ConstituencyScoreDocument(CosmosDocument):
    """
    Aggregate scores for one constituency.

    Partition key: /constituency_key
    Document id is always "score" within its partition.
    """

    id: str = SCORE_DOCUMENT_ID
    doc_type: str = "score"
    constituency_key: str
    constituency_id: int

    satisfaction_yes: int = 0
    satisfaction_no: int = 0
    satisfaction_total: int = 0

    # Running mean of manifesto scores over distinct rating submitters
    ratings_count: int = 0
    manifesto_average: float = 0.0

    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    @classmethod
    def empty(cls, constituency_id: int) -> "ConstituencyScoreDocument":
        return cls(
            constituency_key=constituency_key(constituency_id),
            constituency_id=constituency_id,
        )

    @property
    def satisfaction_percentage(self) -> int:
        """Share of yes votes, rounded to a whole percent."""
        total = self.satisfaction_yes + self.satisfaction_no
        if total == 0:
            return 0
        return round(self.satisfaction_yes / total * 100)


class QuestionnaireSubmissionDocument(CosmosDocument):
    """
    Idempotency marker for one (user, constituency) pair.

    Partition key: /constituency_key
    Document id is "submission:<user_id>", so the id itself is the
    uniqueness key. Each part (vote, ratings) is written at most once.
    """

    doc_type: str = "submission"
    constituency_key: str
    constituency_id: int
    user_id: str

    satisfaction_vote: Optional[bool] = None
    department_ratings: Optional[dict[str, int]] = None
    manifesto_score: Optional[float] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def has_vote(self) -> bool:
        return self.satisfaction_vote is not None

    @property
    def has_ratings(self) -> bool:
        return bool(self.department_ratings)


# ============================================================================
# Discussion Documents
# ============================================================================


class DiscussionPostDocument(CosmosDocument):
    """
    Forum post stored in the 'discussion_posts' container.

    Partition key: /id
    The author is referenced by user_id only; the visible author label is
    derived from the author's nagrik number when rendering.
    """

    title: str
    content: str
    constituency_id: Optional[int] = None
    user_id: str
    status: PostStatus = PostStatus.PUBLISHED

    likes_count: int = 0
    dislikes_count: int = 0
    comments_count: int = 0

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CommentDocument(CosmosDocument):
    """
    Comment or reply stored in the 'comments' container.

    Partition key: /post_id
    Replies carry the id of the comment they answer in parent_id.
    """

    post_id: str
    parent_id: Optional[str] = None
    user_id: str
    content: str

    likes_count: int = 0
    dislikes_count: int = 0
    replies_count: int = 0

    created_at: datetime = Field(default_factory=utcnow)


class ReactionDocument(CosmosDocument):
    """
    A user's single reaction to a post or comment.

    Partition key: /target_id
    Document id is the user id, so one user holds at most one reaction
    (like XOR dislike) per target. A withdrawn reaction keeps its document
    with `kind` set to None, so it is only ever created once.
    """

    target_id: str
    target_type: ReactionTarget
    user_id: str
    kind: Optional[ReactionKind] = None
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================================
# Blog Documents
# ============================================================================


class BlogDocument(CosmosDocument):
    """Blog/news article stored in the 'blogs' container (partition: /id)."""

    title: str
    content: str
    excerpt: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None
    image_url: Optional[str] = None
    status: BlogStatus = BlogStatus.DRAFT
    likes: int = 0

    created_at: datetime = Field(default_factory=utcnow)
    published_at: Optional[datetime] = None


class BlogLikeDocument(CosmosDocument):
    """
    One user's like on a blog.

    Partition key: /blog_id
    Document id is "<blog_id>_<user_id>".
    """

    blog_id: str
    user_id: str
    created_at: datetime = Field(default_factory=utcnow)

    @staticmethod
    def make_id(blog_id: str, user_id: str) -> str:
        return f"{blog_id}_{user_id}"
