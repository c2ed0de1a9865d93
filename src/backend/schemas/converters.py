"""
Schema converter functions.

Centralized helpers for converting Cosmos documents to response schemas.
Author labels are resolved by the caller and passed in, so documents never
need to carry anything beyond the author's user id.
"""

from typing import TYPE_CHECKING, Optional

from core.nagrik import DEFAULT_LANGUAGE, Language, author_label
from schemas.blog import Blog
from schemas.discussion import Comment, Post, PostStatusEnum
from schemas.ledger import ConstituencyScores
from schemas.user import PublicProfileResponse, UserResponse

if TYPE_CHECKING:
    from models.cosmos_documents import (
        BlogDocument,
        CommentDocument,
        ConstituencyScoreDocument,
        DiscussionPostDocument,
        UserProfileDocument,
    )


def scores_to_schema(scores: "ConstituencyScoreDocument") -> ConstituencyScores:
    """Convert a score document; counters never render below zero."""
    return ConstituencyScores(
        constituency_id=scores.constituency_id,
        satisfaction_yes=max(0, scores.satisfaction_yes),
        satisfaction_no=max(0, scores.satisfaction_no),
        satisfaction_total=max(0, scores.satisfaction_total),
        satisfaction_percentage=scores.satisfaction_percentage,
        manifesto_average=round(scores.manifesto_average, 2),
        ratings_count=scores.ratings_count,
        last_updated=scores.last_updated,
    )


def profile_to_public_schema(
    profile: "UserProfileDocument",
    language: Language = DEFAULT_LANGUAGE,
) -> PublicProfileResponse:
    return PublicProfileResponse(
        nagrik_number=profile.nagrik_number,
        display_name=author_label(profile.nagrik_number, language),
        constituency_id=profile.constituency_id,
        tier_level=profile.tier_level,
    )


def profile_to_user_schema(
    profile: "UserProfileDocument",
    language: Language = DEFAULT_LANGUAGE,
) -> UserResponse:
    """The owner's own view of their profile."""
    number = profile.nagrik_number
    return UserResponse(
        id=profile.id,
        email=profile.email,
        nagrik_number=number,
        display_name=author_label(number, language),
        display_name_en=author_label(number, Language.ENGLISH),
        display_name_hi=author_label(number, Language.HINDI),
        constituency_id=profile.constituency_id,
        tier_level=profile.tier_level,
        first_vote_year=profile.first_vote_year,
        referral_code=profile.referral_code,
        engagement_score=profile.engagement_score,
        is_admin=profile.is_admin,
        created_at=profile.created_at,
    )


def post_to_schema(post: "DiscussionPostDocument", label: str) -> Post:
    return Post(
        id=post.id,
        title=post.title,
        content=post.content,
        constituency_id=post.constituency_id,
        author_label=label,
        status=PostStatusEnum(post.status),
        likes_count=max(0, post.likes_count),
        dislikes_count=max(0, post.dislikes_count),
        comments_count=max(0, post.comments_count),
        created_at=post.created_at,
    )


def comment_to_schema(
    comment: "CommentDocument",
    label: str,
    replies: Optional[list[Comment]] = None,
) -> Comment:
    return Comment(
        id=comment.id,
        post_id=comment.post_id,
        parent_id=comment.parent_id,
        content=comment.content,
        author_label=label,
        likes_count=max(0, comment.likes_count),
        dislikes_count=max(0, comment.dislikes_count),
        replies_count=max(0, comment.replies_count),
        created_at=comment.created_at,
        replies=replies or [],
    )


def blog_to_schema(blog: "BlogDocument") -> Blog:
    return Blog.model_validate(blog.model_dump())


def nagrik_labels(numbers: dict[str, Optional[int]], language: Language = DEFAULT_LANGUAGE) -> dict[str, str]:
    """Map user ids to display labels for a batch of authors."""
    return {user_id: author_label(number, language) for user_id, number in numbers.items()}
