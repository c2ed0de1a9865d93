"""Document models module."""

from models.cosmos_documents import (
    BlogDocument,
    BlogLikeDocument,
    CommentDocument,
    ConstituencyScoreDocument,
    CounterDocument,
    DiscussionPostDocument,
    NagrikLookupDocument,
    PostStatus,
    QuestionnaireSubmissionDocument,
    ReactionDocument,
    ReactionKind,
    ReactionTarget,
    UserProfileDocument,
)

__all__ = [
    "BlogDocument",
    "BlogLikeDocument",
    "CommentDocument",
    "ConstituencyScoreDocument",
    "CounterDocument",
    "DiscussionPostDocument",
    "NagrikLookupDocument",
    "PostStatus",
    "QuestionnaireSubmissionDocument",
    "ReactionDocument",
    "ReactionKind",
    "ReactionTarget",
    "UserProfileDocument",
]
