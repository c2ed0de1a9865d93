"""
Discussion forum service.

Posts, comments and replies with like/dislike reactions. Authors are only
ever shown by their nagrik label, looked up when a response is built.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from core.exceptions import DocumentConflictError, NotFoundError, PreconditionFailedError
from core.nagrik import DEFAULT_LANGUAGE, Language
from models.cosmos_documents import (
    CommentDocument,
    DiscussionPostDocument,
    PostStatus,
    ReactionDocument,
    ReactionKind,
    ReactionTarget,
)
from schemas.converters import comment_to_schema, nagrik_labels, post_to_schema
from schemas.discussion import Comment, Post

logger = structlog.get_logger(__name__)

COUNTER_FIELDS = {
    ReactionKind.LIKE: "likes_count",
    ReactionKind.DISLIKE: "dislikes_count",
}

MAX_REACTION_ATTEMPTS = 3


@dataclass
class ReactionResult:
    """The user's reaction after the change and the target's updated counts."""

    reaction: Optional[ReactionKind]
    likes_count: int
    dislikes_count: int
    first_reaction: bool = False


def reaction_deltas(
    previous: Optional[ReactionKind],
    requested: ReactionKind,
) -> tuple[Optional[ReactionKind], dict[str, int]]:
    """
    Work out the new reaction and counter changes.

    Same kind again toggles it off; the other kind switches.
    """
    requested = ReactionKind(requested)
    if previous is None:
        return requested, {COUNTER_FIELDS[requested]: 1}
    previous = ReactionKind(previous)
    if previous == requested:
        return None, {COUNTER_FIELDS[requested]: -1}
    return requested, {COUNTER_FIELDS[previous]: -1, COUNTER_FIELDS[requested]: 1}


class DiscussionService:
    """Forum operations over the discussion and user repositories."""

    def __init__(self, discussion_repo, user_repo):
        self.discussion_repo = discussion_repo
        self.user_repo = user_repo

    async def _labels(self, user_ids: list[str], language: Language) -> dict[str, str]:
        numbers = await self.user_repo.get_nagrik_numbers(user_ids)
        return nagrik_labels(numbers, language)

    async def _published_post(self, post_id: str) -> DiscussionPostDocument:
        post = await self.discussion_repo.get_post(post_id)
        if post is None or post.status != PostStatus.PUBLISHED.value:
            raise NotFoundError("Post not found")
        return post

    # ------------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------------

    async def create_post(
        self,
        user_id: str,
        title: str,
        content: str,
        constituency_id: Optional[int] = None,
        language: Language = DEFAULT_LANGUAGE,
    ) -> Post:
        post = DiscussionPostDocument(
            title=title.strip(),
            content=content.strip(),
            constituency_id=constituency_id,
            user_id=user_id,
        )
        created = await self.discussion_repo.create_post(post)
        logger.info("post_created", post_id=created.id, constituency_id=constituency_id)
        labels = await self._labels([user_id], language)
        return post_to_schema(created, labels[user_id])

    async def list_posts(
        self,
        constituency_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
        language: Language = DEFAULT_LANGUAGE,
        status: PostStatus = PostStatus.PUBLISHED,
    ) -> list[Post]:
        """Published posts by default; other statuses are for moderators."""
        posts = await self.discussion_repo.list_posts(
            status=status,
            constituency_id=constituency_id,
            limit=limit,
            offset=offset,
        )
        labels = await self._labels([p.user_id for p in posts], language)
        return [post_to_schema(p, labels[p.user_id]) for p in posts]

    async def get_post(self, post_id: str, language: Language = DEFAULT_LANGUAGE) -> Post:
        post = await self._published_post(post_id)
        labels = await self._labels([post.user_id], language)
        return post_to_schema(post, labels[post.user_id])

    async def set_post_status(self, post_id: str, status: PostStatus) -> Post:
        """Moderation: publish, hold for review, or remove a post."""
        if await self.discussion_repo.get_post(post_id) is None:
            raise NotFoundError("Post not found")
        post = await self.discussion_repo.set_post_status(post_id, status)
        labels = await self._labels([post.user_id], DEFAULT_LANGUAGE)
        return post_to_schema(post, labels[post.user_id])

    # ------------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------------

    async def add_comment(
        self,
        user_id: str,
        post_id: str,
        content: str,
        parent_id: Optional[str] = None,
        language: Language = DEFAULT_LANGUAGE,
    ) -> Comment:
        """
        Comment on a post, or reply to a top-level comment when `parent_id` is set.

        Replies to replies attach to the top-level comment.
        """
        await self._published_post(post_id)

        if parent_id is not None:
            parent = await self.discussion_repo.get_comment(post_id, parent_id)
            if parent is None:
                raise NotFoundError("Comment not found")
            if parent.parent_id:
                parent_id = parent.parent_id

        comment = CommentDocument(
            post_id=post_id,
            parent_id=parent_id,
            user_id=user_id,
            content=content.strip(),
        )
        created = await self.discussion_repo.create_comment(comment)
        await self.discussion_repo.increment_post_counters(post_id, {"comments_count": 1})
        if parent_id is not None:
            await self.discussion_repo.increment_comment_counters(post_id, parent_id, {"replies_count": 1})

        logger.info("comment_created", post_id=post_id, is_reply=parent_id is not None)
        labels = await self._labels([user_id], language)
        return comment_to_schema(created, labels[user_id])

    async def list_comments(self, post_id: str, language: Language = DEFAULT_LANGUAGE) -> list[Comment]:
        """Top-level comments oldest first, each with its replies."""
        await self._published_post(post_id)
        comments = await self.discussion_repo.list_comments(post_id)
        replies = {c.id: await self.discussion_repo.list_comments(post_id, parent_id=c.id) for c in comments}

        authors = [c.user_id for c in comments] + [r.user_id for rs in replies.values() for r in rs]
        labels = await self._labels(authors, language)
        return [
            comment_to_schema(
                c,
                labels[c.user_id],
                replies=[comment_to_schema(r, labels[r.user_id]) for r in replies[c.id]],
            )
            for c in comments
        ]

    # ------------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------------

    async def react(
        self,
        user_id: str,
        target_type: ReactionTarget,
        target_id: str,
        kind: ReactionKind,
        post_id: Optional[str] = None,
    ) -> ReactionResult:
        """
        Like or dislike a post or comment.

        A user holds at most one reaction per target. The reaction document is
        written first; counters follow with atomic increments. Withdrawing a
        reaction clears its kind rather than deleting the document.
        """
        target_type = ReactionTarget(target_type)
        if target_type == ReactionTarget.COMMENT and post_id is None:
            raise ValueError("post_id is required for comment reactions")
        await self._load_target(target_type, target_id, post_id)

        for _ in range(MAX_REACTION_ATTEMPTS):
            existing = await self.discussion_repo.get_reaction(target_id, user_id)
            new_kind, deltas = reaction_deltas(existing.kind if existing else None, kind)
            first = existing is None
            try:
                if first:
                    await self.discussion_repo.create_reaction(
                        ReactionDocument(
                            id=user_id,
                            target_id=target_id,
                            target_type=target_type,
                            user_id=user_id,
                            kind=ReactionKind(kind),
                        )
                    )
                else:
                    existing.kind = new_kind
                    await self.discussion_repo.replace_reaction(existing)
            except (DocumentConflictError, PreconditionFailedError):
                # Same user reacting from two devices at once
                continue
            break
        else:
            raise PreconditionFailedError("Reaction kept changing, try again")

        if target_type == ReactionTarget.POST:
            await self.discussion_repo.increment_post_counters(target_id, deltas)
        else:
            await self.discussion_repo.increment_comment_counters(post_id, target_id, deltas)

        target = await self._load_target(target_type, target_id, post_id)
        logger.debug("reaction_recorded", target_type=target_type.value, reaction=new_kind)
        return ReactionResult(
            reaction=new_kind,
            likes_count=max(0, target.likes_count),
            dislikes_count=max(0, target.dislikes_count),
            first_reaction=first,
        )

    async def _load_target(self, target_type: ReactionTarget, target_id: str, post_id: Optional[str]):
        if target_type == ReactionTarget.POST:
            return await self._published_post(target_id)
        await self._published_post(post_id)
        comment = await self.discussion_repo.get_comment(post_id, target_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment
