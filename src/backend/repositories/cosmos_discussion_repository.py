"""
Cosmos DB discussion repository.

Posts live in 'discussion_posts', comments and replies in 'comments'
(partitioned by post), and per-user reactions in 'reactions'. Counters on
posts and comments are only ever changed with atomic patch increments.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from db.cosmos_session import (
    COMMENTS_CONTAINER,
    DISCUSSION_POSTS_CONTAINER,
    REACTIONS_CONTAINER,
    create_item,
    patch_item,
    query_count,
    query_items,
    read_item,
    replace_item,
)
from models.cosmos_documents import (
    CommentDocument,
    DiscussionPostDocument,
    PostStatus,
    ReactionDocument,
)

logger = logging.getLogger(__name__)


def _increment_operations(deltas: dict[str, int]) -> list[dict]:
    return [{"op": "incr", "path": f"/{field}", "value": delta} for field, delta in deltas.items() if delta]


class CosmosDiscussionRepository:
    """Repository for posts, comments and reactions using Cosmos DB."""

    # ========================================================================
    # Posts
    # ========================================================================

    async def create_post(self, post: DiscussionPostDocument) -> DiscussionPostDocument:
        data = await create_item(DISCUSSION_POSTS_CONTAINER, post.model_dump(mode="json"))
        logger.info(f"Created discussion post {post.id}")
        return DiscussionPostDocument(**data)

    async def get_post(self, post_id: str) -> Optional[DiscussionPostDocument]:
        data = await read_item(DISCUSSION_POSTS_CONTAINER, post_id, partition_key=post_id)
        if data is None:
            return None
        return DiscussionPostDocument(**data)

    async def list_posts(
        self,
        status: PostStatus = PostStatus.PUBLISHED,
        constituency_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[DiscussionPostDocument]:
        """Posts with the given status, newest first."""
        conditions = ["c.status = @status"]
        parameters = [
            {"name": "@status", "value": PostStatus(status).value},
            {"name": "@offset", "value": offset},
            {"name": "@limit", "value": limit},
        ]
        if constituency_id is not None:
            conditions.append("c.constituency_id = @constituency_id")
            parameters.append({"name": "@constituency_id", "value": constituency_id})

        query = f"""
            SELECT * FROM c
            WHERE {" AND ".join(conditions)}
            ORDER BY c.created_at DESC
            OFFSET @offset LIMIT @limit
        """
        results = await query_items(DISCUSSION_POSTS_CONTAINER, query, parameters=parameters)
        return [DiscussionPostDocument(**r) for r in results]

    async def count_posts(self, status: PostStatus = PostStatus.PUBLISHED) -> int:
        return await query_count(
            DISCUSSION_POSTS_CONTAINER,
            "SELECT VALUE COUNT(1) FROM c WHERE c.status = @status",
            parameters=[{"name": "@status", "value": PostStatus(status).value}],
        )

    async def set_post_status(self, post_id: str, status: PostStatus) -> DiscussionPostDocument:
        data = await patch_item(
            DISCUSSION_POSTS_CONTAINER,
            post_id,
            partition_key=post_id,
            operations=[
                {"op": "set", "path": "/status", "value": PostStatus(status).value},
                {"op": "set", "path": "/updated_at", "value": datetime.now(timezone.utc).isoformat()},
            ],
        )
        logger.info(f"Post {post_id} status set to {PostStatus(status).value}")
        return DiscussionPostDocument(**data)

    async def increment_post_counters(self, post_id: str, deltas: dict[str, int]) -> None:
        operations = _increment_operations(deltas)
        if operations:
            await patch_item(DISCUSSION_POSTS_CONTAINER, post_id, partition_key=post_id, operations=operations)

    # ========================================================================
    # Comments and Replies
    # ========================================================================

    async def create_comment(self, comment: CommentDocument) -> CommentDocument:
        data = await create_item(COMMENTS_CONTAINER, comment.model_dump(mode="json"))
        return CommentDocument(**data)

    async def get_comment(self, post_id: str, comment_id: str) -> Optional[CommentDocument]:
        data = await read_item(COMMENTS_CONTAINER, comment_id, partition_key=post_id)
        if data is None:
            return None
        return CommentDocument(**data)

    async def list_comments(
        self,
        post_id: str,
        parent_id: Optional[str] = None,
    ) -> list[CommentDocument]:
        """Top-level comments of a post, or the replies to one comment, oldest first."""
        if parent_id is None:
            query = """
                SELECT * FROM c
                WHERE NOT IS_DEFINED(c.parent_id) OR IS_NULL(c.parent_id)
                ORDER BY c.created_at ASC
            """
            parameters = None
        else:
            query = """
                SELECT * FROM c
                WHERE c.parent_id = @parent_id
                ORDER BY c.created_at ASC
            """
            parameters = [{"name": "@parent_id", "value": parent_id}]

        results = await query_items(COMMENTS_CONTAINER, query, parameters=parameters, partition_key=post_id)
        return [CommentDocument(**r) for r in results]

    async def increment_comment_counters(self, post_id: str, comment_id: str, deltas: dict[str, int]) -> None:
        operations = _increment_operations(deltas)
        if operations:
            await patch_item(COMMENTS_CONTAINER, comment_id, partition_key=post_id, operations=operations)

    # ========================================================================
    # Reactions
    # ========================================================================

    async def get_reaction(self, target_id: str, user_id: str) -> Optional[ReactionDocument]:
        data = await read_item(REACTIONS_CONTAINER, user_id, partition_key=target_id)
        if data is None:
            return None
        return ReactionDocument(**data)

    async def create_reaction(self, reaction: ReactionDocument) -> ReactionDocument:
        """Raises DocumentConflictError if the user already reacted to the target."""
        data = await create_item(REACTIONS_CONTAINER, reaction.model_dump(mode="json"))
        return ReactionDocument(**data)

    async def replace_reaction(self, reaction: ReactionDocument) -> ReactionDocument:
        """Switch a reaction's kind, guarded by the etag it was read with."""
        data = await replace_item(REACTIONS_CONTAINER, reaction.model_dump(mode="json"), etag=reaction.etag)
        return ReactionDocument(**data)
