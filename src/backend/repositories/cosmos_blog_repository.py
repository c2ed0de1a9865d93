"""
Cosmos DB Blog repository.

Published articles are read-mostly; likes are tracked per user in
'blog_likes' and the visible count on the blog is patched atomically.
"""

import logging
from typing import Optional

from core.exceptions import DocumentConflictError, NotFoundError
from db.cosmos_session import (
    BLOG_LIKES_CONTAINER,
    BLOGS_CONTAINER,
    create_item,
    delete_item,
    patch_item,
    query_items,
    read_item,
)
from models.cosmos_documents import BlogDocument, BlogLikeDocument, BlogStatus

logger = logging.getLogger(__name__)


class CosmosBlogRepository:
    """Repository for blog articles and likes using Cosmos DB."""

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_by_id(self, blog_id: str) -> Optional[BlogDocument]:
        data = await read_item(BLOGS_CONTAINER, blog_id, partition_key=blog_id)
        if data is None:
            return None
        return BlogDocument(**data)

    async def list_published(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[BlogDocument]:
        """
        Published blogs, newest first.

        `category` is an exact match; `search` is a case-insensitive
        substring match on the title.
        """
        conditions = ["c.status = @status"]
        parameters = [
            {"name": "@status", "value": BlogStatus.PUBLISHED.value},
            {"name": "@offset", "value": offset},
            {"name": "@limit", "value": limit},
        ]
        if category:
            conditions.append("c.category = @category")
            parameters.append({"name": "@category", "value": category})
        if search:
            conditions.append("CONTAINS(c.title, @search, true)")
            parameters.append({"name": "@search", "value": search})

        query = f"""
            SELECT * FROM c
            WHERE {" AND ".join(conditions)}
            ORDER BY c.published_at DESC
            OFFSET @offset LIMIT @limit
        """
        results = await query_items(BLOGS_CONTAINER, query, parameters=parameters)
        return [BlogDocument(**r) for r in results]

    async def has_liked(self, blog_id: str, user_id: str) -> bool:
        like_id = BlogLikeDocument.make_id(blog_id, user_id)
        return await read_item(BLOG_LIKES_CONTAINER, like_id, partition_key=blog_id) is not None

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def toggle_like(self, blog_id: str, user_id: str) -> tuple[bool, int]:
        """
        Like the blog, or remove the like if the user already liked it.

        Returns (liked, likes) after the change.
        """
        like = BlogLikeDocument(
            id=BlogLikeDocument.make_id(blog_id, user_id),
            blog_id=blog_id,
            user_id=user_id,
        )
        try:
            await create_item(BLOG_LIKES_CONTAINER, like.model_dump(mode="json"))
            liked, delta = True, 1
        except DocumentConflictError:
            liked, delta = False, -1
            try:
                await delete_item(BLOG_LIKES_CONTAINER, like.id, partition_key=blog_id)
            except NotFoundError:
                # Removed by a concurrent request, which also adjusted the count
                blog = await self.get_by_id(blog_id)
                if blog is None:
                    raise
                return False, max(0, blog.likes)

        data = await patch_item(
            BLOGS_CONTAINER,
            blog_id,
            partition_key=blog_id,
            operations=[{"op": "incr", "path": "/likes", "value": delta}],
        )
        logger.debug(f"Blog {blog_id} like toggled (liked={liked})")
        return liked, max(0, int(data.get("likes", 0)))
