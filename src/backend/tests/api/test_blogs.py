"""
Tests for blog endpoints.
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient


@pytest.fixture
def blogs(blog_repo):
    blog_repo.add(
        id="b1",
        title="Budget explained",
        content="...",
        category="policy",
        status="published",
        published_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    blog_repo.add(
        id="b2",
        title="Election dates",
        content="...",
        category="news",
        status="published",
        published_at=datetime(2025, 2, 1, tzinfo=timezone.utc),
    )
    blog_repo.add(id="draft", title="Unfinished", content="...", status="draft")
    return blog_repo


@pytest.mark.unit
class TestBlogs:
    async def test_list_published_newest_first(self, client: AsyncClient, blogs) -> None:
        response = await client.get("/api/v1/blogs")
        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == ["b2", "b1"]

    async def test_filter_and_search(self, client: AsyncClient, blogs) -> None:
        assert [b["id"] for b in (await client.get("/api/v1/blogs?category=policy")).json()] == ["b1"]
        assert [b["id"] for b in (await client.get("/api/v1/blogs?search=election")).json()] == ["b2"]

    async def test_draft_hidden(self, client: AsyncClient, blogs) -> None:
        response = await client.get("/api/v1/blogs/draft")
        assert response.status_code == 404

    async def test_like_toggle(self, client: AsyncClient, auth_headers, blogs) -> None:
        first = (await client.post("/api/v1/blogs/b1/like", headers=auth_headers)).json()
        assert first == {"blog_id": "b1", "liked": True, "likes": 1}

        second = (await client.post("/api/v1/blogs/b1/like", headers=auth_headers)).json()
        assert second == {"blog_id": "b1", "liked": False, "likes": 0}

    async def test_like_requires_auth(self, client: AsyncClient, blogs) -> None:
        response = await client.post("/api/v1/blogs/b1/like")
        assert response.status_code in (401, 403)
