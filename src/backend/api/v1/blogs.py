"""
Blog endpoints.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.deps import get_current_user
from models.cosmos_documents import BlogStatus, UserProfileDocument
from repositories.provider import get_blog_repository
from schemas.blog import Blog, BlogLikeResponse
from schemas.converters import blog_to_schema

router = APIRouter()


@router.get("", response_model=list[Blog])
async def list_blogs(
    category: Optional[str] = Query(None, max_length=50),
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    blog_repo=Depends(get_blog_repository),
) -> list[Blog]:
    """Published blogs, newest first. Optionally filter by category or title."""
    blogs = await blog_repo.list_published(category=category, search=search, limit=limit, offset=offset)
    return [blog_to_schema(b) for b in blogs]


@router.get("/{blog_id}", response_model=Blog)
async def get_blog(blog_id: str, blog_repo=Depends(get_blog_repository)) -> Blog:
    blog = await blog_repo.get_by_id(blog_id)
    if blog is None or blog.status != BlogStatus.PUBLISHED.value:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog_to_schema(blog)


@router.post("/{blog_id}/like", response_model=BlogLikeResponse)
async def toggle_blog_like(
    blog_id: str,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    blog_repo=Depends(get_blog_repository),
) -> BlogLikeResponse:
    """Like a blog, or remove the like if already liked."""
    blog = await blog_repo.get_by_id(blog_id)
    if blog is None or blog.status != BlogStatus.PUBLISHED.value:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")

    liked, likes = await blog_repo.toggle_like(blog_id, current_user.id)
    return BlogLikeResponse(blog_id=blog_id, liked=liked, likes=likes)
