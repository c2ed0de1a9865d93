"""
Blog schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Blog(BaseModel):
    id: str
    title: str
    content: str
    excerpt: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None
    image_url: Optional[str] = None
    likes: int = 0
    published_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BlogLikeResponse(BaseModel):
    blog_id: str
    liked: bool
    likes: int
