"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.admin import router as admin_router
from api.v1.blogs import router as blogs_router
from api.v1.constituencies import router as constituencies_router
from api.v1.discussions import router as discussions_router
from api.v1.users import router as users_router

router = APIRouter()

router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(constituencies_router, prefix="/constituencies", tags=["Constituencies"])
router.include_router(discussions_router, prefix="/discussions", tags=["Discussions"])
router.include_router(blogs_router, prefix="/blogs", tags=["Blogs"])
router.include_router(admin_router, prefix="/admin", tags=["Admin"])
