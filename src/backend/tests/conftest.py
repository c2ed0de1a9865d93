"""
Pytest fixtures for Charcha Manch backend tests.

Service and API tests run against in-memory repositories that follow the
Cosmos repositories' contracts: create-if-absent conflicts, etag-guarded
replaces, and all-or-nothing batch commits.
"""

import asyncio
import json
import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")

from azure.core.exceptions import ServiceRequestError  # noqa: E402

from core.exceptions import DocumentConflictError, NotFoundError, PreconditionFailedError  # noqa: E402
from models.cosmos_documents import (  # noqa: E402
    BlogDocument,
    BlogLikeDocument,
    BlogStatus,
    CommentDocument,
    ConstituencyScoreDocument,
    DiscussionPostDocument,
    PostStatus,
    QuestionnaireSubmissionDocument,
    ReactionDocument,
    UserProfileDocument,
)

_etags = count(1)


def _next_etag() -> str:
    return f'"{next(_etags)}"'


def _stored(doc):
    """Copy a document as a store would return it, with a fresh etag."""
    copy = doc.model_copy(deep=True)
    copy.etag = _next_etag()
    return copy


# =============================================================================
# In-memory repositories
# =============================================================================


class FakeUserRepository:
    def __init__(self) -> None:
        self.profiles: dict[str, UserProfileDocument] = {}
        self.fail_nagrik_writes_for: set[str] = set()

    def add(self, user_id: str, nagrik_number: Optional[int] = None, **fields: Any) -> UserProfileDocument:
        profile = _stored(UserProfileDocument(id=user_id, nagrik_number=nagrik_number, **fields))
        self.profiles[user_id] = profile
        return profile

    async def get_by_id(self, user_id: str) -> Optional[UserProfileDocument]:
        await asyncio.sleep(0)
        profile = self.profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def get_max_nagrik_number(self) -> Optional[int]:
        numbers = [p.nagrik_number for p in self.profiles.values() if p.nagrik_number is not None]
        return max(numbers) if numbers else None

    async def get_nagrik_numbers(self, user_ids: list[str]) -> dict[str, Optional[int]]:
        return {uid: (self.profiles[uid].nagrik_number if uid in self.profiles else None) for uid in set(user_ids)}

    async def iter_all(self):
        for profile in list(self.profiles.values()):
            await asyncio.sleep(0)
            yield profile.model_copy(deep=True)

    async def count(self) -> int:
        return len(self.profiles)

    async def create(self, user_id, email, nagrik_number=None, referral_code=None) -> UserProfileDocument:
        await asyncio.sleep(0)
        if user_id in self.profiles:
            raise DocumentConflictError(user_id)
        return self.add(user_id, nagrik_number, email=email, referral_code=referral_code).model_copy()

    def _require(self, user_id: str) -> UserProfileDocument:
        if user_id not in self.profiles:
            raise NotFoundError(user_id)
        return self.profiles[user_id]

    async def set_nagrik_number(self, user_id: str, nagrik_number: int) -> UserProfileDocument:
        if user_id in self.fail_nagrik_writes_for:
            raise ServiceRequestError("write failed")
        profile = self._require(user_id)
        if profile.nagrik_number:
            raise PreconditionFailedError(user_id)
        profile.nagrik_number = nagrik_number
        return profile.model_copy()

    async def set_constituency(self, user_id: str, constituency_id: int) -> UserProfileDocument:
        profile = self._require(user_id)
        if profile.constituency_id is not None:
            raise PreconditionFailedError(user_id)
        profile.constituency_id = constituency_id
        return profile.model_copy()

    async def add_engagement(self, user_id: str, points: int) -> UserProfileDocument:
        profile = self._require(user_id)
        profile.engagement_score += points
        return profile.model_copy()

    async def set_tier(self, user_id: str, tier_level: int) -> None:
        self._require(user_id).tier_level = tier_level

    async def delete(self, user_id: str) -> bool:
        return self.profiles.pop(user_id, None) is not None


class FakeNagrikRepository:
    def __init__(self) -> None:
        self.counter: Optional[int] = None
        self.lookups: dict[int, str] = {}
        self.unavailable = False

    async def increment_counter(self) -> int:
        if self.unavailable:
            raise ServiceRequestError("counter unavailable")
        await asyncio.sleep(0)
        if self.counter is None:
            raise NotFoundError("counter")
        self.counter += 1
        return self.counter

    async def seed_counter(self, value: int) -> bool:
        await asyncio.sleep(0)
        if self.counter is not None:
            return False
        self.counter = value
        return True

    async def claim(self, nagrik_number: int, user_id: str) -> bool:
        await asyncio.sleep(0)
        if nagrik_number in self.lookups:
            return False
        self.lookups[nagrik_number] = user_id
        return True

    async def get_owner(self, nagrik_number: int) -> Optional[str]:
        return self.lookups.get(nagrik_number)

    async def release(self, nagrik_number: int) -> None:
        self.lookups.pop(nagrik_number, None)


class FakeLedgerRepository:
    def __init__(self) -> None:
        self.scores: dict[int, ConstituencyScoreDocument] = {}
        self.markers: dict[tuple[str, int], QuestionnaireSubmissionDocument] = {}
        self.commits = 0

    async def get_scores(self, constituency_id: int) -> Optional[ConstituencyScoreDocument]:
        await asyncio.sleep(0)
        scores = self.scores.get(constituency_id)
        return scores.model_copy(deep=True) if scores else None

    async def ensure_scores(self, constituency_id: int) -> ConstituencyScoreDocument:
        if constituency_id not in self.scores:
            self.scores[constituency_id] = _stored(ConstituencyScoreDocument.empty(constituency_id))
        return await self.get_scores(constituency_id)

    async def get_submission(self, user_id: str, constituency_id: int):
        await asyncio.sleep(0)
        marker = self.markers.get((user_id, constituency_id))
        return marker.model_copy(deep=True) if marker else None

    async def list_scores(self) -> list[ConstituencyScoreDocument]:
        return [self.scores[cid].model_copy(deep=True) for cid in sorted(self.scores)]

    def _check_marker(self, submission, is_new: bool) -> None:
        stored = self.markers.get((submission.user_id, submission.constituency_id))
        if is_new and stored is not None:
            raise DocumentConflictError(submission.id)
        if not is_new and (stored is None or stored.etag != submission.etag):
            raise PreconditionFailedError(submission.id)

    async def commit_vote(self, submission, is_new: bool, vote: bool) -> None:
        await asyncio.sleep(0)
        # Validate every operation before applying any of them
        self._check_marker(submission, is_new)
        scores = self.scores.get(submission.constituency_id)
        if scores is None:
            raise NotFoundError("score")

        self.markers[(submission.user_id, submission.constituency_id)] = _stored(submission)
        if vote:
            scores.satisfaction_yes += 1
        else:
            scores.satisfaction_no += 1
        scores.satisfaction_total += 1
        scores.etag = _next_etag()
        self.commits += 1

    async def commit_submission(self, submission, is_new: bool, scores) -> None:
        await asyncio.sleep(0)
        self._check_marker(submission, is_new)
        stored = self.scores.get(scores.constituency_id)
        if stored is None or stored.etag != scores.etag:
            raise PreconditionFailedError("score")

        self.markers[(submission.user_id, submission.constituency_id)] = _stored(submission)
        self.scores[scores.constituency_id] = _stored(scores)
        self.commits += 1

    async def save_scores(self, scores) -> ConstituencyScoreDocument:
        stored = self.scores.get(scores.constituency_id)
        if stored is None or stored.etag != scores.etag:
            raise PreconditionFailedError("score")
        self.scores[scores.constituency_id] = _stored(scores)
        return self.scores[scores.constituency_id].model_copy()


class FakeDiscussionRepository:
    def __init__(self) -> None:
        self.posts: dict[str, DiscussionPostDocument] = {}
        self.comments: dict[str, CommentDocument] = {}
        self.reactions: dict[tuple[str, str], ReactionDocument] = {}
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def create_post(self, post: DiscussionPostDocument) -> DiscussionPostDocument:
        post.created_at = self._tick()
        self.posts[post.id] = _stored(post)
        return self.posts[post.id].model_copy()

    async def get_post(self, post_id: str) -> Optional[DiscussionPostDocument]:
        post = self.posts.get(post_id)
        return post.model_copy() if post else None

    async def list_posts(self, status=PostStatus.PUBLISHED, constituency_id=None, limit=20, offset=0):
        posts = [
            p
            for p in self.posts.values()
            if p.status == PostStatus(status).value
            and (constituency_id is None or p.constituency_id == constituency_id)
        ]
        posts.sort(key=lambda p: p.created_at, reverse=True)
        return [p.model_copy() for p in posts[offset : offset + limit]]

    async def set_post_status(self, post_id: str, status: PostStatus) -> DiscussionPostDocument:
        if post_id not in self.posts:
            raise NotFoundError(post_id)
        self.posts[post_id].status = PostStatus(status).value
        return self.posts[post_id].model_copy()

    async def increment_post_counters(self, post_id: str, deltas: dict[str, int]) -> None:
        post = self.posts[post_id]
        for field, delta in deltas.items():
            setattr(post, field, getattr(post, field) + delta)

    async def create_comment(self, comment: CommentDocument) -> CommentDocument:
        comment.created_at = self._tick()
        self.comments[comment.id] = _stored(comment)
        return self.comments[comment.id].model_copy()

    async def get_comment(self, post_id: str, comment_id: str) -> Optional[CommentDocument]:
        comment = self.comments.get(comment_id)
        if comment is None or comment.post_id != post_id:
            return None
        return comment.model_copy()

    async def list_comments(self, post_id: str, parent_id: Optional[str] = None) -> list[CommentDocument]:
        found = [c for c in self.comments.values() if c.post_id == post_id and c.parent_id == parent_id]
        return [c.model_copy() for c in sorted(found, key=lambda c: c.created_at)]

    async def increment_comment_counters(self, post_id: str, comment_id: str, deltas: dict[str, int]) -> None:
        comment = self.comments[comment_id]
        for field, delta in deltas.items():
            setattr(comment, field, getattr(comment, field) + delta)

    async def get_reaction(self, target_id: str, user_id: str) -> Optional[ReactionDocument]:
        reaction = self.reactions.get((target_id, user_id))
        return reaction.model_copy() if reaction else None

    async def create_reaction(self, reaction: ReactionDocument) -> ReactionDocument:
        key = (reaction.target_id, reaction.user_id)
        if key in self.reactions:
            raise DocumentConflictError(reaction.id)
        self.reactions[key] = _stored(reaction)
        return self.reactions[key].model_copy()

    async def replace_reaction(self, reaction: ReactionDocument) -> ReactionDocument:
        key = (reaction.target_id, reaction.user_id)
        if key not in self.reactions or self.reactions[key].etag != reaction.etag:
            raise PreconditionFailedError(reaction.id)
        self.reactions[key] = _stored(reaction)
        return self.reactions[key].model_copy()


class FakeBlogRepository:
    def __init__(self) -> None:
        self.blogs: dict[str, BlogDocument] = {}
        self.likes: set[str] = set()

    def add(self, **fields: Any) -> BlogDocument:
        blog = BlogDocument(**fields)
        self.blogs[blog.id] = blog
        return blog

    async def get_by_id(self, blog_id: str) -> Optional[BlogDocument]:
        return self.blogs.get(blog_id)

    async def list_published(self, category=None, search=None, limit=20, offset=0) -> list[BlogDocument]:
        blogs = [
            b
            for b in self.blogs.values()
            if b.status == BlogStatus.PUBLISHED.value
            and (category is None or b.category == category)
            and (search is None or search.lower() in b.title.lower())
        ]
        blogs.sort(key=lambda b: b.published_at or b.created_at, reverse=True)
        return blogs[offset : offset + limit]

    async def toggle_like(self, blog_id: str, user_id: str) -> tuple[bool, int]:
        like_id = BlogLikeDocument.make_id(blog_id, user_id)
        blog = self.blogs[blog_id]
        if like_id in self.likes:
            self.likes.remove(like_id)
            blog.likes -= 1
            return False, blog.likes
        self.likes.add(like_id)
        blog.likes += 1
        return True, blog.likes


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def nagrik_repo() -> FakeNagrikRepository:
    return FakeNagrikRepository()


@pytest.fixture
def ledger_repo() -> FakeLedgerRepository:
    return FakeLedgerRepository()


@pytest.fixture
def discussion_repo() -> FakeDiscussionRepository:
    return FakeDiscussionRepository()


@pytest.fixture
def blog_repo() -> FakeBlogRepository:
    return FakeBlogRepository()


@pytest.fixture
def allocator(user_repo: FakeUserRepository, nagrik_repo: FakeNagrikRepository):
    from services.nagrik_service import NagrikNumberAllocator

    return NagrikNumberAllocator(user_repo, nagrik_repo)


@pytest.fixture
def sample_candidates() -> list[dict[str, Any]]:
    """Three constituencies in dataset order (ids 1, 2, 3)."""
    return [
        {
            "area_name": f"Area {n}",
            "vidhayak_info": {"name": f"Candidate {n}", "party_name": "Party"},
            "dept_info": [
                {"dept_name": "Health", "work_info": "", "average_score": 0},
                {"dept_name": "Education", "work_info": "", "average_score": 0},
                {"dept_name": "Roads", "work_info": "", "average_score": 0},
            ],
        }
        for n in (1, 2, 3)
    ]


@pytest.fixture
def dataset(tmp_path, sample_candidates):
    """Dataset over temporary Hindi/English candidate files."""
    from services.constituency_data import ConstituencyDataset

    hindi = [dict(c, area_name=f"क्षेत्र {i}") for i, c in enumerate(sample_candidates, start=1)]
    (tmp_path / "candidates.json").write_text(json.dumps(hindi, ensure_ascii=False), encoding="utf-8")
    (tmp_path / "candidates_en.json").write_text(json.dumps(sample_candidates), encoding="utf-8")
    return ConstituencyDataset(tmp_path)


@pytest.fixture
async def app(user_repo, nagrik_repo, ledger_repo, discussion_repo, blog_repo, dataset) -> Any:
    """FastAPI application wired to the in-memory repositories."""
    from api.deps import get_dataset
    from main import app as fastapi_app
    from repositories.provider import (
        get_blog_repository,
        get_discussion_repository,
        get_ledger_repository,
        get_nagrik_repository,
        get_user_repository,
    )

    fastapi_app.dependency_overrides = {
        get_user_repository: lambda: user_repo,
        get_nagrik_repository: lambda: nagrik_repo,
        get_ledger_repository: lambda: ledger_repo,
        get_discussion_repository: lambda: discussion_repo,
        get_blog_repository: lambda: blog_repo,
        get_dataset: lambda: dataset,
    }
    yield fastapi_app
    fastapi_app.dependency_overrides = {}


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Bearer headers for a regular user (uid "citizen-1")."""
    from core.security import create_identity_token

    token = create_identity_token("citizen-1", email="citizen@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(user_repo: FakeUserRepository) -> dict[str, str]:
    """Bearer headers for an existing admin profile."""
    from core.security import create_identity_token

    user_repo.add("admin-1", nagrik_number=1001, is_admin=True)
    return {"Authorization": f"Bearer {create_identity_token('admin-1')}"}
