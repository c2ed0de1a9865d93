"""
Repository provider for dependency injection.

Usage:
    from repositories.provider import get_ledger_repository

    # In FastAPI dependencies:
    async def some_endpoint(
        ledger_repo: LedgerRepositoryProtocol = Depends(get_ledger_repository),
    ):
        scores = await ledger_repo.get_scores(constituency_id)

Tests override these dependencies with in-memory implementations of the
protocols below.
"""

import logging
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from core.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


def is_cosmos_enabled() -> bool:
    """Check if Cosmos DB is configured and enabled."""
    # Either AZURE_COSMOS_ENDPOINT (RBAC) or AZURE_COSMOS_CONNECTION_STRING (emulator)
    return settings.cosmos_configured


def _require_cosmos() -> None:
    if not is_cosmos_enabled():
        raise RuntimeError(
            "Cosmos DB is not configured. Set AZURE_COSMOS_ENDPOINT or AZURE_COSMOS_CONNECTION_STRING."
        )


# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class UserRepositoryProtocol(Protocol):
    """Protocol defining user profile repository operations."""

    async def get_by_id(self, user_id: str): ...
    async def get_max_nagrik_number(self) -> Optional[int]: ...
    async def get_nagrik_numbers(self, user_ids: list[str]) -> dict[str, Optional[int]]: ...
    def iter_all(self) -> AsyncIterator: ...
    async def create(self, user_id: str, email: Optional[str], nagrik_number: Optional[int] = None, **kwargs): ...
    async def set_nagrik_number(self, user_id: str, nagrik_number: int): ...
    async def set_constituency(self, user_id: str, constituency_id: int): ...
    async def add_engagement(self, user_id: str, points: int): ...
    async def set_tier(self, user_id: str, tier_level: int) -> None: ...
    async def delete(self, user_id: str) -> bool: ...


@runtime_checkable
class NagrikRepositoryProtocol(Protocol):
    """Protocol defining the nagrik counter and lookup index operations."""

    async def increment_counter(self) -> int: ...
    async def seed_counter(self, value: int) -> bool: ...
    async def claim(self, nagrik_number: int, user_id: str) -> bool: ...
    async def get_owner(self, nagrik_number: int) -> Optional[str]: ...
    async def release(self, nagrik_number: int) -> None: ...


@runtime_checkable
class LedgerRepositoryProtocol(Protocol):
    """Protocol defining constituency ledger operations."""

    async def get_scores(self, constituency_id: int): ...
    async def ensure_scores(self, constituency_id: int): ...
    async def get_submission(self, user_id: str, constituency_id: int): ...
    async def list_scores(self) -> list: ...
    async def commit_vote(self, submission, is_new: bool, vote: bool) -> None: ...
    async def commit_submission(self, submission, is_new: bool, scores) -> None: ...
    async def save_scores(self, scores): ...


# =============================================================================
# Repository Factory Functions
# =============================================================================


async def get_user_repository():
    """Get the user profile repository."""
    _require_cosmos()
    from repositories.cosmos_user_repository import CosmosUserRepository

    return CosmosUserRepository()


async def get_nagrik_repository():
    _require_cosmos()
    from repositories.cosmos_nagrik_repository import CosmosNagrikRepository

    return CosmosNagrikRepository()


async def get_ledger_repository():
    """Get the constituency ledger repository."""
    _require_cosmos()
    from repositories.cosmos_ledger_repository import CosmosLedgerRepository

    return CosmosLedgerRepository()


async def get_discussion_repository():
    _require_cosmos()
    from repositories.cosmos_discussion_repository import CosmosDiscussionRepository

    return CosmosDiscussionRepository()


async def get_blog_repository():
    _require_cosmos()
    from repositories.cosmos_blog_repository import CosmosBlogRepository

    return CosmosBlogRepository()
