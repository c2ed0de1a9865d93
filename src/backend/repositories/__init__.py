"""Repository modules for database access."""

from repositories.cosmos_blog_repository import CosmosBlogRepository
from repositories.cosmos_discussion_repository import CosmosDiscussionRepository
from repositories.cosmos_ledger_repository import CosmosLedgerRepository
from repositories.cosmos_nagrik_repository import CosmosNagrikRepository
from repositories.cosmos_user_repository import CosmosUserRepository

__all__ = [
    "CosmosBlogRepository",
    "CosmosDiscussionRepository",
    "CosmosLedgerRepository",
    "CosmosNagrikRepository",
    "CosmosUserRepository",
]
