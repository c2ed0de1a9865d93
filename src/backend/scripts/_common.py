"""
Common utilities for backend scripts.

Sets up the Python path so scripts can be run directly
(python scripts/foo.py) as well as as modules (python -m scripts.foo), and
builds the repositories and services scripts share.

Usage:
    import scripts._common  # noqa: F401
    # Now you can import from db, models, services, etc.
"""

import sys
from pathlib import Path

# Add backend root to path for imports
BACKEND_ROOT = Path(__file__).parent.parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from repositories.cosmos_ledger_repository import CosmosLedgerRepository  # noqa: E402
from repositories.cosmos_nagrik_repository import CosmosNagrikRepository  # noqa: E402
from repositories.cosmos_user_repository import CosmosUserRepository  # noqa: E402
from services.ledger_service import ConstituencyLedgerService  # noqa: E402
from services.migration_service import NagrikMigrationService  # noqa: E402
from services.nagrik_service import NagrikNumberAllocator  # noqa: E402


def build_migration_service() -> NagrikMigrationService:
    user_repo = CosmosUserRepository()
    allocator = NagrikNumberAllocator(user_repo, CosmosNagrikRepository())
    return NagrikMigrationService(user_repo, allocator)


def build_ledger_service() -> ConstituencyLedgerService:
    return ConstituencyLedgerService(CosmosLedgerRepository())


def banner(title: str) -> None:
    print("=" * 50)
    print(title)
    print("=" * 50)
