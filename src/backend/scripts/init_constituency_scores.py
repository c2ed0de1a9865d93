"""
Constituency score initialization script.

Creates a zeroed score document for every constituency that has none and
prints the score health report.
Run with: python -m scripts.init_constituency_scores
"""

import asyncio
import sys

from scripts._common import banner, build_ledger_service

from db.cosmos_session import close_cosmos


async def init_scores() -> bool:
    """Returns True when all score documents are healthy afterwards."""
    ledger = build_ledger_service()
    try:
        created = await ledger.initialize_missing()
        print(f"Created {len(created)} missing score document(s)")

        report = await ledger.health_check()
        print(f"Documents:     {report.total_documents}")
        print(f"Valid:         {report.valid}")
        print(f"Invalid ids:   {report.invalid_ids or 'none'}")
        print(f"Missing ids:   {report.missing_ids or 'none'}")
        print(f"Inconsistent:  {report.inconsistent_ids or 'none'}")
        return report.healthy
    finally:
        await close_cosmos()


if __name__ == "__main__":
    banner("Constituency score initialization")
    healthy = asyncio.run(init_scores())
    sys.exit(0 if healthy else 1)
