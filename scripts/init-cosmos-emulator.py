#!/usr/bin/env python3
"""
Initialize Cosmos DB Emulator with the Charcha Manch database and containers.

Run this once after starting the emulator to set up the local development
environment.

Prerequisites:
1. Install Cosmos DB Emulator: https://aka.ms/cosmosdb-emulator
2. Start the emulator (it runs on https://localhost:8081)
3. Run this script: python scripts/init-cosmos-emulator.py

The emulator uses a well-known key that is safe for local development only.
"""

import asyncio

from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient

# Cosmos DB Emulator connection details (well-known credentials)
EMULATOR_ENDPOINT = "https://localhost:8081"
EMULATOR_KEY = "C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw=="
DATABASE_NAME = "charcha-manch"

# Container definitions with partition keys
CONTAINERS = [
    {"name": "user_profiles", "partition_key": "/id"},
    {"name": "nagrik-lookup", "partition_key": "/id"},
    {"name": "counters", "partition_key": "/id"},
    # Score aggregate and submission markers share a partition per constituency
    {"name": "constituency_scores", "partition_key": "/constituency_key"},
    {"name": "discussion_posts", "partition_key": "/id"},
    {"name": "comments", "partition_key": "/post_id"},
    {"name": "reactions", "partition_key": "/target_id"},
    {"name": "blogs", "partition_key": "/id"},
    {"name": "blog_likes", "partition_key": "/blog_id"},
]


async def init_emulator():
    """Initialize the Cosmos DB Emulator with required database and containers."""
    print(f"Connecting to Cosmos DB Emulator at {EMULATOR_ENDPOINT}...")

    # Disable SSL verification for emulator's self-signed certificate
    client = CosmosClient(
        url=EMULATOR_ENDPOINT,
        credential=EMULATOR_KEY,
        connection_verify=False,
    )

    try:
        print(f"\nCreating database: {DATABASE_NAME}")
        database = await client.create_database_if_not_exists(id=DATABASE_NAME)
        print(f"   Database '{DATABASE_NAME}' ready")

        print("\nCreating containers...")
        for container_def in CONTAINERS:
            container_name = container_def["name"]
            partition_key = container_def["partition_key"]
            await database.create_container_if_not_exists(
                id=container_name,
                partition_key=PartitionKey(path=partition_key),
            )
            print(f"   Container '{container_name}' (partition: {partition_key})")

        print("\nCosmos DB Emulator initialization complete!")
        print("\nNext steps:")
        print("   1. Set AZURE_COSMOS_CONNECTION_STRING and SECRET_KEY in src/backend/.env")
        print("   2. Initialize scores: cd src/backend && python -m scripts.init_constituency_scores")
        print("   3. Start the backend: uvicorn main:app --reload")

    except Exception as e:
        print(f"\nError: {e}")
        print("\nTroubleshooting:")
        print("   1. Make sure Cosmos DB Emulator is running")
        print("   2. Open https://localhost:8081/_explorer/index.html in browser")
        raise
    finally:
        await client.close()


if __name__ == "__main__":
    print("=" * 60)
    print("Charcha Manch - Cosmos DB Emulator Initialization")
    print("=" * 60)
    asyncio.run(init_emulator())
