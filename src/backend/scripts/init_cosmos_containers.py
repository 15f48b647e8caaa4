#!/usr/bin/env python3
"""
Create the IssuePulse database and containers.

Works against Azure and against the local Cosmos DB Emulator, using the
same AZURE_COSMOS_* settings as the API. Safe to run repeatedly.

Run with: python -m scripts.init_cosmos_containers
"""

import asyncio

import scripts._common  # noqa: F401 - Sets up sys.path for imports
from azure.cosmos import PartitionKey

from core.config import settings
from db.cosmos_session import (
    ANALYTICS_CONTAINER,
    POLL_CONFIG_CONTAINER,
    VOTES_CONTAINER,
    close_cosmos,
    get_cosmos_client,
)

# Container definitions with partition keys
CONTAINERS = [
    {"name": VOTES_CONTAINER, "partition_key": "/week_identifier"},
    {"name": ANALYTICS_CONTAINER, "partition_key": "/week_identifier"},
    {"name": POLL_CONFIG_CONTAINER, "partition_key": "/id"},
]


async def init_containers() -> None:
    """Create the database and every container if missing."""
    client = await get_cosmos_client()
    database_name = settings.AZURE_COSMOS_DATABASE

    try:
        print(f"\n📁 Creating database: {database_name}")
        database = await client.create_database_if_not_exists(id=database_name)
        print(f"   ✅ Database '{database_name}' ready")

        print("\n📦 Creating containers...")
        for container_def in CONTAINERS:
            container_name = container_def["name"]
            partition_key = container_def["partition_key"]

            await database.create_container_if_not_exists(
                id=container_name,
                partition_key=PartitionKey(path=partition_key),
            )
            print(f"   ✅ Container '{container_name}' (partition: {partition_key})")

        print("\n✨ Cosmos DB initialization complete!")
    except Exception as e:
        print(f"\n❌ Error: {e}")
        print("\n🔧 Troubleshooting:")
        print("   1. Check AZURE_COSMOS_ENDPOINT / AZURE_COSMOS_CONNECTION_STRING")
        print("   2. For the emulator, set AZURE_COSMOS_DISABLE_SSL=true")
        raise
    finally:
        await close_cosmos()


if __name__ == "__main__":
    print("=" * 60)
    print(f"{settings.APP_NAME} - Cosmos DB Initialization")
    print("=" * 60)
    asyncio.run(init_containers())
