"""
Cosmos DB poll configuration repository.

Persists the issue registry as a single document.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from db.cosmos_session import POLL_CONFIG_CONTAINER, read_item, upsert_item
from models.documents import DEFAULT_CONFIG_NAME, PollConfigDocument

logger = logging.getLogger(__name__)


class CosmosPollConfigRepository:
    """Repository for the poll issue configuration."""

    async def get(self, config_name: str = DEFAULT_CONFIG_NAME) -> Optional[PollConfigDocument]:
        data = await read_item(POLL_CONFIG_CONTAINER, config_name, partition_key=config_name)
        if data is None:
            return None
        return PollConfigDocument(**data)

    async def save(
        self,
        active_issues: list[str],
        all_valid_issues: list[str],
        config_name: str = DEFAULT_CONFIG_NAME,
    ) -> PollConfigDocument:
        config = PollConfigDocument(
            id=config_name,
            active_issues=list(active_issues),
            all_valid_issues=list(all_valid_issues),
            updated_at=datetime.now(timezone.utc),
        )
        stored = await upsert_item(POLL_CONFIG_CONTAINER, config.model_dump(mode="json"))
        logger.info(
            f"Saved poll configuration: {len(active_issues)} active, {len(all_valid_issues)} total issues"
        )
        return PollConfigDocument(**stored)
