"""
Cosmos DB weekly analytics repository.

Stores one archived snapshot per week. The document id is the week
identifier, which makes repeated archives of a week overwrite the same
document instead of adding another.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from db.cosmos_session import (
    ANALYTICS_CONTAINER,
    query_items,
    read_item,
    replace_item,
    upsert_item,
)
from models.documents import WeeklyAnalyticsDocument, to_cosmos_timestamp

logger = logging.getLogger(__name__)


class CosmosAnalyticsRepository:
    """Repository for archived weekly poll analytics."""

    async def get_by_week(self, week_identifier: str) -> Optional[WeeklyAnalyticsDocument]:
        """Get the snapshot for a week (direct point read)."""
        data = await read_item(ANALYTICS_CONTAINER, week_identifier, partition_key=week_identifier)
        if data is None:
            return None
        return WeeklyAnalyticsDocument(**data)

    async def upsert_week(
        self,
        week_identifier: str,
        week_ending: datetime,
        total_votes: int,
        issue_counts: dict[str, int],
    ) -> tuple[WeeklyAnalyticsDocument, bool]:
        """
        Create or overwrite the snapshot for a week.

        Returns:
            (stored snapshot, created) where created is False when an existing
            snapshot was overwritten
        """
        now = datetime.now(timezone.utc)
        existing = await self.get_by_week(week_identifier)

        snapshot = WeeklyAnalyticsDocument(
            id=week_identifier,
            week_identifier=week_identifier,
            week_ending=week_ending,
            total_votes=total_votes,
            issue_counts=dict(issue_counts),
            archived_at=now,
            created_at=existing.created_at if existing and existing.created_at else now,
        )

        stored = await upsert_item(ANALYTICS_CONTAINER, snapshot.model_dump(mode="json"))
        if existing:
            logger.info(f"Analytics already existed for {week_identifier}, updated in place")
        return WeeklyAnalyticsDocument(**stored), existing is None

    async def list_recent(self, limit: int = 52) -> list[WeeklyAnalyticsDocument]:
        """Get the most recent snapshots, newest week first."""
        query = """
            SELECT * FROM c
            ORDER BY c.week_ending DESC
            OFFSET 0 LIMIT @limit
        """
        results = await query_items(
            ANALYTICS_CONTAINER,
            query,
            parameters=[{"name": "@limit", "value": limit}],
        )
        return [WeeklyAnalyticsDocument(**r) for r in results]

    async def list_week_ending_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[WeeklyAnalyticsDocument]:
        """Get snapshots whose week_ending falls in [start, end), oldest first."""
        query = """
            SELECT * FROM c
            WHERE c.week_ending >= @start
              AND c.week_ending < @end
            ORDER BY c.week_ending ASC
        """
        results = await query_items(
            ANALYTICS_CONTAINER,
            query,
            parameters=[
                {"name": "@start", "value": to_cosmos_timestamp(start)},
                {"name": "@end", "value": to_cosmos_timestamp(end)},
            ],
        )
        return [WeeklyAnalyticsDocument(**r) for r in results]

    async def rename_issue(self, old_name: str, new_name: str) -> int:
        """
        Move an issue's historical counts to a new name.

        Returns:
            Number of snapshots updated
        """
        query = """
            SELECT * FROM c
            WHERE IS_DEFINED(c.issue_counts[@old_name])
        """
        results = await query_items(
            ANALYTICS_CONTAINER,
            query,
            parameters=[{"name": "@old_name", "value": old_name}],
        )

        updated = 0
        for row in results:
            snapshot = WeeklyAnalyticsDocument(**row)
            count = snapshot.issue_counts.pop(old_name, 0)
            snapshot.issue_counts[new_name] = snapshot.issue_counts.get(new_name, 0) + count
            await replace_item(ANALYTICS_CONTAINER, snapshot.id, snapshot.model_dump(mode="json"))
            updated += 1
        return updated
