"""
Cosmos DB Vote repository.

Handles the weekly vote ledger with privacy-preserving design.
Partition key is week_identifier for efficient per-week queries, and the
document id is the voter hash, which makes (voter_hash, week_identifier)
unique at the storage level.
"""

import logging
from datetime import datetime
from typing import Optional

from azure.core import MatchConditions
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from db.cosmos_session import (
    VOTES_CONTAINER,
    create_item,
    delete_item,
    query_items,
    read_item,
    replace_item,
)
from models.documents import VoteDocument

logger = logging.getLogger(__name__)


class VoteWriteConflict(Exception):
    """A vote could be neither created nor updated after one retry."""

    pass


class CosmosVoteRepository:
    """
    Repository for the weekly vote ledger using Cosmos DB.

    Privacy Design:
    - Email is NEVER stored with votes
    - voter_hash = SHA-256(normalized email) identifies a voter across weeks
      without revealing who they are
    """

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_vote(self, voter_hash: str, week_identifier: str) -> Optional[VoteDocument]:
        """Get a voter's vote for a week (direct point read)."""
        data = await read_item(VOTES_CONTAINER, voter_hash, partition_key=week_identifier)
        if data is None:
            return None
        return VoteDocument(**data)

    async def list_for_week(self, week_identifier: str) -> list[VoteDocument]:
        """Get every active vote tagged with a week (single-partition query)."""
        query = """
            SELECT * FROM c
            WHERE c.week_identifier = @week_identifier
        """
        results = await query_items(
            VOTES_CONTAINER,
            query,
            parameters=[{"name": "@week_identifier", "value": week_identifier}],
            partition_key=week_identifier,
        )
        return [VoteDocument(**r) for r in results]

    async def list_week_identifiers(self) -> list[str]:
        """
        Get the distinct week tokens that still hold active votes.

        Note: This is a cross-partition query; it only runs from the archive sweep.
        """
        query = "SELECT DISTINCT VALUE c.week_identifier FROM c"
        results = await query_items(VOTES_CONTAINER, query)
        return sorted(str(week) for week in results if week)

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def upsert_vote(
        self,
        voter_hash: str,
        week_identifier: str,
        selected_issues: list[str],
        voted_at: datetime,
    ) -> tuple[VoteDocument, bool]:
        """
        Record a voter's selection for a week (last write wins).

        If a concurrent first-time submission wins the create, this call is
        retried once as a replace of the winner's document. If the row read
        here is deleted before it can be replaced, it is created once instead.

        Returns:
            (stored vote, created) where created is False for an update

        Raises:
            VoteWriteConflict: If the single retry also loses a race (the row
                vanished after a failed create, or reappeared after a failed
                replace)
        """
        vote = VoteDocument(
            id=voter_hash,
            voter_hash=voter_hash,
            selected_issues=list(selected_issues),
            week_identifier=week_identifier,
            voted_at=voted_at,
        )
        body = vote.model_dump(mode="json")

        existing = await read_item(VOTES_CONTAINER, voter_hash, partition_key=week_identifier)
        retried_create = existing is None
        if retried_create:
            try:
                stored = await create_item(VOTES_CONTAINER, body)
                logger.debug(f"Created vote for week {week_identifier}")
                return VoteDocument(**stored), True
            except CosmosResourceExistsError:
                logger.info(f"Concurrent first vote for week {week_identifier}, retrying as update")

        try:
            stored = await replace_item(VOTES_CONTAINER, voter_hash, body)
        except CosmosResourceNotFoundError as e:
            if retried_create:
                raise VoteWriteConflict(
                    f"Vote for week {week_identifier} vanished while being updated"
                ) from e
            # Deleted (e.g. by a week reset) between the read and the replace
            logger.info(f"Vote for week {week_identifier} removed before update, retrying as create")
            try:
                stored = await create_item(VOTES_CONTAINER, body)
            except CosmosResourceExistsError as exists:
                raise VoteWriteConflict(
                    f"Vote for week {week_identifier} changed concurrently while being recreated"
                ) from exists
            return VoteDocument(**stored), True

        logger.debug(f"Updated vote for week {week_identifier}")
        return VoteDocument(**stored), False

    async def delete_votes(self, votes: list[VoteDocument], conditional: bool = True) -> int:
        """
        Delete the given votes.

        With conditional set, deletes match each document's etag when it is
        known, so a vote rewritten after it was read stays in the ledger.
        Votes that are already gone are skipped.

        Returns:
            Number of documents actually deleted
        """
        deleted = 0
        for vote in votes:
            kwargs = {}
            if conditional and vote.etag:
                kwargs = {"etag": vote.etag, "match_condition": MatchConditions.IfNotModified}
            try:
                await delete_item(
                    VOTES_CONTAINER,
                    vote.id,
                    partition_key=vote.week_identifier,
                    **kwargs,
                )
                deleted += 1
            except CosmosResourceNotFoundError:
                logger.debug(f"Vote already removed from week {vote.week_identifier}")
            except CosmosAccessConditionFailedError:
                logger.info(f"Vote in week {vote.week_identifier} changed during archive, left active")
        return deleted

    async def rename_issue(self, old_name: str, new_name: str) -> int:
        """
        Rewrite an issue name inside every active vote that selected it.

        Returns:
            Number of votes updated
        """
        query = """
            SELECT * FROM c
            WHERE ARRAY_CONTAINS(c.selected_issues, @old_name)
        """
        results = await query_items(
            VOTES_CONTAINER,
            query,
            parameters=[{"name": "@old_name", "value": old_name}],
        )

        updated = 0
        for row in results:
            vote = VoteDocument(**row)
            vote.selected_issues = [new_name if issue == old_name else issue for issue in vote.selected_issues]
            try:
                await replace_item(VOTES_CONTAINER, vote.id, vote.model_dump(mode="json"))
                updated += 1
            except CosmosResourceNotFoundError:
                logger.debug(f"Vote in week {vote.week_identifier} archived before rename")
        return updated
