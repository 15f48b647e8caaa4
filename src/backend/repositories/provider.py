"""
Repository provider for dependency injection.

This module provides a unified interface for accessing repositories
backed by Cosmos DB, plus the protocols the services are written against.

Usage:
    from repositories.provider import get_vote_repository

    # In FastAPI dependencies:
    async def some_endpoint(
        vote_repo: VoteRepositoryProtocol = Depends(get_vote_repository),
    ):
        votes = await vote_repo.list_for_week(week)
"""

from datetime import datetime
from functools import lru_cache
from typing import Optional, Protocol, runtime_checkable

from models.documents import PollConfigDocument, VoteDocument, WeeklyAnalyticsDocument

# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class VoteRepositoryProtocol(Protocol):
    """Protocol defining vote ledger operations."""

    async def get_vote(self, voter_hash: str, week_identifier: str) -> Optional[VoteDocument]: ...
    async def list_for_week(self, week_identifier: str) -> list[VoteDocument]: ...
    async def list_week_identifiers(self) -> list[str]: ...
    async def upsert_vote(
        self,
        voter_hash: str,
        week_identifier: str,
        selected_issues: list[str],
        voted_at: datetime,
    ) -> tuple[VoteDocument, bool]: ...
    async def delete_votes(self, votes: list[VoteDocument], conditional: bool = True) -> int: ...
    async def rename_issue(self, old_name: str, new_name: str) -> int: ...


@runtime_checkable
class AnalyticsRepositoryProtocol(Protocol):
    """Protocol defining archived analytics operations."""

    async def get_by_week(self, week_identifier: str) -> Optional[WeeklyAnalyticsDocument]: ...
    async def upsert_week(
        self,
        week_identifier: str,
        week_ending: datetime,
        total_votes: int,
        issue_counts: dict[str, int],
    ) -> tuple[WeeklyAnalyticsDocument, bool]: ...
    async def list_recent(self, limit: int = 52) -> list[WeeklyAnalyticsDocument]: ...
    async def list_week_ending_between(
        self, start: datetime, end: datetime
    ) -> list[WeeklyAnalyticsDocument]: ...
    async def rename_issue(self, old_name: str, new_name: str) -> int: ...


@runtime_checkable
class PollConfigRepositoryProtocol(Protocol):
    """Protocol defining issue registry persistence."""

    async def get(self) -> Optional[PollConfigDocument]: ...
    async def save(self, active_issues: list[str], all_valid_issues: list[str]) -> PollConfigDocument: ...


# =============================================================================
# Repository Factory Functions
# =============================================================================


@lru_cache
def get_vote_repository() -> VoteRepositoryProtocol:
    """Get the vote ledger repository."""
    from repositories.vote_repository import CosmosVoteRepository

    return CosmosVoteRepository()


@lru_cache
def get_analytics_repository() -> AnalyticsRepositoryProtocol:
    """Get the weekly analytics repository."""
    from repositories.analytics_repository import CosmosAnalyticsRepository

    return CosmosAnalyticsRepository()


@lru_cache
def get_poll_config_repository() -> PollConfigRepositoryProtocol:
    """Get the poll configuration repository."""
    from repositories.poll_config_repository import CosmosPollConfigRepository

    return CosmosPollConfigRepository()
