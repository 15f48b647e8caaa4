"""Repository module for Cosmos DB data access."""

from repositories.analytics_repository import CosmosAnalyticsRepository
from repositories.poll_config_repository import CosmosPollConfigRepository
from repositories.vote_repository import CosmosVoteRepository, VoteWriteConflict

__all__ = [
    "CosmosAnalyticsRepository",
    "CosmosPollConfigRepository",
    "CosmosVoteRepository",
    "VoteWriteConflict",
]
