"""Document models module."""

from models.documents import (
    DEFAULT_CONFIG_NAME,
    CosmosDocument,
    PollConfigDocument,
    VoteDocument,
    WeeklyAnalyticsDocument,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "CosmosDocument",
    "PollConfigDocument",
    "VoteDocument",
    "WeeklyAnalyticsDocument",
]
