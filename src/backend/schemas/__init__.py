"""Schemas module initialization."""

from schemas.poll import (
    CheckStatusRequest,
    CheckStatusResponse,
    LiveResultsResponse,
    ResetWeekResponse,
    VoteRequest,
    VoteResponse,
    WeeklyAnalyticsResponse,
)

__all__ = [
    "CheckStatusRequest",
    "CheckStatusResponse",
    "LiveResultsResponse",
    "ResetWeekResponse",
    "VoteRequest",
    "VoteResponse",
    "WeeklyAnalyticsResponse",
]
