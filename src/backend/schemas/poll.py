"""
Poll-related Pydantic schemas.

All request and response bodies use camelCase keys on the wire.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Voting
# ============================================================================


class VoteRequest(CamelModel):
    """Vote submission. Validated by the vote ledger so errors come back as 400."""

    email: Optional[str] = None
    selected_issues: Optional[list[str]] = None


class VoteReceipt(CamelModel):
    selected_issues: list[str]
    voted_at: datetime


class VoteResponse(CamelModel):
    message: str
    vote: VoteReceipt


class CheckStatusRequest(CamelModel):
    email: Optional[str] = None


class CheckStatusResponse(CamelModel):
    has_voted: bool
    selected_issues: Optional[list[str]] = None


# ============================================================================
# Results and history
# ============================================================================


class LiveResultsResponse(CamelModel):
    """Current week's tally over the active issues."""

    week_identifier: str
    total_votes: int
    issue_counts: dict[str, int]
    issues: list[str] = Field(..., description="Active issues sorted by count, highest first")


class WeeklyAnalyticsResponse(CamelModel):
    """An archived week."""

    week_identifier: str
    week_ending: datetime
    total_votes: int
    issue_counts: dict[str, int]
    archived_at: datetime


# ============================================================================
# Operator actions
# ============================================================================


class ResetWeekResponse(CamelModel):
    message: str
    week_identifier: str
    votes_deleted: int
    archived: bool


class SweepResponse(CamelModel):
    current_week: str
    skipped: bool
    reason: Optional[str] = None
    weeks_archived: list[str]
    weeks_failed: list[str]
    votes_deleted: int


class IssueListResponse(CamelModel):
    issues: list[str]
    count: int


class UpdateActiveIssuesRequest(CamelModel):
    active_issues: list[str]


class UpdateActiveIssuesResponse(CamelModel):
    message: str
    active_issues: list[str]


class IssueNameRequest(CamelModel):
    issue_name: Optional[str] = None


class IssueChangeResponse(CamelModel):
    message: str
    issue: str
    active_issues: list[str]
    all_issues: list[str]


class EditIssueRequest(CamelModel):
    old_name: Optional[str] = None
    new_name: Optional[str] = None


class EditIssueResponse(CamelModel):
    message: str
    old_name: str
    new_name: str
    analytics_updated: int
    votes_updated: int


class SchedulerJob(CamelModel):
    id: str
    name: str
    next_run_time: Optional[str] = None


class SchedulerStatusResponse(CamelModel):
    running: bool
    timezone: str
    jobs: list[SchedulerJob]
