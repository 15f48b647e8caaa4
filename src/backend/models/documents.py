"""
Cosmos DB document models for IssuePulse.

These Pydantic models define the document structure stored in Cosmos DB.

Container Strategy:
- votes: One vote per voter per week (partition: /week_identifier, id: voter_hash)
- poll-analytics: One archived snapshot per week (partition: /week_identifier,
  id: week_identifier)
- poll-config: Issue registry (partition: /id, single "default" document)
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

DEFAULT_CONFIG_NAME = "default"


def to_cosmos_timestamp(value: datetime) -> str:
    """
    Serialize a datetime for storage.

    Always UTC with microseconds and a 'Z' suffix, so that string comparison
    inside Cosmos SQL queries matches chronological order.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# ============================================================================
# Base Document Model
# ============================================================================


class CosmosDocument(BaseModel):
    """
    Base class for Cosmos DB documents.

    All documents have:
    - id: Unique identifier within the logical partition
    - _etag: ETag for optimistic concurrency (managed by Cosmos DB, read-only here)
    """

    model_config = ConfigDict(
        # Cosmos system properties (_rid, _ts, _self, ...) are dropped on load
        extra="ignore",
        populate_by_name=True,
    )

    id: str
    etag: Optional[str] = Field(default=None, alias="_etag", exclude=True)


# ============================================================================
# Poll Documents
# ============================================================================


class VoteDocument(CosmosDocument):
    """
    Vote document stored in the 'votes' container.

    Partition key: /week_identifier
    The document id is the voter hash, so a voter can hold at most one
    document per week partition.

    PRIVACY NOTE: the raw email is never stored, only its one-way digest.
    """

    voter_hash: str
    selected_issues: list[str]
    week_identifier: str
    voted_at: datetime

    @model_validator(mode="before")
    @classmethod
    def default_id_to_voter_hash(cls, data):
        if isinstance(data, dict) and not data.get("id") and data.get("voter_hash"):
            data = {**data, "id": data["voter_hash"]}
        return data

    @field_serializer("voted_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return to_cosmos_timestamp(value)


class WeeklyAnalyticsDocument(CosmosDocument):
    """
    Archived weekly snapshot stored in the 'poll-analytics' container.

    Partition key: /week_identifier (id == week_identifier)
    issue_counts holds an entry for every issue known at archive time.
    """

    week_identifier: str
    week_ending: datetime
    total_votes: int = 0
    issue_counts: dict[str, int] = Field(default_factory=dict)
    archived_at: datetime
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def default_id_to_week(cls, data):
        if isinstance(data, dict) and not data.get("id") and data.get("week_identifier"):
            data = {**data, "id": data["week_identifier"]}
        return data

    @field_serializer("week_ending", "archived_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return to_cosmos_timestamp(value)

    @field_serializer("created_at")
    def serialize_created_at(self, value: Optional[datetime]) -> Optional[str]:
        return to_cosmos_timestamp(value) if value else None


class PollConfigDocument(CosmosDocument):
    """
    Issue registry stored in the 'poll-config' container.

    Partition key: /id
    active_issues is always a subset of all_valid_issues.
    """

    id: str = DEFAULT_CONFIG_NAME
    active_issues: list[str] = Field(default_factory=list)
    all_valid_issues: list[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @field_serializer("updated_at")
    def serialize_updated_at(self, value: Optional[datetime]) -> Optional[str]:
        return to_cosmos_timestamp(value) if value else None
