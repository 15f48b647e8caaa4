"""
Pytest fixtures for IssuePulse backend tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("POLL_TIMEZONE", "America/Chicago")
os.environ.setdefault("ARCHIVE_SCHEDULER_ENABLED", "false")

from models.documents import PollConfigDocument  # noqa: E402
from tests.fakes import (  # noqa: E402
    CHICAGO,
    InMemoryAnalyticsRepository,
    InMemoryPollConfigRepository,
    InMemoryVoteRepository,
    RecordingBroadcaster,
)


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def issues() -> list[str]:
    return ["A", "B", "C", "D"]


@pytest.fixture
def vote_repo() -> InMemoryVoteRepository:
    return InMemoryVoteRepository()


@pytest.fixture
def analytics_repo() -> InMemoryAnalyticsRepository:
    return InMemoryAnalyticsRepository()


@pytest.fixture
def config_repo(issues: list[str]) -> InMemoryPollConfigRepository:
    return InMemoryPollConfigRepository(PollConfigDocument(active_issues=list(issues), all_valid_issues=list(issues)))


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def registry(config_repo, vote_repo, analytics_repo, issues):
    from services.issue_registry import IssueRegistry

    return IssueRegistry(
        config_repo=config_repo,
        vote_repo=vote_repo,
        analytics_repo=analytics_repo,
        active_issues=list(issues),
        all_issues=list(issues),
    )


@pytest.fixture
def ledger(vote_repo, registry, broadcaster):
    from services.vote_ledger import VoteLedgerService

    return VoteLedgerService(vote_repo, registry, broadcaster, tz=CHICAGO, max_selections=3)


@pytest.fixture
def engine(vote_repo, analytics_repo, registry, broadcaster):
    from services.archive_engine import ArchiveEngine

    return ArchiveEngine(vote_repo, analytics_repo, registry, broadcaster, tz=CHICAGO)


@pytest.fixture
def archive_scheduler(engine, vote_repo):
    from services.archive_scheduler import ArchiveScheduler

    return ArchiveScheduler(engine, vote_repo, tz=CHICAGO, hours_before=1, hours_after=2)


@pytest.fixture
def analytics_query(analytics_repo, registry):
    from services.analytics_service import AnalyticsQuery

    return AnalyticsQuery(analytics_repo, registry, tz=CHICAGO)


# =============================================================================
# API fixtures
# =============================================================================


@pytest.fixture
async def app(registry, ledger, archive_scheduler, analytics_query, broadcaster) -> AsyncGenerator[Any, None]:
    """FastAPI application with services backed by the in-memory repositories."""
    from api import deps
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[deps.get_registry] = lambda: registry
    fastapi_app.dependency_overrides[deps.get_vote_ledger] = lambda: ledger
    fastapi_app.dependency_overrides[deps.get_archive_scheduler] = lambda: archive_scheduler
    fastapi_app.dependency_overrides[deps.get_analytics_query] = lambda: analytics_query
    fastapi_app.dependency_overrides[deps.get_results_broadcaster] = lambda: broadcaster
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def operator_headers() -> dict[str, str]:
    """Authorization headers carrying a valid operator token."""
    from core.security import create_access_token

    token = create_access_token({"sub": "operator-1", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def member_headers() -> dict[str, str]:
    """Authorization headers carrying a valid token without an operator role."""
    from core.security import create_access_token

    token = create_access_token({"sub": "member-1", "role": "user"})
    return {"Authorization": f"Bearer {token}"}
