"""
Shared dependencies for API endpoints.

Includes:
- Operator JWT authentication for the protected poll endpoints
- Service providers wired to the Cosmos repositories
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from core.config import settings
from core.security import decode_token
from repositories.provider import get_analytics_repository, get_vote_repository
from services.analytics_service import AnalyticsQuery
from services.archive_scheduler import ArchiveScheduler, create_archive_scheduler
from services.broadcaster import WebSocketBroadcaster, get_broadcaster
from services.issue_registry import IssueRegistry, get_issue_registry
from services.vote_ledger import VoteLedgerService

logger = structlog.get_logger(__name__)

# Security schemes
security = HTTPBearer(auto_error=False)


class Operator(BaseModel):
    """Authenticated caller of an operator endpoint."""

    id: str
    role: str


# =============================================================================
# Operator Authentication (JWT-based)
# =============================================================================


async def get_current_operator(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Operator:
    """
    Extract and validate the operator from the JWT token.

    Raises:
        HTTPException: 401 if the token is missing or invalid, 403 if the
            role is not an operator role.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    operator_id = payload.get("sub")
    if operator_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = payload.get("role")
    if role not in settings.operator_roles_list:
        logger.warning("non_operator_access_attempt", operator_id=operator_id, role=role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator access required",
        )

    return Operator(id=str(operator_id), role=role)


CurrentOperator = Annotated[Operator, Depends(get_current_operator)]


# =============================================================================
# Service Providers
# =============================================================================


def get_registry() -> IssueRegistry:
    return get_issue_registry()


def get_results_broadcaster() -> WebSocketBroadcaster:
    return get_broadcaster()


def get_vote_ledger(
    registry: Annotated[IssueRegistry, Depends(get_registry)],
    broadcaster: Annotated[WebSocketBroadcaster, Depends(get_results_broadcaster)],
) -> VoteLedgerService:
    return VoteLedgerService(get_vote_repository(), registry, broadcaster)


def get_archive_scheduler(
    broadcaster: Annotated[WebSocketBroadcaster, Depends(get_results_broadcaster)],
) -> ArchiveScheduler:
    return create_archive_scheduler(broadcaster)


def get_analytics_query(
    registry: Annotated[IssueRegistry, Depends(get_registry)],
) -> AnalyticsQuery:
    return AnalyticsQuery(get_analytics_repository(), registry)
