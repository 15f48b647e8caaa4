"""
Public weekly poll endpoints.

Handles:
- Vote submission and "have I voted?" checks
- Live results for the current week (HTTP and WebSocket)
- Archived weekly history
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, WebSocket, status

from api.deps import (
    get_analytics_query,
    get_registry,
    get_results_broadcaster,
    get_vote_ledger,
)
from schemas.poll import (
    CheckStatusRequest,
    CheckStatusResponse,
    IssueListResponse,
    LiveResultsResponse,
    VoteReceipt,
    VoteRequest,
    VoteResponse,
    WeeklyAnalyticsResponse,
)
from services.analytics_service import AnalyticsQuery
from services.broadcaster import WebSocketBroadcaster
from services.issue_registry import IssueRegistry
from services.vote_ledger import VoteConflictError, VoteLedgerService, VoteValidationError

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/vote", response_model=VoteResponse)
async def submit_vote(
    request: VoteRequest,
    ledger: Annotated[VoteLedgerService, Depends(get_vote_ledger)],
) -> VoteResponse:
    """
    Cast or replace this week's vote.

    A voter may change their selection any number of times during the week;
    only the latest selection is kept.
    """
    try:
        vote = await ledger.submit_vote(request.email, request.selected_issues)
    except VoteValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except VoteConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return VoteResponse(
        message="Vote submitted successfully!",
        vote=VoteReceipt(selected_issues=vote.selected_issues, voted_at=vote.voted_at),
    )


@router.post("/check-status", response_model=CheckStatusResponse)
async def check_status(
    request: CheckStatusRequest,
    ledger: Annotated[VoteLedgerService, Depends(get_vote_ledger)],
) -> CheckStatusResponse:
    """Check whether an email has voted in the current week."""
    try:
        result = await ledger.check_status(request.email)
    except VoteValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return CheckStatusResponse(has_voted=result.has_voted, selected_issues=result.selected_issues)


@router.get("/results", response_model=LiveResultsResponse)
async def get_results(
    ledger: Annotated[VoteLedgerService, Depends(get_vote_ledger)],
) -> LiveResultsResponse:
    """Get the current week's live tally."""
    results = await ledger.live_results()
    return LiveResultsResponse(
        week_identifier=results.week_identifier,
        total_votes=results.total_votes,
        issue_counts=results.issue_counts,
        issues=results.issues,
    )


@router.get("/analytics", response_model=list[WeeklyAnalyticsResponse])
async def get_analytics(
    query: Annotated[AnalyticsQuery, Depends(get_analytics_query)],
) -> list[WeeklyAnalyticsResponse]:
    """Get archived weekly results, newest first."""
    history = await query.recent_history()
    return [
        WeeklyAnalyticsResponse(
            week_identifier=record.week_identifier,
            week_ending=record.week_ending,
            total_votes=record.total_votes,
            issue_counts=record.issue_counts,
            archived_at=record.archived_at,
        )
        for record in history
    ]


@router.get("/active-issues", response_model=IssueListResponse)
async def get_active_issues(
    registry: Annotated[IssueRegistry, Depends(get_registry)],
) -> IssueListResponse:
    """Get the issues currently open for voting."""
    issues = registry.active_issues
    return IssueListResponse(issues=issues, count=len(issues))


@router.websocket("/ws")
async def results_stream(
    websocket: WebSocket,
    ledger: Annotated[VoteLedgerService, Depends(get_vote_ledger)],
    broadcaster: Annotated[WebSocketBroadcaster, Depends(get_results_broadcaster)],
) -> None:
    """Stream live results; the current tally is sent on connect."""
    await websocket.accept()

    initial = None
    try:
        initial = (await ledger.live_results()).as_event()
    except Exception as e:
        logger.warning("initial_results_unavailable", error=str(e))

    await broadcaster.serve(websocket, initial=initial)
