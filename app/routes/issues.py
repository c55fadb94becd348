"""
Issue endpoints - citizen reporting, community voting and rating.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.errors import CivicIssueError
from app.models.base import IssueListResponse, IssueResponse
from app.models.issue import IssueCreate, RatingRequest, VoteRequest
from app.models.user import Principal
from app.services.issue_service import IssueService, get_issue_service
from app.services.vote_aggregator import vote_summary
from app.utils.security import get_current_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/issues", tags=["Issues"])


class VoteResponse(IssueResponse):
    summary: Dict


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(
    draft: IssueCreate,
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    """
    Report a new civic issue.

    The issue starts PENDING with an empty vote ledger.
    """
    try:
        issue = service.create_issue(actor, draft)
        return IssueResponse(message="Issue reported", issue=issue)
    except CivicIssueError:
        raise
    except Exception as e:
        logger.error(f"❌ POST /issues - creation failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Issue creation failed: {str(e)}"
        )


@router.get("", response_model=IssueListResponse)
async def list_issues(
    author_id: Optional[str] = Query(None, description="Issues reported by this user"),
    city: Optional[str] = Query(None, description="Issues in this district (case-insensitive)"),
    service: IssueService = Depends(get_issue_service),
):
    """Community feed by district, or a user's own reports."""
    if author_id:
        issues = service.query_by_author(author_id)
    elif city:
        issues = service.query_by_city(city)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide either author_id or city"
        )
    return IssueListResponse(count=len(issues), issues=issues)


@router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(issue_id: str, service: IssueService = Depends(get_issue_service)):
    return IssueResponse(issue=service.get_issue(issue_id))


@router.post("/{issue_id}/vote", response_model=VoteResponse)
async def vote_on_issue(
    issue_id: str,
    request: VoteRequest,
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    """
    Confirm (up) or flag (down) an issue.

    If user already voted with same direction, vote is removed (toggle).
    If user voted the other direction, vote is switched.
    """
    issue = service.vote(actor, issue_id, request.direction)
    return VoteResponse(message="Vote recorded", issue=issue, summary=vote_summary(issue.votes, actor.id))


@router.post("/{issue_id}/rating", response_model=IssueResponse)
async def rate_issue(
    issue_id: str,
    request: RatingRequest,
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    """Author's 1-5 star rating of a resolved issue. Re-rating overwrites."""
    issue = service.rate(actor, issue_id, request.stars, request.comment)
    return IssueResponse(message="Thanks for your feedback", issue=issue)
