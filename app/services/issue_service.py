"""
Issue Service - the operation surface of the issue lifecycle engine.

Both the citizen-facing and the administrator-facing routes call these
methods; there is one implementation of voting and of status changes.
Every mutating call returns the complete updated Issue or raises a typed
CivicIssueError.
"""

import logging
from datetime import datetime, timezone
from statistics import mean
from typing import Callable, List, Optional

from app.core.errors import Unauthorized, ValidationError
from app.models.issue import CityStats, Issue, IssueCreate, IssueStatus, VoteDirection
from app.models.user import Principal
from app.services.issue_store import IssueStore
from app.services.status_workflow import StatusWorkflowEngine
from app.services.vote_aggregator import cast_vote

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IssueService:
    """Service for reporting, verifying and triaging civic issues."""

    def __init__(self, store: IssueStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock
        self.workflow = StatusWorkflowEngine()

    # ------------------------------------------------------------------
    # Citizen operations
    # ------------------------------------------------------------------

    def create_issue(self, actor: Optional[Principal], draft: IssueCreate) -> Issue:
        self._require_principal(actor)
        return self.store.create(draft, actor, self.clock())

    def get_issue(self, issue_id: str) -> Issue:
        return self.store.get(issue_id)

    def vote(self, actor: Optional[Principal], issue_id: str, direction: VoteDirection) -> Issue:
        """
        Confirm (up) or flag (down) an issue.

        Repeating the same vote withdraws it; voting the other way switches.
        """
        self._require_principal(actor)
        now = self.clock()
        issue = self.store.mutate(issue_id, lambda current: cast_vote(current, actor.id, direction, now))
        logger.info(
            f"Vote {VoteDirection(direction).value} by {actor.id} on {issue_id}: "
            f"up={issue.votes.up_count} down={issue.votes.down_count}"
        )
        return issue

    def rate(self, actor: Optional[Principal], issue_id: str, stars: int,
             comment: Optional[str] = None) -> Issue:
        self._require_principal(actor)
        now = self.clock()
        issue = self.store.mutate(
            issue_id,
            lambda current: self.workflow.rate(current, actor.id, stars, comment, now),
        )
        logger.info(f"Issue {issue_id} rated {stars}/5 by its author")
        return issue

    def query_by_author(self, author_id: str) -> List[Issue]:
        return self.store.query_by_author(author_id)

    def query_by_city(self, city_district: str) -> List[Issue]:
        return self.store.query_by_city(city_district)

    # ------------------------------------------------------------------
    # Administrator operations
    # ------------------------------------------------------------------

    def set_status(self, actor: Optional[Principal], issue_id: str, status: IssueStatus,
                   note: Optional[str] = None) -> Issue:
        """Move an issue between PENDING and IN_PROGRESS."""
        try:
            status = IssueStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown status: {status}")

        if status == IssueStatus.PENDING:
            transition = self.workflow.set_pending
        elif status == IssueStatus.IN_PROGRESS:
            transition = self.workflow.set_in_progress
        else:
            raise ValidationError(f"Use the resolve or reject action to set {status.value}")

        now = self.clock()
        issue = self.store.mutate(issue_id, lambda current: transition(current, actor, now, note))
        logger.info(f"✅ Admin {actor.id} set issue {issue_id} to {status.value}")
        return issue

    def resolve(self, actor: Optional[Principal], issue_id: str, evidence_image: Optional[str],
                note: Optional[str] = None) -> Issue:
        now = self.clock()
        issue = self.store.mutate(
            issue_id,
            lambda current: self.workflow.resolve(current, actor, evidence_image, now, note),
        )
        logger.info(f"✅ Admin {actor.id} resolved issue {issue_id}")
        return issue

    def reject(self, actor: Optional[Principal], issue_id: str, reason: str,
               note: Optional[str] = None) -> Issue:
        now = self.clock()
        issue = self.store.mutate(
            issue_id,
            lambda current: self.workflow.reject(current, actor, reason, now, note),
        )
        logger.info(f"✅ Admin {actor.id} rejected issue {issue_id} ({issue.rejection_reason.value})")
        return issue

    def list_issues(self, actor: Optional[Principal], city_district: Optional[str] = None,
                    status: Optional[IssueStatus] = None, category: Optional[str] = None) -> List[Issue]:
        """
        Dashboard listing with optional status/category filters.

        City admins see their own district; super admins may pass any
        district or none for every issue.
        """
        if actor is None or not actor.is_admin:
            raise Unauthorized()

        district = city_district or actor.city_district
        if district:
            if not actor.can_administer(district):
                raise Unauthorized()
            issues = self.store.query_by_city(district)
        elif actor.can_administer(None):
            issues = self.store.query_all()
        else:
            raise Unauthorized()

        if status is not None:
            issues = [issue for issue in issues if issue.status == IssueStatus(status)]
        if category:
            issues = [issue for issue in issues if issue.category == category]
        return issues

    def city_stats(self, actor: Optional[Principal], city_district: Optional[str] = None) -> CityStats:
        district = city_district or (actor.city_district if actor else None)
        issues = self.list_issues(actor, district)

        ratings = [issue.rating for issue in issues if issue.rating is not None]
        return CityStats(
            city_district=district or "ALL",
            total=len(issues),
            pending=sum(1 for issue in issues if issue.status == IssueStatus.PENDING),
            in_progress=sum(1 for issue in issues if issue.status == IssueStatus.IN_PROGRESS),
            resolved=sum(1 for issue in issues if issue.status == IssueStatus.RESOLVED),
            rejected=sum(1 for issue in issues if issue.status == IssueStatus.REJECTED),
            average_rating=round(mean(ratings), 2) if ratings else None,
        )

    @staticmethod
    def _require_principal(actor: Optional[Principal]) -> None:
        if actor is None:
            raise Unauthorized("Sign in to report, confirm or rate issues.")


# Global service instance
_issue_service = None


def get_issue_service() -> IssueService:
    """Get or create IssueService singleton."""
    global _issue_service
    if _issue_service is None:
        from app.repositories.resolver import get_issue_repository
        _issue_service = IssueService(IssueStore(get_issue_repository()))
    return _issue_service
