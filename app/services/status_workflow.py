"""
Status Workflow Engine - issue lifecycle state machine.

DESIGN PRINCIPLES:
- PENDING <-> IN_PROGRESS is freely reversible by an administrator
- RESOLVED and REJECTED are terminal ("locked")
- Every transition is recorded in status_history
- Invalid transitions are rejected with a typed error, never applied
- Pure: each operation returns a new Issue and touches no storage
"""

from datetime import datetime
from typing import Dict, List, Optional, Union

from app.core.errors import (
    EvidenceRequired,
    InvalidRating,
    IssueLocked,
    NotAuthor,
    NotResolvedYet,
    Unauthorized,
    ValidationError,
)
from app.models.issue import (
    Issue,
    IssueStatus,
    RejectionReason,
    StatusHistoryEntry,
    TERMINAL_STATUSES,
)
from app.models.user import Principal


class StatusWorkflowEngine:
    """
    State machine for issue status transitions.

    Rules:
    - Only administrators scoped to the issue's district change status
    - Nothing leaves a terminal status
    - Resolving requires completion evidence, rejecting requires a reason
    - Rating is the author's, and only once the issue is resolved
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[IssueStatus, List[IssueStatus]] = {
        IssueStatus.PENDING: [IssueStatus.IN_PROGRESS, IssueStatus.RESOLVED, IssueStatus.REJECTED],
        IssueStatus.IN_PROGRESS: [IssueStatus.PENDING, IssueStatus.RESOLVED, IssueStatus.REJECTED],
        IssueStatus.RESOLVED: [],  # Terminal
        IssueStatus.REJECTED: [],  # Terminal
    }

    @classmethod
    def is_locked(cls, status: Union[IssueStatus, str]) -> bool:
        """True for RESOLVED and REJECTED."""
        return IssueStatus(status) in TERMINAL_STATUSES

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        try:
            from_enum = IssueStatus(from_status)
            to_enum = IssueStatus(to_status)
        except ValueError:
            return False

        if cls.is_locked(from_enum):
            return False

        # Re-applying the current reversible status is allowed (no-op)
        if from_enum == to_enum:
            return True

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        """
        Get list of allowed next statuses from current status.

        Returns:
            List of allowed next status strings ([] for terminal or unknown)
        """
        try:
            current_enum = IssueStatus(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: Optional[IssueStatus],
        to_status: IssueStatus,
        changed_by: str,
        timestamp: datetime,
        note: Optional[str] = None
    ) -> StatusHistoryEntry:
        return StatusHistoryEntry(
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            timestamp=timestamp,
            note=note or None,
        )

    # ------------------------------------------------------------------
    # Administrator transitions
    # ------------------------------------------------------------------

    @classmethod
    def set_pending(cls, issue: Issue, actor: Optional[Principal], now: datetime,
                    note: Optional[str] = None) -> Issue:
        return cls._transition(issue, actor, IssueStatus.PENDING, now, note)

    @classmethod
    def set_in_progress(cls, issue: Issue, actor: Optional[Principal], now: datetime,
                        note: Optional[str] = None) -> Issue:
        return cls._transition(issue, actor, IssueStatus.IN_PROGRESS, now, note)

    @classmethod
    def resolve(cls, issue: Issue, actor: Optional[Principal], evidence_image: Optional[str],
                now: datetime, note: Optional[str] = None) -> Issue:
        """
        Mark an issue resolved.

        Raises:
            Unauthorized: actor is not an administrator of the issue's district
            EvidenceRequired: evidence_image missing or blank
            IssueLocked: issue already terminal
        """
        cls._require_admin(issue, actor)
        if not evidence_image or not str(evidence_image).strip():
            raise EvidenceRequired()
        return cls._transition(
            issue, actor, IssueStatus.RESOLVED, now, note,
            resolution_evidence=evidence_image,
            resolution_timestamp=cls._stamp(issue, now),
        )

    @classmethod
    def reject(cls, issue: Issue, actor: Optional[Principal], reason: Union[RejectionReason, str, None],
               now: datetime, note: Optional[str] = None) -> Issue:
        """
        Reject an issue with one of the fixed reasons.

        Raises:
            Unauthorized: actor is not an administrator of the issue's district
            ValidationError: reason is not a RejectionReason
            IssueLocked: issue already terminal
        """
        cls._require_admin(issue, actor)
        try:
            rejection_reason = RejectionReason(reason)
        except ValueError:
            allowed = [r.value for r in RejectionReason]
            raise ValidationError(f"Rejection reason must be one of {allowed}")
        return cls._transition(
            issue, actor, IssueStatus.REJECTED, now, note,
            rejection_reason=rejection_reason,
        )

    # ------------------------------------------------------------------
    # Author rating
    # ------------------------------------------------------------------

    @classmethod
    def rate(cls, issue: Issue, acting_user_id: str, stars: int, comment: Optional[str],
             now: datetime) -> Issue:
        """
        Record (or overwrite) the author's rating of a resolved issue.

        Raises:
            NotResolvedYet: status is not RESOLVED
            NotAuthor: acting user did not report the issue
            InvalidRating: stars is not an integer from 1 to 5
        """
        if issue.status != IssueStatus.RESOLVED:
            raise NotResolvedYet()
        if acting_user_id != issue.author_id:
            raise NotAuthor()
        if isinstance(stars, bool) or not isinstance(stars, int) or not 1 <= stars <= 5:
            raise InvalidRating()

        return issue.model_copy(update={
            "rating": stars,
            "rating_comment": comment,
            "updated_at": cls._stamp(issue, now),
        })

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @classmethod
    def _require_admin(cls, issue: Issue, actor: Optional[Principal]) -> None:
        if actor is None or not actor.can_administer(issue.city_district):
            raise Unauthorized()

    @staticmethod
    def _stamp(issue: Issue, now: datetime) -> datetime:
        # Stamped times never precede the previous update
        return max(now, issue.updated_at)

    @classmethod
    def _transition(cls, issue: Issue, actor: Optional[Principal], new_status: IssueStatus,
                    now: datetime, note: Optional[str] = None, **stamped) -> Issue:
        cls._require_admin(issue, actor)
        if cls.is_locked(issue.status):
            raise IssueLocked(issue.status.value)
        if not cls.is_valid_transition(issue.status, new_status):
            raise IssueLocked(issue.status.value)

        timestamp = cls._stamp(issue, now)
        entry = cls.create_status_history_entry(
            from_status=issue.status,
            to_status=new_status,
            changed_by=actor.id,
            timestamp=timestamp,
            note=note,
        )
        update = {
            "status": new_status,
            "status_history": [*issue.status_history, entry],
            "updated_at": timestamp,
        }
        update.update(stamped)
        return issue.model_copy(update=update)
