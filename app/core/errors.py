"""
Error taxonomy for the issue lifecycle engine.

Every failure the engine can report is a subclass of CivicIssueError.
Each kind carries a stable code, an actionable default message and the
HTTP status the API layer answers with. All of them are local,
recoverable failures returned to the immediate caller.
"""

from typing import Optional


class CivicIssueError(Exception):
    """Base class for all engine errors."""

    code = "civic_issue_error"
    status_code = 400
    default_message = "The request could not be completed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.message}


class ValidationError(CivicIssueError):
    code = "validation_error"
    status_code = 422
    default_message = "The submitted data is incomplete or malformed."


class NotFound(CivicIssueError):
    code = "not_found"
    status_code = 404
    default_message = "Issue not found."

    def __init__(self, issue_id: str, message: Optional[str] = None):
        self.issue_id = issue_id
        super().__init__(message or f"Issue {issue_id} not found")


class Unauthorized(CivicIssueError):
    code = "unauthorized"
    status_code = 403
    default_message = "Only an administrator of this district can perform this action."


class SelfVoteForbidden(CivicIssueError):
    code = "self_vote_forbidden"
    status_code = 403
    default_message = "You cannot confirm or flag your own report."


class VotingClosed(CivicIssueError):
    code = "voting_closed"
    status_code = 409
    default_message = "Voting is closed because this issue has been resolved or rejected."


class IssueLocked(CivicIssueError):
    """
    Raised when a status change targets a terminal issue.

    A caller retrying resolve/reject after a timeout should treat this as
    "already applied" and inspect `status`.
    """

    code = "issue_locked"
    status_code = 409
    default_message = "This issue is closed and its status can no longer change."

    def __init__(self, status: Optional[str] = None, message: Optional[str] = None):
        self.status = status
        if message is None and status:
            message = f"This issue is already {status} and its status can no longer change."
        super().__init__(message)


class EvidenceRequired(CivicIssueError):
    code = "evidence_required"
    status_code = 422
    default_message = "Upload a photo of the completed work before marking the issue resolved."


class NotResolvedYet(CivicIssueError):
    code = "not_resolved_yet"
    status_code = 409
    default_message = "You can rate an issue only after it has been resolved."


class NotAuthor(CivicIssueError):
    code = "not_author"
    status_code = 403
    default_message = "Only the person who reported this issue can rate its resolution."


class InvalidRating(CivicIssueError):
    code = "invalid_rating"
    status_code = 422
    default_message = "Ratings must be a whole number of stars from 1 to 5."


class StorageUnavailable(CivicIssueError):
    code = "storage_unavailable"
    status_code = 503
    default_message = "The issue database is unavailable. Please try again shortly."
