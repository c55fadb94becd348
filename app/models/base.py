"""
Pydantic response envelopes shared by the API routes.

DESIGN PRINCIPLE:
- Mutations always answer with the complete post-mutation issue
- Envelopes carry no business logic
"""

from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, List

from app.models.issue import Issue


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseResponse(BaseModel):
    """
    Base response model for API responses.
    All API responses extend this for consistency.
    """
    success: bool = True
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class IssueResponse(BaseResponse):
    issue: Issue


class IssueListResponse(BaseResponse):
    count: int
    issues: List[Issue]
