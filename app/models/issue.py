"""
Pydantic models for civic issues.

Issue, VoteLedger and their parts are immutable values: every mutation
produces a new value via model_copy(update=...). The record store is the
only place a new value replaces an old one.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Union
from enum import Enum


ISSUE_CATEGORIES = [
    "Infrastructure (Potholes, Roads)",
    "Sanitation (Garbage, Debris)",
    "Utilities (Water, Power, Gas)",
    "Public Safety",
    "Parks & Recreation",
    "Other",
]


class IssueStatus(str, Enum):
    """
    Issue lifecycle.

    PENDING <-> IN_PROGRESS, then RESOLVED or REJECTED (both terminal).
    """
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"


TERMINAL_STATUSES = frozenset({IssueStatus.RESOLVED, IssueStatus.REJECTED})


class VoteDirection(str, Enum):
    """Community verification: confirm (up) or flag (down)."""
    UP = "up"
    DOWN = "down"


class RejectionReason(str, Enum):
    DUPLICATE = "duplicate"
    WRONG_LOCATION = "wrong-location"
    NOT_CIVIC = "not-civic"
    SPAM = "spam"
    INSUFFICIENT_INFO = "insufficient-info"


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    class Config:
        frozen = True


class VoteLedger(BaseModel):
    """
    Per-issue vote ledger.

    up_count/down_count always equal the number of user_votes entries in
    that direction. Written only by app.services.vote_aggregator.
    """
    up_count: int = Field(default=0, ge=0)
    down_count: int = Field(default=0, ge=0)
    user_votes: Dict[str, VoteDirection] = Field(default_factory=dict)

    class Config:
        frozen = True

    @property
    def score(self) -> int:
        return self.up_count - self.down_count


class StatusHistoryEntry(BaseModel):
    """Status transition history entry."""
    from_status: Optional[IssueStatus] = Field(None, description="Previous status (None on creation)")
    to_status: IssueStatus = Field(..., description="New status")
    changed_by: str = Field(..., description="User who made the change")
    timestamp: datetime = Field(..., description="When change occurred")
    note: Optional[str] = Field(None, description="Optional note explaining the change")

    class Config:
        frozen = True


class Issue(BaseModel):
    """Canonical issue record. Always returned whole, never as a partial patch."""
    id: str = Field(..., description="Issue identifier")
    title: str
    description: str
    category: str = "Other"
    status: IssueStatus = IssueStatus.PENDING
    address: str
    coordinates: Optional[Coordinates] = None
    evidence_images: List[str] = Field(default_factory=list, description="Opaque image references")
    resolution_evidence: Optional[str] = None
    resolution_timestamp: Optional[datetime] = None
    rejection_reason: Optional[RejectionReason] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    rating_comment: Optional[str] = None
    votes: VoteLedger = Field(default_factory=VoteLedger)
    author_id: str
    author_name: str = "Anonymous"
    city_district: str
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    version: int = Field(default=1, ge=1, description="Incremented on every committed mutation")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "3f2b0c1e9a7d4e58b6c1d2e3f4a5b6c7",
                "title": "Broken streetlight",
                "description": "Streetlight near the bus stop has been out for a week.",
                "category": "Utilities (Water, Power, Gas)",
                "status": "PENDING",
                "address": "Anna Salai, Teynampet",
                "coordinates": {"latitude": 13.0418, "longitude": 80.2341},
                "evidence_images": ["uploads/streetlight.jpg"],
                "votes": {"up_count": 2, "down_count": 0, "user_votes": {"u-17": "up", "u-42": "up"}},
                "author_id": "u-03",
                "author_name": "Kavya",
                "city_district": "Chennai",
                "created_at": "2026-03-01T10:30:00Z",
                "updated_at": "2026-03-01T11:00:00Z",
                "version": 3,
            }
        }

    @property
    def is_locked(self) -> bool:
        return self.status in TERMINAL_STATUSES


class IssueCreate(BaseModel):
    """
    Draft submitted by a citizen.

    Required text fields are checked for blanks by the record store so
    in-process callers get the same ValidationError as API callers.
    """
    title: str = Field("", max_length=200)
    description: str = Field("", max_length=2000)
    category: Optional[str] = Field(None, max_length=100)
    address: str = Field("", max_length=500)
    city_district: str = Field("", max_length=100)
    coordinates: Optional[Coordinates] = None
    evidence_images: List[str] = Field(default_factory=list)
    author_name: Optional[str] = Field(None, max_length=100)

    class Config:
        extra = "ignore"


class VoteRequest(BaseModel):
    direction: VoteDirection


class StatusUpdateRequest(BaseModel):
    """Only the reversible statuses can be set directly."""
    status: IssueStatus
    note: Optional[str] = Field(None, max_length=500)


class ResolveRequest(BaseModel):
    evidence_image: Optional[str] = Field(None, description="Reference to the completion photo")
    note: Optional[str] = Field(None, max_length=500)


class RejectRequest(BaseModel):
    reason: str = Field(..., description="One of the RejectionReason values")
    note: Optional[str] = Field(None, max_length=500)


class RatingRequest(BaseModel):
    # Fractional stars are rejected by the workflow as invalid_rating
    stars: Union[int, float]
    comment: Optional[str] = Field(None, max_length=1000)


class CityStats(BaseModel):
    """Dashboard counters for one district."""
    city_district: str
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    resolved: int = 0
    rejected: int = 0
    average_rating: Optional[float] = None
