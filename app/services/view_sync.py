"""
View synchronization - keeps every cached projection of an issue identical
to the record the store last committed.

Rules:
- A mutation result is the complete issue; projections replace their copy
  of that id wholesale, never merging fields
- A projection never moves backwards: a delivery whose version is older
  than any version it has seen for that id is dropped, even after the
  issue left the projection
- Membership is re-evaluated on every delivery, so an issue leaves a
  status-filtered list the moment its status changes
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from app.models.issue import Issue, IssueStatus
from app.utils.city_normalizer import same_district

logger = logging.getLogger(__name__)

IssuePredicate = Callable[[Issue], bool]


def _created_at(issue: Issue):
    return issue.created_at


class IssueProjection(ABC):
    """A client-held view over some subset of issues."""

    name: str = "projection"

    @abstractmethod
    def apply(self, issue: Issue) -> bool:
        """Absorb a committed issue. Returns True if the view changed."""
        raise NotImplementedError

    @abstractmethod
    def get(self, issue_id: str) -> Optional[Issue]:
        raise NotImplementedError


class IssueListProjection(IssueProjection):
    """
    Sorted list of issues matching a predicate.

    Covers the author's list, the district list and any filtered/sorted
    dashboard list.
    """

    def __init__(self, name: str, predicate: Optional[IssuePredicate] = None,
                 sort_key=_created_at, reverse: bool = True):
        self.name = name
        self.predicate = predicate or (lambda issue: True)
        self.sort_key = sort_key
        self.reverse = reverse
        self._issues: Dict[str, Issue] = {}
        # Highest version seen per id, kept after an issue leaves the list
        self._seen: Dict[str, int] = {}

    def load(self, issues: List[Issue]) -> "IssueListProjection":
        for issue in issues:
            self.apply(issue)
        return self

    def apply(self, issue: Issue) -> bool:
        seen = self._seen.get(issue.id, 0)
        if seen > issue.version:
            logger.debug(f"[{self.name}] dropped stale v{issue.version} of {issue.id} (seen v{seen})")
            return False
        self._seen[issue.id] = issue.version

        held = self._issues.get(issue.id)
        if self.predicate(issue):
            self._issues[issue.id] = issue
            return True
        if held is not None:
            del self._issues[issue.id]
            return True
        return False

    def get(self, issue_id: str) -> Optional[Issue]:
        return self._issues.get(issue_id)

    @property
    def items(self) -> List[Issue]:
        return sorted(self._issues.values(), key=self.sort_key, reverse=self.reverse)

    def __len__(self) -> int:
        return len(self._issues)

    def __contains__(self, issue_id: str) -> bool:
        return issue_id in self._issues


class MapMarkerProjection(IssueListProjection):
    """Map layer: only issues carrying coordinates become markers."""

    def __init__(self, name: str = "map", predicate: Optional[IssuePredicate] = None):
        base = predicate or (lambda issue: True)
        super().__init__(name, lambda issue: issue.coordinates is not None and base(issue))

    @property
    def markers(self) -> List[Dict]:
        return [
            {
                "id": issue.id,
                "title": issue.title,
                "status": issue.status.value,
                "latitude": issue.coordinates.latitude,
                "longitude": issue.coordinates.longitude,
                "up_count": issue.votes.up_count,
                "down_count": issue.votes.down_count,
                "version": issue.version,
            }
            for issue in self.items
        ]


class DetailProjection(IssueProjection):
    """The single issue open in a detail panel."""

    def __init__(self, name: str = "detail"):
        self.name = name
        self.issue: Optional[Issue] = None

    def open(self, issue: Issue) -> None:
        self.issue = issue

    def close(self) -> None:
        self.issue = None

    def apply(self, issue: Issue) -> bool:
        if self.issue is None or self.issue.id != issue.id:
            return False
        if self.issue.version > issue.version:
            return False
        self.issue = issue
        return True

    def get(self, issue_id: str) -> Optional[Issue]:
        if self.issue is not None and self.issue.id == issue_id:
            return self.issue
        return None


def author_list(author_id: str) -> IssueListProjection:
    return IssueListProjection(f"author:{author_id}", lambda issue: issue.author_id == author_id)


def city_list(city_district: str, status: Optional[IssueStatus] = None,
              category: Optional[str] = None) -> IssueListProjection:
    def matches(issue: Issue) -> bool:
        if not same_district(issue.city_district, city_district):
            return False
        if status is not None and issue.status != status:
            return False
        if category is not None and issue.category != category:
            return False
        return True

    suffix = "".join(f":{part}" for part in (status and status.value, category) if part)
    return IssueListProjection(f"city:{city_district}{suffix}", matches)


class ViewSynchronizer:
    """
    Fan-out of committed issues to subscribed projections.

    publish() is called by the record store inside the mutation call, after
    the write commits and while the record is still held.
    """

    def __init__(self):
        self._projections: List[IssueProjection] = []
        self._lock = threading.RLock()

    def subscribe(self, projection: IssueProjection) -> IssueProjection:
        with self._lock:
            if projection not in self._projections:
                self._projections.append(projection)
        return projection

    def unsubscribe(self, projection: IssueProjection) -> None:
        with self._lock:
            if projection in self._projections:
                self._projections.remove(projection)

    def publish(self, issue: Issue) -> int:
        """Deliver `issue` to every projection. Returns how many changed."""
        with self._lock:
            changed = sum(1 for projection in self._projections if projection.apply(issue))
        logger.debug(f"Published {issue.id} v{issue.version} to {changed} projection(s)")
        return changed
