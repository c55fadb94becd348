"""
Issue Record Store - single source of truth for canonical issue records.

Every write (creation, vote, status transition, rating) goes through this
store so exactly one authoritative copy of each issue exists. Mutations
are atomic read-modify-writes delegated to the repository; the store adds
version stamping and hands each committed record to the view synchronizer.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from app.core.errors import NotFound, ValidationError
from app.core.settings import settings
from app.models.issue import Issue, IssueCreate, IssueStatus, VoteLedger
from app.models.user import Principal
from app.repositories.base import IssueRepository
from app.services.status_workflow import StatusWorkflowEngine
from app.services.view_sync import ViewSynchronizer
from app.utils.city_normalizer import normalize_district

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "address", "city_district")


def _newest_first(issues: List[Issue]) -> List[Issue]:
    return sorted(issues, key=lambda issue: issue.created_at, reverse=True)


class IssueStore:

    def __init__(self, repository: IssueRepository, synchronizer: Optional[ViewSynchronizer] = None,
                 max_evidence_images: Optional[int] = None):
        self.repository = repository
        self.synchronizer = synchronizer or ViewSynchronizer()
        if max_evidence_images is None:
            max_evidence_images = settings.MAX_EVIDENCE_IMAGES
        self.max_evidence_images = max_evidence_images

    def create(self, draft: IssueCreate, author: Principal, now: datetime) -> Issue:
        """
        Create a new PENDING issue from a citizen's draft.

        Raises:
            ValidationError: a required field is blank or too many images
        """
        missing = [field for field in REQUIRED_FIELDS if not (getattr(draft, field) or "").strip()]
        if missing:
            raise ValidationError(f"Please fill in the required field(s): {', '.join(missing)}")

        images = [image for image in draft.evidence_images if image]
        if len(images) > self.max_evidence_images:
            raise ValidationError(f"At most {self.max_evidence_images} evidence images can be attached")

        workflow = StatusWorkflowEngine()
        issue = Issue(
            id=uuid.uuid4().hex,
            title=draft.title.strip(),
            description=draft.description.strip(),
            category=(draft.category or "").strip() or "Other",
            status=IssueStatus.PENDING,
            address=draft.address.strip(),
            coordinates=draft.coordinates,
            evidence_images=images,
            votes=VoteLedger(),
            author_id=author.id,
            author_name=(draft.author_name or author.name or "").strip() or "Anonymous",
            city_district=draft.city_district.strip(),
            status_history=[workflow.create_status_history_entry(
                from_status=None,
                to_status=IssueStatus.PENDING,
                changed_by=author.id,
                timestamp=now,
                note="Issue reported",
            )],
            created_at=now,
            updated_at=now,
            version=1,
        )

        self.repository.save(issue)
        logger.info(f"Issue created: {issue.id} in {issue.city_district} by {issue.author_id}")
        self.synchronizer.publish(issue)
        return issue

    def get(self, issue_id: str) -> Issue:
        issue = self.repository.load(issue_id)
        if issue is None:
            raise NotFound(issue_id)
        return issue

    def query_by_author(self, author_id: str) -> List[Issue]:
        return _newest_first(self.repository.query({"author_id": author_id}))

    def query_by_city(self, city_district: str) -> List[Issue]:
        city_key = normalize_district(city_district)
        if not city_key:
            return []
        return _newest_first(self.repository.query({"city_key": city_key}))

    def query_all(self) -> List[Issue]:
        return _newest_first(self.repository.query({}))

    def mutate(self, issue_id: str, mutator: Callable[[Issue], Issue]) -> Issue:
        """
        Atomically apply `mutator` to the stored issue.

        The mutator is a pure Issue -> Issue function; any error it raises
        aborts the write. The committed record (with version + 1) is
        published to all projections while the record is still held, so
        projections see same-id commits in commit order.

        Raises:
            NotFound: unknown id
            ValidationError: the mutator changed the issue id
        """
        def _versioned(current: Issue) -> Issue:
            updated = mutator(current)
            if updated.id != current.id:
                raise ValidationError("An issue id cannot be changed")
            return updated.model_copy(update={"version": current.version + 1})

        committed = self.repository.mutate(issue_id, _versioned, on_commit=self.synchronizer.publish)
        if committed is None:
            raise NotFound(issue_id)
        return committed
