"""
In-process issue repository for local development and tests.

Records are immutable Issue values keyed by id. Same-id mutations are
serialized by a per-record lock; different ids never contend.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from app.models.issue import Issue
from app.repositories.base import CommitHook, IssueRepository, Mutator, issue_to_document

logger = logging.getLogger(__name__)


class InMemoryIssueRepository(IssueRepository):

    def __init__(self):
        self._issues: Dict[str, Issue] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, issue_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(issue_id)
            if lock is None:
                lock = self._locks[issue_id] = threading.Lock()
            return lock

    def load(self, issue_id: str) -> Optional[Issue]:
        return self._issues.get(issue_id)

    def save(self, issue: Issue) -> Issue:
        with self._lock_for(issue.id):
            self._issues[issue.id] = issue
        return issue

    def query(self, filters: Mapping[str, Any]) -> List[Issue]:
        snapshot = list(self._issues.values())
        if not filters:
            return snapshot

        matches = []
        for issue in snapshot:
            document = issue_to_document(issue)
            if all(document.get(field) == value for field, value in filters.items()):
                matches.append(issue)
        return matches

    def mutate(self, issue_id: str, mutator: Mutator,
               on_commit: Optional[CommitHook] = None) -> Optional[Issue]:
        with self._lock_for(issue_id):
            current = self._issues.get(issue_id)
            if current is None:
                return None
            updated = mutator(current)
            self._issues[issue_id] = updated
            if on_commit is not None:
                on_commit(updated)
            return updated

    def ping(self) -> Dict[str, Any]:
        return {"backend": "memory", "connected": True, "issues_count": len(self._issues)}
