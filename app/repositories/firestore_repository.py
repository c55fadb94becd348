"""
Firestore-backed issue repository.

Each issue is one document in the `issues` collection, keyed by issue id.
mutate() runs inside a Firestore transaction, which serializes concurrent
read-modify-writes on the same document and retries on contention.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from app.core.errors import StorageUnavailable
from app.core.settings import settings
from app.models.issue import Issue
from app.repositories.base import (
    CommitHook,
    IssueRepository,
    Mutator,
    issue_from_document,
    issue_to_document,
)
from app.utils.firestore_helpers import where_filter

logger = logging.getLogger(__name__)


class FirestoreIssueRepository(IssueRepository):

    def __init__(self, db, collection_name: Optional[str] = None):
        self.db = db
        self.collection_name = collection_name or settings.ISSUES_COLLECTION

    def _collection(self):
        return self.db.collection(self.collection_name)

    def load(self, issue_id: str) -> Optional[Issue]:
        try:
            doc = self._collection().document(issue_id).get()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Failed to load issue {issue_id}: {e}", exc_info=True)
            raise StorageUnavailable()

        if not doc.exists:
            return None
        return issue_from_document(doc.to_dict())

    def save(self, issue: Issue) -> Issue:
        try:
            self._collection().document(issue.id).set(issue_to_document(issue))
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Failed to save issue {issue.id}: {e}", exc_info=True)
            raise StorageUnavailable()
        return issue

    def query(self, filters: Mapping[str, Any]) -> List[Issue]:
        query = self._collection()
        for field, value in filters.items():
            query = where_filter(query, field, "==", value)

        try:
            return [issue_from_document(doc.to_dict()) for doc in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Failed to query issues {dict(filters)}: {e}", exc_info=True)
            raise StorageUnavailable()

    def mutate(self, issue_id: str, mutator: Mutator,
               on_commit: Optional[CommitHook] = None) -> Optional[Issue]:
        doc_ref = self._collection().document(issue_id)

        @firestore.transactional
        def _read_modify_write(transaction) -> Optional[Issue]:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None
            updated = mutator(issue_from_document(snapshot.to_dict()))
            transaction.set(doc_ref, issue_to_document(updated))
            return updated

        try:
            updated = _read_modify_write(self.db.transaction())
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Transaction on issue {issue_id} failed: {e}", exc_info=True)
            raise StorageUnavailable()

        # Outside the transaction body, which Firestore may re-run
        if updated is not None and on_commit is not None:
            on_commit(updated)
        return updated

    def ping(self) -> Dict[str, Any]:
        try:
            collections = list(self.db.collections())
        except google_exceptions.GoogleAPIError as e:
            raise StorageUnavailable(f"Database connection failed: {e}")
        return {
            "backend": "firestore",
            "connected": True,
            "collections_count": len(collections),
        }
