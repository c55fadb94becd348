import logging
from typing import Optional

from app.core.settings import settings
from .base import IssueRepository
from .memory import InMemoryIssueRepository

logger = logging.getLogger(__name__)

_repository_instance: Optional[IssueRepository] = None


def get_issue_repository() -> IssueRepository:
    """
    Resolve the active issue repository based on settings.

    Rules:
    - USE_MOCK_DB=true: process-local in-memory repository
    - Otherwise: Firestore (credentials from FIREBASE_CREDENTIALS_PATH or ADC)
    """
    global _repository_instance
    if _repository_instance is not None:
        return _repository_instance

    if settings.USE_MOCK_DB:
        _repository_instance = InMemoryIssueRepository()
        logger.info("Issue repository initialized: memory")
        return _repository_instance

    from app.config.firebase import get_db
    from .firestore_repository import FirestoreIssueRepository

    _repository_instance = FirestoreIssueRepository(get_db())
    logger.info(f"Issue repository initialized: firestore ({settings.ISSUES_COLLECTION})")
    return _repository_instance
