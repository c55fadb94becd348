from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional

from app.models.issue import Issue
from app.utils.city_normalizer import normalize_district

Mutator = Callable[[Issue], Issue]
CommitHook = Callable[[Issue], None]


class IssueRepository(ABC):
    """
    Persistence collaborator for canonical issue records.

    Contract:
    - load(id) returns the stored Issue or None
    - save(issue) writes the whole record (insert or replace)
    - query(filters) returns every Issue whose document fields equal all
      of the given values; an empty mapping matches everything
    - mutate(id, fn) is an atomic read-modify-write: no two mutate calls on
      the same id interleave. Returns None when the id is unknown.
      on_commit, when given, receives the committed record exactly once.
      In-process backends call it while the record is still locked.
    - Storage outages raise StorageUnavailable. Domain errors raised by fn
      propagate unchanged and nothing is written.
    """

    @abstractmethod
    def load(self, issue_id: str) -> Optional[Issue]:
        raise NotImplementedError

    @abstractmethod
    def save(self, issue: Issue) -> Issue:
        raise NotImplementedError

    @abstractmethod
    def query(self, filters: Mapping[str, Any]) -> List[Issue]:
        raise NotImplementedError

    @abstractmethod
    def mutate(self, issue_id: str, mutator: Mutator,
               on_commit: Optional[CommitHook] = None) -> Optional[Issue]:
        raise NotImplementedError

    def ping(self) -> Dict[str, Any]:
        """Lightweight connectivity probe used by the health route."""
        return {"backend": type(self).__name__, "connected": True}


def issue_to_document(issue: Issue) -> Dict[str, Any]:
    """
    Serialize an Issue to a storable document.

    Adds `city_key`, the normalized district used for case-insensitive
    district queries.
    """
    document = issue.model_dump(mode="json")
    document["city_key"] = normalize_district(issue.city_district)
    return document


def issue_from_document(document: Mapping[str, Any]) -> Issue:
    data = dict(document)
    data.pop("city_key", None)
    return Issue.model_validate(data)
