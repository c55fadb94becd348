from datetime import datetime, timedelta, timezone

import pytest

from app.models.issue import IssueCreate
from app.models.user import Principal, UserRole
from app.repositories.memory import InMemoryIssueRepository
from app.services.issue_service import IssueService
from app.services.issue_store import IssueStore
from app.services.view_sync import ViewSynchronizer


class StepClock:
    """Deterministic clock: every call advances one second."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def repository():
    return InMemoryIssueRepository()


@pytest.fixture
def synchronizer():
    return ViewSynchronizer()


@pytest.fixture
def store(repository, synchronizer):
    return IssueStore(repository, synchronizer, max_evidence_images=5)


@pytest.fixture
def service(store, clock):
    return IssueService(store, clock=clock)


@pytest.fixture
def author():
    return Principal(id="A", role=UserRole.CITIZEN, city_district="Chennai", name="Asha")


@pytest.fixture
def citizen_b():
    return Principal(id="B", role=UserRole.CITIZEN, city_district="Chennai")


@pytest.fixture
def citizen_c():
    return Principal(id="C", role=UserRole.CITIZEN, city_district="Chennai")


@pytest.fixture
def chennai_admin():
    return Principal(id="admin-chn", role=UserRole.CITY_ADMIN, city_district="Chennai")


@pytest.fixture
def madurai_admin():
    return Principal(id="admin-mdu", role=UserRole.CITY_ADMIN, city_district="Madurai")


@pytest.fixture
def super_admin():
    return Principal(id="SA-998877", role=UserRole.SUPER_ADMIN)


@pytest.fixture
def draft():
    return IssueCreate(
        title="Pothole on Anna Salai",
        description="Deep pothole in the left lane near the signal.",
        category="Infrastructure (Potholes, Roads)",
        address="Anna Salai, Teynampet",
        city_district="Chennai",
        coordinates={"latitude": 13.0418, "longitude": 80.2341},
        evidence_images=["uploads/pothole-1.jpg"],
    )


@pytest.fixture
def issue(service, author, draft):
    return service.create_issue(author, draft)
