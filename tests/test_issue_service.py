"""
Tests for the issue service operation surface, including the full
report -> verify -> resolve -> rate lifecycle.
"""

import pytest

from app.core.errors import (
    IssueLocked,
    NotAuthor,
    NotFound,
    SelfVoteForbidden,
    Unauthorized,
    ValidationError,
    VotingClosed,
)
from app.models.issue import IssueCreate, IssueStatus, RejectionReason, VoteDirection


def test_end_to_end_lifecycle(service, author, citizen_b, citizen_c, chennai_admin):
    issue = service.create_issue(author, IssueCreate(
        title="Water main leak",
        description="Clean water running into the gutter since morning.",
        address="TTK Road, Alwarpet",
        city_district="Chennai",
    ))
    assert issue.status == IssueStatus.PENDING
    assert (issue.votes.up_count, issue.votes.down_count) == (0, 0)

    issue = service.vote(citizen_b, issue.id, VoteDirection.UP)
    assert (issue.votes.up_count, issue.votes.down_count) == (1, 0)
    assert issue.votes.user_votes == {"B": VoteDirection.UP}

    issue = service.vote(citizen_c, issue.id, VoteDirection.DOWN)
    assert (issue.votes.up_count, issue.votes.down_count) == (1, 1)

    issue = service.vote(citizen_b, issue.id, VoteDirection.UP)
    assert (issue.votes.up_count, issue.votes.down_count) == (0, 1)
    assert issue.votes.user_votes == {"C": VoteDirection.DOWN}

    previous_update = issue.updated_at
    issue = service.resolve(chennai_admin, issue.id, "photo.jpg")
    assert issue.status == IssueStatus.RESOLVED
    assert issue.resolution_evidence == "photo.jpg"
    assert issue.resolution_timestamp >= previous_update

    issue = service.rate(author, issue.id, 4, "ok")
    assert issue.rating == 4
    assert issue.rating_comment == "ok"

    for voter in (citizen_b, citizen_c):
        with pytest.raises(VotingClosed):
            service.vote(voter, issue.id, VoteDirection.UP)

    assert service.get_issue(issue.id) == issue


def test_self_vote_is_rejected(service, issue, author):
    with pytest.raises(SelfVoteForbidden):
        service.vote(author, issue.id, VoteDirection.DOWN)
    assert service.get_issue(issue.id).votes.user_votes == {}


def test_anonymous_caller_is_unauthorized(service, issue, draft):
    with pytest.raises(Unauthorized):
        service.vote(None, issue.id, VoteDirection.UP)
    with pytest.raises(Unauthorized):
        service.create_issue(None, draft)
    with pytest.raises(Unauthorized):
        service.resolve(None, issue.id, "img1")


def test_vote_on_unknown_issue(service, citizen_b):
    with pytest.raises(NotFound):
        service.vote(citizen_b, "nope", VoteDirection.UP)


def test_set_status_only_reversible_targets(service, issue, chennai_admin):
    with pytest.raises(ValidationError):
        service.set_status(chennai_admin, issue.id, IssueStatus.RESOLVED)
    with pytest.raises(ValidationError):
        service.set_status(chennai_admin, issue.id, "ARCHIVED")

    updated = service.set_status(chennai_admin, issue.id, "IN_PROGRESS", note="Crew assigned")
    assert updated.status == IssueStatus.IN_PROGRESS
    assert updated.status_history[-1].note == "Crew assigned"


def test_admin_from_other_district_cannot_act(service, issue, madurai_admin):
    with pytest.raises(Unauthorized):
        service.set_status(madurai_admin, issue.id, IssueStatus.IN_PROGRESS)
    assert service.get_issue(issue.id).status == IssueStatus.PENDING


def test_retried_resolve_reports_locked(service, issue, chennai_admin):
    first = service.resolve(chennai_admin, issue.id, "img1")

    with pytest.raises(IssueLocked) as excinfo:
        service.resolve(chennai_admin, issue.id, "img1")

    assert excinfo.value.status == IssueStatus.RESOLVED.value
    assert service.get_issue(issue.id) == first


def test_rejected_issue_is_locked(service, issue, chennai_admin, author, citizen_b):
    rejected = service.reject(chennai_admin, issue.id, "not-civic")
    assert rejected.rejection_reason == RejectionReason.NOT_CIVIC

    with pytest.raises(IssueLocked):
        service.set_status(chennai_admin, issue.id, IssueStatus.PENDING)
    with pytest.raises(VotingClosed):
        service.vote(citizen_b, issue.id, VoteDirection.UP)
    with pytest.raises(IssueLocked):
        service.resolve(chennai_admin, issue.id, "img1")

    assert service.get_issue(issue.id) == rejected


def test_rating_by_non_author(service, issue, chennai_admin, citizen_b):
    service.resolve(chennai_admin, issue.id, "img1")
    with pytest.raises(NotAuthor):
        service.rate(citizen_b, issue.id, 5)


def test_every_mutation_increments_version(service, issue, citizen_b, chennai_admin, author):
    versions = [issue.version]
    versions.append(service.vote(citizen_b, issue.id, VoteDirection.UP).version)
    versions.append(service.set_status(chennai_admin, issue.id, IssueStatus.IN_PROGRESS).version)
    versions.append(service.resolve(chennai_admin, issue.id, "img1").version)
    versions.append(service.rate(author, issue.id, 3).version)

    assert versions == [1, 2, 3, 4, 5]


class TestDashboards:

    @pytest.fixture
    def populated(self, service, author, draft, chennai_admin, super_admin):
        pending = service.create_issue(author, draft)
        working = service.create_issue(author, draft.model_copy(update={"category": "Public Safety"}))
        service.set_status(chennai_admin, working.id, IssueStatus.IN_PROGRESS)
        done = service.create_issue(author, draft)
        service.resolve(chennai_admin, done.id, "img1")
        service.rate(author, done.id, 5)
        spam = service.create_issue(author, draft)
        service.reject(chennai_admin, spam.id, "spam")
        madurai = service.create_issue(author, draft.model_copy(update={"city_district": "Madurai"}))
        return {"pending": pending, "working": working, "done": done, "spam": spam, "madurai": madurai}

    def test_city_stats(self, service, populated, chennai_admin):
        stats = service.city_stats(chennai_admin)

        assert stats.city_district == "Chennai"
        assert (stats.total, stats.pending, stats.in_progress, stats.resolved, stats.rejected) == (4, 1, 1, 1, 1)
        assert stats.average_rating == 5

    def test_filtered_listing(self, service, populated, chennai_admin):
        in_progress = service.list_issues(chennai_admin, status=IssueStatus.IN_PROGRESS)
        safety = service.list_issues(chennai_admin, category="Public Safety")

        assert [issue.id for issue in in_progress] == [populated["working"].id]
        assert [issue.id for issue in safety] == [populated["working"].id]

    def test_city_admin_scope(self, service, populated, chennai_admin, citizen_b):
        with pytest.raises(Unauthorized):
            service.list_issues(chennai_admin, city_district="Madurai")
        with pytest.raises(Unauthorized):
            service.list_issues(citizen_b)

    def test_super_admin_sees_everything(self, service, populated, super_admin):
        assert len(service.list_issues(super_admin)) == 5
        assert service.city_stats(super_admin).total == 5
        assert service.city_stats(super_admin, "madurai").total == 1
