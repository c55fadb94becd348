"""
Tests for the issue record store: creation, queries and atomic mutation.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.core.errors import NotFound, ValidationError, VotingClosed
from app.models.issue import IssueCreate, IssueStatus, VoteDirection
from app.models.user import Principal
from app.services.issue_store import IssueStore
from app.services.vote_aggregator import cast_vote


class TestCreate:

    def test_new_issue_defaults(self, store, author, draft, clock):
        now = clock()
        issue = store.create(draft, author, now)

        assert issue.status == IssueStatus.PENDING
        assert issue.votes.up_count == 0 and issue.votes.down_count == 0
        assert issue.votes.user_votes == {}
        assert issue.created_at == issue.updated_at == now
        assert issue.author_id == "A"
        assert issue.author_name == "Asha"
        assert issue.version == 1
        assert issue.status_history[0].to_status == IssueStatus.PENDING
        assert store.get(issue.id) == issue

    @pytest.mark.parametrize("field", ["title", "description", "address", "city_district"])
    def test_blank_required_field(self, store, author, draft, clock, field):
        with pytest.raises(ValidationError) as excinfo:
            store.create(draft.model_copy(update={field: "  "}), author, clock())
        assert field in excinfo.value.message

    def test_too_many_images(self, store, author, draft, clock):
        images = [f"img-{n}.jpg" for n in range(6)]
        with pytest.raises(ValidationError):
            store.create(draft.model_copy(update={"evidence_images": images}), author, clock())

    def test_explicit_zero_image_limit(self, repository, synchronizer, author, draft, clock):
        strict = IssueStore(repository, synchronizer, max_evidence_images=0)
        with pytest.raises(ValidationError):
            strict.create(draft, author, clock())

        bare = strict.create(draft.model_copy(update={"evidence_images": []}), author, clock())
        assert bare.evidence_images == []

    def test_defaults_for_missing_category_and_name(self, store, clock):
        anonymous = Principal(id="Z")
        issue = store.create(
            IssueCreate(title="Stray cattle", description="On the highway", address="NH 44", city_district="Salem"),
            anonymous,
            clock(),
        )
        assert issue.category == "Other"
        assert issue.author_name == "Anonymous"
        assert issue.coordinates is None


class TestQueries:

    def test_get_unknown(self, store):
        with pytest.raises(NotFound):
            store.get("missing")

    def test_query_by_city_is_case_insensitive_exact(self, store, author, draft, clock):
        chennai = store.create(draft, author, clock())
        store.create(draft.model_copy(update={"city_district": "Chennai North"}), author, clock())

        assert [issue.id for issue in store.query_by_city("  CHENNAI ")] == [chennai.id]
        assert store.query_by_city("") == []

    def test_query_by_author_newest_first(self, store, author, draft, clock):
        first = store.create(draft, author, clock())
        second = store.create(draft, author, clock())
        store.create(draft, Principal(id="someone-else"), clock())

        assert [issue.id for issue in store.query_by_author("A")] == [second.id, first.id]
        assert len(store.query_all()) == 3


class TestMutate:

    def test_mutate_bumps_version(self, store, author, draft, clock):
        issue = store.create(draft, author, clock())
        now = clock()
        updated = store.mutate(issue.id, lambda current: cast_vote(current, "B", VoteDirection.UP, now))

        assert updated.version == 2
        assert updated.updated_at == now
        assert store.get(issue.id) == updated

    def test_mutate_unknown(self, store):
        with pytest.raises(NotFound):
            store.mutate("missing", lambda current: current)

    def test_failed_mutator_writes_nothing(self, store, author, draft, clock):
        issue = store.create(draft, author, clock())
        closed = store.mutate(issue.id, lambda current: current.model_copy(update={"status": IssueStatus.RESOLVED}))

        with pytest.raises(VotingClosed):
            store.mutate(issue.id, lambda current: cast_vote(current, "B", VoteDirection.UP, clock()))
        assert store.get(issue.id) == closed

    def test_id_is_immutable(self, store, author, draft, clock):
        issue = store.create(draft, author, clock())
        with pytest.raises(ValidationError):
            store.mutate(issue.id, lambda current: current.model_copy(update={"id": "other"}))
        assert store.get(issue.id) == issue
        assert store.repository.load("other") is None

    def test_concurrent_votes_are_not_lost(self, store, author, draft, clock):
        issue = store.create(draft, author, clock())
        now = clock()
        voters = [f"user-{n}" for n in range(50)]

        def vote(user_id):
            return store.mutate(issue.id, lambda current: cast_vote(current, user_id, VoteDirection.UP, now))

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(vote, voters))

        final = store.get(issue.id)
        assert final.votes.up_count == len(voters)
        assert set(final.votes.user_votes) == set(voters)
        assert final.version == len(voters) + 1
        assert sorted(result.version for result in results) == list(range(2, len(voters) + 2))

    def test_same_id_mutations_do_not_interleave(self, store, author, draft, clock):
        issue = store.create(draft, author, clock())
        inside = []
        overlap = threading.Event()
        guard = threading.Lock()

        def slow_mutator(current):
            with guard:
                inside.append(1)
                if len(inside) > 1:
                    overlap.set()
            time.sleep(0.01)
            with guard:
                inside.pop()
            return current

        threads = [threading.Thread(target=store.mutate, args=(issue.id, slow_mutator)) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert not overlap.is_set()
        assert store.get(issue.id).version == 6
