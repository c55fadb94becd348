"""
Vote Aggregator - community confirm/flag voting on issues.

Pure functions only: they take the current issue value and return a new
ledger (or a new issue). Persistence is the record store's job.

Rules for a user voting `direction`:
- Same direction as their current vote -> toggle off
- Opposite direction                  -> switch
- No current vote                     -> first vote
"""

from datetime import datetime
from typing import Dict, Optional

from app.core.errors import SelfVoteForbidden, VotingClosed
from app.models.issue import Issue, VoteDirection, VoteLedger


def apply_vote(issue: Issue, user_id: str, direction: VoteDirection) -> VoteLedger:
    """
    Compute the ledger that results from `user_id` voting `direction`.

    Args:
        issue: Current issue value (ledger, author and status are read)
        user_id: Acting user
        direction: VoteDirection.UP or VoteDirection.DOWN

    Returns:
        New VoteLedger; the input ledger is left untouched

    Raises:
        SelfVoteForbidden: user is the issue's author (any status)
        VotingClosed: issue is RESOLVED or REJECTED
    """
    direction = VoteDirection(direction)

    if user_id == issue.author_id:
        raise SelfVoteForbidden()
    if issue.is_locked:
        raise VotingClosed()

    ledger = issue.votes
    counts = {
        VoteDirection.UP: ledger.up_count,
        VoteDirection.DOWN: ledger.down_count,
    }
    user_votes: Dict[str, VoteDirection] = dict(ledger.user_votes)
    previous = user_votes.get(user_id)

    if previous == direction:
        del user_votes[user_id]
        counts[direction] = max(0, counts[direction] - 1)
    else:
        if previous is not None:
            counts[previous] = max(0, counts[previous] - 1)
        user_votes[user_id] = direction
        counts[direction] += 1

    return VoteLedger(
        up_count=counts[VoteDirection.UP],
        down_count=counts[VoteDirection.DOWN],
        user_votes=user_votes,
    )


def cast_vote(issue: Issue, user_id: str, direction: VoteDirection, now: datetime) -> Issue:
    """Single entry point that replaces an issue's ledger."""
    ledger = apply_vote(issue, user_id, direction)
    return issue.model_copy(update={
        "votes": ledger,
        "updated_at": max(now, issue.updated_at),
    })


def vote_summary(ledger: VoteLedger, user_id: Optional[str] = None) -> Dict:
    """Counts, popularity score and the caller's own vote, if any."""
    user_vote = ledger.user_votes.get(user_id) if user_id else None
    return {
        "up_count": ledger.up_count,
        "down_count": ledger.down_count,
        "popularity_score": ledger.score,
        "user_vote": user_vote.value if user_vote else None,
    }
