"""
Seed script for the CityLink issue store (Firestore or in-memory).

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Use a different seed file: python scripts/seed_db.py --seed ./demo_issues.json --apply

Seed file format (JSON list):
  [
    {
      "author": {"id": "u-03", "name": "Kavya", "city_district": "Chennai"},
      "issue": {"title": "...", "description": "...", "address": "...", "city_district": "Chennai"}
    }
  ]

Issues are created through IssueService, so they get fresh ids, PENDING
status and empty vote ledgers exactly like citizen submissions.
"""

import argparse
import json
import logging
import os

from app.core.errors import CivicIssueError
from app.models.issue import IssueCreate
from app.models.user import Principal, UserRole
from app.services.issue_service import get_issue_service

logger = logging.getLogger("seed_db")


def load_seed(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_store(seed: list, apply: bool = False) -> int:
    service = get_issue_service() if apply else None
    written = 0
    for entry in seed:
        author = Principal(**{"role": UserRole.CITIZEN, **entry["author"]})
        draft = IssueCreate(**entry["issue"])
        print(f"Preparing: {draft.title!r} by {author.id} in {draft.city_district}")
        if not apply:
            continue
        try:
            issue = service.create_issue(author, draft)
            written += 1
            print(f"Wrote: issues/{issue.id}")
        except CivicIssueError as e:
            print(f"Skipped {draft.title!r}: {e.message}")
    return written


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--seed", default=os.path.join(os.getcwd(), "issues_seed.json"), help="Seed file path")
    args = parser.parse_args()

    if not os.path.exists(args.seed):
        print(f"Seed file not found: {args.seed}")
        return

    seed = load_seed(args.seed)
    written = write_to_store(seed, apply=args.apply)

    if args.apply:
        print(f"Seeding completed: {written} issue(s) written.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
