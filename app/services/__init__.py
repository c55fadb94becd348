"""
Services layer - issue lifecycle business logic.

DESIGN PRINCIPLE:
- vote_aggregator and status_workflow are pure: no storage, no clocks
- issue_store owns the only read-modify-write path
- issue_service is the operation surface every route calls
"""
