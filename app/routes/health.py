"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from app.core.errors import StorageUnavailable
from app.core.settings import settings
from app.services.issue_service import IssueService, get_issue_service


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/db")
async def database_health(service: IssueService = Depends(get_issue_service)):
    """
    Database connectivity check against the active issue repository.
    """
    try:
        probe = service.store.repository.ping()
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=e.message)

    return {
        "status": "healthy",
        **probe,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
