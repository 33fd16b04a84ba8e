"""
Health check route.
"""
from fastapi import APIRouter

from crm.core.config import settings
from crm.core.tasks import get_task_failure_counts
from crm.core.timezone import iso_utc

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness: 200 whenever the app is running."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "timestamp": iso_utc(),
        "background_task_failures": get_task_failure_counts(),
    }
