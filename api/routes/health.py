"""
Health check endpoint
"""

from fastapi import APIRouter
from core.config import settings
from schemas.api import HealthCheckResponse
from datetime import datetime

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint.
    
    The service keeps no state between snapshots, so there is nothing to
    probe beyond the process itself.
    """
    return HealthCheckResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        environment=settings.ENVIRONMENT,
        airtable_api=settings.AIRTABLE_API_BASE_URL
    )
