"""Health check endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from knowledge_base.config import get_settings
from knowledge_base.services.qdrant_service import get_qdrant_service
from knowledge_base.utils.logging import get_logger

logger = get_logger("health")

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """
    Health check endpoint.

    Returns basic service health status. This endpoint does not check
    external dependencies and will always return healthy if the service is running.
    """
    settings = get_settings()
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check():
    """
    Readiness check endpoint.

    Checks:
    - embeddings: the selected provider has its credentials
    - qdrant: the vector database answers a collections listing

    Returns 503 if either is unavailable.
    """
    settings = get_settings()
    logger.debug("Readiness check requested")

    checks = {
        "embeddings": settings.embedding.is_configured,
        "qdrant": False,
    }
    if settings.qdrant.is_configured:
        checks["qdrant"] = await get_qdrant_service().ping()

    body = {
        "status": "ready" if all(checks.values()) else "not_ready",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "checks": checks,
    }
    if not all(checks.values()):
        logger.warning(f"Readiness check failed: {checks}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
