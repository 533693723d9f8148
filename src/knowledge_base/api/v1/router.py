"""API v1 router aggregation.

All v1 endpoints are prefixed with `/api/v1`.
"""

from fastapi import APIRouter

from knowledge_base.api.v1 import health, knowledge

router = APIRouter(
    prefix="/api/v1",
    tags=["v1"],
    responses={
        400: {"description": "Invalid request"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)

router.include_router(health.router)
router.include_router(knowledge.router)


@router.get(
    "/",
    summary="API Information",
    description="Get API version and status information",
    tags=["v1"],
)
async def api_info():
    """Get API v1 information."""
    return {
        "version": "v1",
        "status": "active",
        "service": "knowledge-base",
        "endpoints": {
            "health": "/api/v1/health",
            "ready": "/api/v1/ready",
            "rag": {
                "ingest": "/api/v1/rag/ingest",
                "search": "/api/v1/rag/search",
                "stats": "/api/v1/rag/stats",
                "delete": "/api/v1/rag/documents/{document_id}",
                "init": "/api/v1/rag/init",
                "tool": "/api/v1/rag/tool/search",
                "tool_definition": "/api/v1/rag/tool",
                "context": "/api/v1/rag/context",
            },
        },
    }
