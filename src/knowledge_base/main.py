"""FastAPI application entry point.

This module creates and configures the FastAPI application instance with:
- Middleware (CORS, RequestID, Timing, ErrorLogging)
- Exception handlers
- API routers (v1)
- Health check endpoints (/health, /ready)
- Startup warm-up of the knowledge base collection
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from knowledge_base import __version__
from knowledge_base.config import get_settings
from knowledge_base.middleware import setup_middleware
from knowledge_base.utils.errors import KnowledgeBaseException
from knowledge_base.utils.logging import get_logger, log_error, setup_logging

# Set up logging first
setup_logging()
logger = get_logger("main")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    On startup the configuration is validated and the knowledge base
    collection is created if needed. In production either failure aborts
    startup; elsewhere it is logged and requests report the problem instead.
    """
    logger.info("Starting Knowledge Base service...")

    if settings.startup.init_collection:
        try:
            from knowledge_base.services.knowledge_service import (
                get_knowledge_service,
                initialize_with_retry,
            )

            service = get_knowledge_service()
            created = await initialize_with_retry(
                service,
                max_attempts=settings.startup.max_attempts,
                delay=settings.startup.retry_delay,
            )
            logger.info(
                f"Knowledge base collection ready "
                f"({'created' if created else 'existing'}: {settings.qdrant.collection_name})"
            )
        except KnowledgeBaseException as e:
            log_error(e, context={"phase": "startup"})
            if settings.is_production:
                raise  # Fail fast in production
            logger.warning(
                "Knowledge base warm-up failed in development mode. "
                "Service will continue but ingestion and search will fail until "
                f"Qdrant is reachable at {settings.qdrant.url} and credentials are set."
            )
    else:
        logger.info("Knowledge base warm-up disabled (STARTUP_INIT_COLLECTION=false)")

    logger.info("Knowledge Base service started successfully")
    yield
    logger.info("Knowledge Base service shut down")


app = FastAPI(
    title="Knowledge Base Service",
    description=(
        "Voice agent knowledge base - chunks, embeds and indexes guideline documents "
        "and answers similarity searches for the voice agent and the analysis chat."
    ),
    version=__version__,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

setup_middleware(app)


# Exception handlers
@app.exception_handler(KnowledgeBaseException)
async def knowledge_base_exception_handler(request: Request, exc: KnowledgeBaseException):
    """Handle KnowledgeBaseException."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "code": "HTTP_ERROR"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request schema errors (malformed JSON, wrong body type)."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR", "details": str(exc)},
    )


from knowledge_base.api.v1.router import router as v1_router  # noqa: E402

app.include_router(v1_router)


# Health checks are also available at /api/v1/health and /api/v1/ready
@app.get("/health", tags=["health"], include_in_schema=False)
async def root_health_check():
    """Root-level health check endpoint (for Kubernetes/Docker)."""
    from knowledge_base.api.v1.health import health_check

    return await health_check()


@app.get("/ready", tags=["health"], include_in_schema=False)
async def root_readiness_check():
    """Root-level readiness check endpoint (for Kubernetes/Docker)."""
    from knowledge_base.api.v1.health import readiness_check

    return await readiness_check()


@app.get("/", tags=["root"])
async def root():
    return {
        "service": "knowledge-base",
        "version": __version__,
        "status": "running",
        "environment": settings.environment.value,
    }


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "knowledge_base.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload and settings.is_development,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
