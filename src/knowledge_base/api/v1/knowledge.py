"""Knowledge base endpoints: ingestion, search, statistics, retraction and tool support."""

import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from knowledge_base.models.knowledge import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_TOOL_SEARCH_LIMIT,
    ContextResponse,
    DeleteResponse,
    IngestResponse,
    SearchRequest,
    SearchResponse,
    StatsResponse,
    ToolSearchResponse,
)
from knowledge_base.services.knowledge_service import (
    KnowledgeService,
    get_knowledge_service,
    parse_documents,
)
from knowledge_base.services.tool_service import (
    KNOWLEDGE_BASE_TOOLS,
    KnowledgeBaseToolHandler,
    build_context_block,
)
from knowledge_base.utils.errors import KnowledgeBaseException, ValidationError
from knowledge_base.utils.logging import get_logger, log_error

logger = get_logger("knowledge_api")

router = APIRouter(prefix="/rag", tags=["knowledge"])

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def _failure(error: str, details: Optional[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": error, "details": details or ""},
    )


def parse_limit(raw: Optional[str], default: int = DEFAULT_SEARCH_LIMIT) -> int:
    """
    Read a query-string limit from its leading digits ("3abc" -> 3).

    Missing, non-numeric and non-positive values fall back to `default`.
    """
    match = _LEADING_INT.match(raw or "")
    if not match:
        return default
    value = int(match.group(0))
    return value if value > 0 else default


def _require_query(query: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Invalid request: query string required")
    return query


@router.post(
    "/ingest",
    response_model=IngestResponse,
    summary="Ingest Documents",
    description="Chunk, embed and index a batch of documents as one all-or-nothing operation.",
)
async def ingest_documents(
    body: Dict[str, Any] = Body(...),
    service: KnowledgeService = Depends(get_knowledge_service),
):
    """
    Ingest documents into the knowledge base.

    Each document needs `content`, `documentId` and `source`; `title` and
    `pageNumber` are optional. Incomplete documents are rejected with 400
    before anything is chunked or embedded.
    """
    documents = parse_documents(body.get("documents"))

    result = await service.ingest_documents(documents)
    if not result.success:
        return _failure("Failed to ingest documents", result.details)

    return IngestResponse(
        message=f"Successfully ingested {result.document_count} documents",
        chunkCount=result.chunk_count,
    )


async def _run_search(service: KnowledgeService, query: str, limit: int):
    outcome = await service.search_knowledge_base(query, limit)
    if not outcome.success:
        return _failure("Failed to search knowledge base", outcome.details)
    return SearchResponse(results=outcome.results, count=len(outcome.results))


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search Knowledge Base",
)
async def search_knowledge_base(
    request: Optional[SearchRequest] = None,
    service: KnowledgeService = Depends(get_knowledge_service),
):
    """Search with a JSON body `{query, limit?}`; a non-numeric limit falls back to 5."""
    request = request or SearchRequest()
    query = _require_query(request.query)
    return await _run_search(service, query, request.resolved_limit())


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search Knowledge Base (query string)",
)
async def search_knowledge_base_get(
    q: Optional[str] = Query(default=None, description="Search query"),
    limit: Optional[str] = Query(default=None, description="Maximum number of results"),
    service: KnowledgeService = Depends(get_knowledge_service),
):
    if not q:
        raise ValidationError("Query parameter 'q' is required")

    return await _run_search(service, q, parse_limit(limit))


@router.get("/stats", response_model=StatsResponse, summary="Collection Statistics")
async def get_stats(service: KnowledgeService = Depends(get_knowledge_service)):
    try:
        stats = await service.get_stats()
    except KnowledgeBaseException as e:
        log_error(e, context={"endpoint": "stats"})
        return _failure("Failed to get RAG stats", e.message)
    return StatsResponse(stats=stats)


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteResponse,
    summary="Delete Document",
    description="Remove every indexed chunk of a document, e.g. before re-ingesting a corrected version.",
)
async def delete_document(
    document_id: str,
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        await service.delete_document(document_id)
    except ValidationError:
        raise
    except KnowledgeBaseException as e:
        log_error(e, context={"endpoint": "delete_document", "document_id": document_id})
        return _failure("Failed to delete document", e.message)
    return DeleteResponse(message=f"Deleted document {document_id}")


@router.post("/init", summary="Initialize Knowledge Base")
async def initialize_knowledge_base(service: KnowledgeService = Depends(get_knowledge_service)):
    """Create the collection if it does not exist yet."""
    try:
        created = await service.initialize()
    except KnowledgeBaseException as e:
        log_error(e, context={"endpoint": "init"})
        return _failure("Failed to initialize knowledge base", e.message)
    return {"success": True, "created": created}


@router.post(
    "/tool/search",
    response_model=ToolSearchResponse,
    summary="Knowledge Base Tool",
    description="Run the voice agent's searchKnowledgeBase tool and return model-ready text.",
)
async def knowledge_base_tool(
    request: Optional[SearchRequest] = None,
    service: KnowledgeService = Depends(get_knowledge_service),
):
    request = request or SearchRequest()
    query = _require_query(request.query)
    handler = KnowledgeBaseToolHandler(service)
    output = await handler.search(query, request.resolved_limit(DEFAULT_TOOL_SEARCH_LIMIT))
    return ToolSearchResponse(output=output)


@router.get(
    "/tool",
    summary="Knowledge Base Tool Definition",
    description="OpenAI function-calling definition of the searchKnowledgeBase tool.",
)
async def knowledge_base_tool_definition():
    return {"tools": KNOWLEDGE_BASE_TOOLS}


@router.post(
    "/context",
    response_model=ContextResponse,
    summary="Chat Context",
    description="Search and render the matches as a context section for the analysis chat prompt.",
)
async def knowledge_base_context(
    request: Optional[SearchRequest] = None,
    service: KnowledgeService = Depends(get_knowledge_service),
):
    request = request or SearchRequest()
    query = _require_query(request.query)
    outcome = await service.search_knowledge_base(query, request.resolved_limit(DEFAULT_TOOL_SEARCH_LIMIT))
    if not outcome.success:
        return _failure("Failed to search knowledge base", outcome.details)
    return ContextResponse(context=build_context_block(outcome.results), count=len(outcome.results))
