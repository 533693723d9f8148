"""Pydantic models for the knowledge base API."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from knowledge_base.models.search import CollectionStats, SearchResult

DEFAULT_SEARCH_LIMIT = 5
DEFAULT_TOOL_SEARCH_LIMIT = 3


class SearchRequest(BaseModel):
    """Request model for a knowledge base search.

    `query` is optional at the schema level so that a missing query can be
    reported as a 400 with an explanatory message instead of a 422.
    """

    query: Optional[Any] = Field(default=None, description="Natural-language query")
    limit: Optional[Any] = Field(default=None, description="Maximum number of results")

    def resolved_limit(self, default: int = DEFAULT_SEARCH_LIMIT) -> int:
        """Use `limit` when it is a positive integer, otherwise the default."""
        if isinstance(self.limit, int) and not isinstance(self.limit, bool) and self.limit > 0:
            return self.limit
        return default


class IngestResponse(BaseModel):
    """Response model for a successful ingestion."""

    success: bool = True
    message: str
    chunkCount: int = Field(..., description="Chunks written to the index")


class SearchResponse(BaseModel):
    """Response model for a successful search."""

    success: bool = True
    results: List[SearchResult]
    count: int


class StatsResponse(BaseModel):
    """Response model for collection statistics."""

    success: bool = True
    stats: CollectionStats


class DeleteResponse(BaseModel):
    """Response model for document retraction."""

    success: bool = True
    message: str


class ToolSearchResponse(BaseModel):
    """Plain-text output handed to the voice agent's knowledge base tool."""

    output: str


class ContextResponse(BaseModel):
    """Search matches rendered as a chat prompt context section."""

    success: bool = True
    context: str
    count: int
