"""Pipeline outcome models returned by the knowledge service."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from knowledge_base.models.search import SearchResult


class IngestionResult(BaseModel):
    """All-or-nothing outcome of one ingestion call."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    document_count: int = Field(default=0, alias="documentCount")
    chunk_count: int = Field(default=0, alias="chunkCount")
    point_ids: List[str] = Field(default_factory=list, alias="pointIds")
    error: Optional[str] = Field(default=None, description="Error code of the failed stage")
    details: Optional[str] = Field(default=None, description="Underlying error message")


class SearchOutcome(BaseModel):
    """Outcome of one retrieval call. A failed search is not an empty search."""

    success: bool
    results: List[SearchResult] = Field(default_factory=list)
    error: Optional[str] = None
    details: Optional[str] = None
