"""Pydantic models for documents, chunks, search results and API bodies."""

from knowledge_base.models.chunk import ChunkMetadata, DocumentChunk
from knowledge_base.models.document import Document
from knowledge_base.models.results import IngestionResult, SearchOutcome
from knowledge_base.models.search import CollectionStats, SearchResult

__all__ = [
    "ChunkMetadata",
    "CollectionStats",
    "Document",
    "DocumentChunk",
    "IngestionResult",
    "SearchOutcome",
    "SearchResult",
]
