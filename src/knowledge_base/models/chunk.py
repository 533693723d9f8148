"""Chunk models for knowledge base ingestion."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChunkMetadata(BaseModel):
    """Fixed metadata record carried by every chunk and stored in the point payload."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(..., description="Filename or origin label of the parent document")
    document_id: str = Field(..., alias="documentId", description="Parent document id")
    chunk_index: int = Field(..., ge=0, alias="chunkIndex", description="0-based position within the document")
    total_chunks: int = Field(..., ge=1, alias="totalChunks", description="Number of chunks in the document")
    title: Optional[str] = Field(default=None, description="Parent document title")
    page_number: Optional[int] = Field(default=None, alias="pageNumber", description="Parent document page")


class DocumentChunk(BaseModel):
    """A contiguous, trimmed, non-empty segment of a document."""

    id: str = Field(..., description="Point id (UUID string)")
    content: str = Field(..., min_length=1, description="Chunk text")
    metadata: ChunkMetadata

    def to_payload(self) -> Dict[str, Any]:
        """Flatten content and metadata into a Qdrant payload."""
        return {
            "content": self.content,
            **self.metadata.model_dump(by_alias=True, exclude_none=True),
        }
