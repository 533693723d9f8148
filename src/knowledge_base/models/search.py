"""Search result and collection statistics models."""

from pydantic import BaseModel, ConfigDict, Field

from knowledge_base.models.chunk import ChunkMetadata


class SearchResult(BaseModel):
    """One ranked match returned by a similarity search."""

    id: str = Field(..., description="Point id")
    score: float = Field(..., description="Cosine similarity (higher is closer)")
    content: str = Field(..., description="Matched chunk text")
    metadata: ChunkMetadata


class CollectionStats(BaseModel):
    """Collection counters for observability."""

    model_config = ConfigDict(populate_by_name=True)

    points_count: int = Field(default=0, alias="pointsCount")
    indexed_vectors_count: int = Field(default=0, alias="indexedVectorsCount")
    segments_count: int = Field(default=0, alias="segmentsCount")
