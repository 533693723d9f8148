"""Document models for knowledge base ingestion."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """
    A source document uploaded to the knowledge base.

    Immutable once created. Re-ingesting the same `documentId` overwrites the
    chunks that share an index with the previous version.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    content: str = Field(..., description="Full document text")
    document_id: str = Field(..., alias="documentId", description="Caller-supplied unique id")
    source: str = Field(..., description="Filename or origin label")
    title: Optional[str] = Field(default=None, description="Optional document title")
    page_number: Optional[int] = Field(default=None, alias="pageNumber", description="Optional page number")
