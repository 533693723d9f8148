"""Text chunking service for knowledge base ingestion."""

import uuid
from typing import Iterable, List, Optional

from knowledge_base.config import get_settings
from knowledge_base.models.chunk import ChunkMetadata, DocumentChunk
from knowledge_base.models.document import Document
from knowledge_base.utils.errors import ChunkingError
from knowledge_base.utils.logging import get_logger

logger = get_logger("chunking_service")

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

# A cut only lands on a sentence/line boundary past this fraction of the window
BREAK_THRESHOLD = 0.5

# Deterministic namespace for stable point ids from (document_id, chunk_index)
_CHUNK_ID_NAMESPACE = uuid.UUID("3f2a9c1e-7b64-4d1a-a8e5-52c0d7b9e4f1")


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[str]:
    """
    Split text into overlapping, boundary-aware chunks.

    The text is scanned in windows of at most `chunk_size` characters. When
    more text follows a window, the chunk is cut just after the last period or
    newline in the window, provided that boundary sits past half the window.
    Otherwise the full window is taken and the next window starts
    `chunk_overlap` characters before its end. Chunks are stripped and empty
    ones dropped.

    Args:
        text: Input text
        chunk_size: Maximum window width in characters
        chunk_overlap: Characters repeated after a hard (non-boundary) cut

    Returns:
        Ordered list of non-empty chunk strings

    Raises:
        ChunkingError: If the size/overlap combination cannot advance the scan
    """
    if chunk_size <= 0:
        raise ChunkingError("chunk_size must be > 0", details={"chunk_size": chunk_size})
    if chunk_overlap < 0:
        raise ChunkingError("chunk_overlap must be >= 0", details={"chunk_overlap": chunk_overlap})
    if chunk_overlap >= chunk_size:
        raise ChunkingError(
            "chunk_overlap must be less than chunk_size",
            details={"chunk_overlap": chunk_overlap, "chunk_size": chunk_size},
        )

    chunks: List[str] = []
    text_length = len(text)
    start = 0

    while start < text_length:
        end = min(start + chunk_size, text_length)
        chunk = text[start:end]

        if end < text_length:
            break_point = max(chunk.rfind("."), chunk.rfind("\n"))
            if break_point > chunk_size * BREAK_THRESHOLD:
                chunk = chunk[: break_point + 1]
                start += break_point + 1
            else:
                start = end - chunk_overlap
        else:
            start = end

        chunk = chunk.strip()
        if chunk:
            chunks.append(chunk)

    return chunks


def make_chunk_id(document_id: str, chunk_index: int, deterministic: bool = True) -> str:
    """Point id for a chunk: stable per (document_id, chunk_index), or random."""
    if deterministic:
        return str(uuid.uuid5(_CHUNK_ID_NAMESPACE, f"{document_id}:{chunk_index}"))
    return str(uuid.uuid4())


class ChunkingService:
    """
    Turn documents into `DocumentChunk`s ready for embedding.

    Chunk size, overlap and the id strategy default to the values from
    `ChunkingSettings` and can be overridden per instance.
    """

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        deterministic_ids: Optional[bool] = None,
    ):
        settings = get_settings()
        self.chunk_size = chunk_size or settings.chunking.size
        self.chunk_overlap = chunk_overlap if chunk_overlap is not None else settings.chunking.overlap
        self.deterministic_ids = (
            deterministic_ids if deterministic_ids is not None else settings.chunking.deterministic_ids
        )

    def chunk_text(self, text: str) -> List[str]:
        return chunk_text(text, self.chunk_size, self.chunk_overlap)

    def process_document(
        self,
        content: str,
        document_id: str,
        source: str,
        title: Optional[str] = None,
        page_number: Optional[int] = None,
    ) -> List[DocumentChunk]:
        """
        Chunk one document and attach per-chunk metadata.

        Returns:
            Chunks numbered 0..n-1, each carrying `total_chunks == n`
        """
        pieces = self.chunk_text(content)
        total = len(pieces)

        return [
            DocumentChunk(
                id=make_chunk_id(document_id, index, self.deterministic_ids),
                content=piece,
                metadata=ChunkMetadata(
                    source=source,
                    document_id=document_id,
                    chunk_index=index,
                    total_chunks=total,
                    title=title,
                    page_number=page_number,
                ),
            )
            for index, piece in enumerate(pieces)
        ]

    def process_documents(self, documents: Iterable[Document]) -> List[DocumentChunk]:
        """Chunk several documents, keeping input order and per-document numbering."""
        all_chunks: List[DocumentChunk] = []
        document_count = 0

        for doc in documents:
            chunks = self.process_document(
                content=doc.content,
                document_id=doc.document_id,
                source=doc.source,
                title=doc.title,
                page_number=doc.page_number,
            )
            all_chunks.extend(chunks)
            document_count += 1

        logger.info(
            f"Chunked {document_count} documents into {len(all_chunks)} chunks "
            f"(chunk_size={self.chunk_size}, overlap={self.chunk_overlap})"
        )
        return all_chunks
