"""Knowledge base orchestration: ingestion and retrieval pipelines."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from knowledge_base.config import get_settings
from knowledge_base.models.document import Document
from knowledge_base.models.results import IngestionResult, SearchOutcome
from knowledge_base.models.search import CollectionStats
from knowledge_base.services.chunking_service import ChunkingService
from knowledge_base.services.embedding_service import EmbeddingService, get_embedding_service
from knowledge_base.services.qdrant_service import QdrantService, get_qdrant_service
from knowledge_base.utils.errors import KnowledgeBaseException, ValidationError, VectorIndexError
from knowledge_base.utils.logging import get_logger, log_error

logger = get_logger("knowledge_service")

REQUIRED_DOCUMENT_FIELDS = ("content", "documentId", "source")


def parse_documents(raw: Any) -> List[Document]:
    """
    Validate an incoming `documents` payload and build `Document`s.

    Raises:
        ValidationError: If `raw` is not a list, or a document lacks
            `content`, `documentId` or `source`
    """
    if not isinstance(raw, list):
        raise ValidationError("Invalid request: documents array required")

    documents: List[Document] = []
    for position, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(
                "Each document must have content, documentId, and source",
                details={"index": position},
            )
        missing = [
            f for f in REQUIRED_DOCUMENT_FIELDS if not isinstance(item.get(f), str) or not item.get(f)
        ]
        if missing:
            raise ValidationError(
                "Each document must have content, documentId, and source",
                details={"index": position, "missing": missing},
            )
        try:
            documents.append(Document.model_validate(item))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid document at index {position}",
                details={"index": position, "error": str(e)},
            ) from e
    return documents


class KnowledgeService:
    """
    Orchestrates Chunker -> Embedder -> Vector Index.

    `ingest_documents` and `search_knowledge_base` never let pipeline errors
    escape: they come back as a failed `IngestionResult` / `SearchOutcome`.
    Caller errors (bad documents, empty query) are raised as `ValidationError`
    before any work starts.
    """

    def __init__(
        self,
        chunking_service: Optional[ChunkingService] = None,
        embedding_service: Optional[EmbeddingService] = None,
        qdrant_service: Optional[QdrantService] = None,
    ):
        self.chunking = chunking_service or ChunkingService()
        self.embeddings = embedding_service or get_embedding_service()
        self.index = qdrant_service or get_qdrant_service()

    @staticmethod
    def _check_documents(documents: Sequence[Document]) -> None:
        seen: Dict[str, int] = {}
        for position, doc in enumerate(documents):
            missing = [
                name
                for name, value in (
                    ("content", doc.content),
                    ("documentId", doc.document_id),
                    ("source", doc.source),
                )
                if not value
            ]
            if missing:
                raise ValidationError(
                    "Each document must have content, documentId, and source",
                    details={"index": position, "missing": missing},
                )
            # documentId is unique within one batch
            if doc.document_id in seen:
                raise ValidationError(
                    f"Duplicate documentId in request: {doc.document_id}",
                    details={
                        "index": position,
                        "first_index": seen[doc.document_id],
                        "documentId": doc.document_id,
                    },
                )
            seen[doc.document_id] = position

    async def ingest_documents(self, documents: Sequence[Document]) -> IngestionResult:
        """
        Chunk, embed and upsert a batch of documents as one operation.

        Args:
            documents: Documents to ingest

        Returns:
            IngestionResult; on failure nothing is reported as ingested

        Raises:
            ValidationError: If any document is incomplete or a documentId repeats
        """
        self._check_documents(documents)
        logger.info(f"Processing {len(documents)} documents...")

        try:
            chunks = self.chunking.process_documents(documents)
            if not chunks:
                return IngestionResult(success=True, document_count=len(documents))

            logger.info("Generating embeddings...")
            vectors = await self.embeddings.embed_batch([c.content for c in chunks])

            logger.info("Storing in Qdrant...")
            point_ids = await self.index.upsert_chunks(chunks, vectors)
        except KnowledgeBaseException as e:
            log_error(e, context={"stage": "ingest", "documents": len(documents)})
            return IngestionResult(
                success=False,
                document_count=len(documents),
                error=e.code,
                details=e.message,
            )

        logger.info(f"Ingested {len(documents)} documents ({len(point_ids)} chunks)")
        return IngestionResult(
            success=True,
            document_count=len(documents),
            chunk_count=len(point_ids),
            point_ids=point_ids,
        )

    async def search_knowledge_base(self, query: str, limit: int = 5) -> SearchOutcome:
        """
        Embed the query and return the closest chunks, best first.

        Raises:
            ValidationError: If the query is empty or the limit is not positive
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Invalid request: query string required")
        if limit <= 0:
            raise ValidationError("limit must be a positive integer", details={"limit": limit})

        try:
            query_vector = await self.embeddings.embed(query)
            results = await self.index.search(query_vector, limit)
        except KnowledgeBaseException as e:
            log_error(e, context={"stage": "search", "limit": limit})
            return SearchOutcome(success=False, error=e.code, details=e.message)

        logger.info(f"Knowledge base search returned {len(results)} results (limit={limit})")
        return SearchOutcome(success=True, results=results)

    async def initialize(self) -> bool:
        """Make sure the collection exists. Returns True if it was created."""
        created = await self.index.ensure_collection()
        logger.info("Knowledge base initialized")
        return created

    async def delete_document(self, document_id: str) -> None:
        """Retract every chunk of a previously ingested document."""
        if not document_id:
            raise ValidationError("documentId is required")
        await self.index.delete_by_document_id(document_id)

    async def get_stats(self) -> CollectionStats:
        return await self.index.get_stats()


_knowledge_service: Optional[KnowledgeService] = None


def get_knowledge_service() -> KnowledgeService:
    """
    Get the process-wide knowledge service.

    Configuration is validated before the first instance is built so that a
    missing credential surfaces as `ConfigurationError` before any network call.
    """
    global _knowledge_service
    if _knowledge_service is None:
        get_settings().validate_configuration()
        _knowledge_service = KnowledgeService()
    return _knowledge_service


async def initialize_with_retry(
    service: KnowledgeService,
    max_attempts: int,
    delay: float,
) -> bool:
    """
    Startup warm-up: ensure the collection exists, retrying index failures.

    Only `VectorIndexError`s are retried; configuration problems fail at once.
    """
    async for attempt in AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(VectorIndexError),
    ):
        with attempt:
            attempt_number = attempt.retry_state.attempt_number
            if attempt_number > 1:
                logger.warning(f"Knowledge base warm-up attempt {attempt_number}/{max_attempts}")
            return await service.initialize()
    # unreachable due to reraise=True
    return False
