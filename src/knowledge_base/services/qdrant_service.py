"""Qdrant integration service for the knowledge base collection."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Dict, List, Optional, Sequence

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PointStruct,
    VectorParams,
)

from knowledge_base.config import get_settings
from knowledge_base.models.chunk import ChunkMetadata, DocumentChunk
from knowledge_base.models.search import CollectionStats, SearchResult
from knowledge_base.utils.errors import IndexReadError, IndexWriteError
from knowledge_base.utils.logging import get_logger

logger = get_logger("qdrant_service")

REQUIRED_PAYLOAD_FIELDS = ("content", "source", "documentId", "chunkIndex", "totalChunks")


class QdrantService:
    """
    Thin wrapper over the knowledge base collection in Qdrant.

    Strategy:
    - One well-known collection (`QDRANT_COLLECTION_NAME`)
    - Vector size fixed to the embedding dimension, cosine distance
    - Payload = chunk content + flattened chunk metadata
    - Every write waits for acknowledgement

    The synchronous client is created on first use and shared; calls run in a
    worker thread so the event loop is never blocked.
    """

    def __init__(
        self,
        client: Optional[QdrantClient] = None,
        collection_name: Optional[str] = None,
        vector_size: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._client_lock = threading.Lock()
        self.collection_name = collection_name or settings.qdrant.collection_name
        self.vector_size = vector_size or settings.embedding.dimension

    def _get_client(self) -> QdrantClient:
        if self._client is not None:
            return self._client

        # Called from worker threads; only one of them may build the client
        with self._client_lock:
            if self._client is None:
                settings = get_settings()
                self._client = QdrantClient(
                    url=settings.qdrant.url,
                    api_key=settings.qdrant.api_key,
                    timeout=settings.qdrant.timeout,
                )
                logger.info(f"Qdrant client created: url={settings.qdrant.url}")
        return self._client

    async def ensure_collection(self) -> bool:
        """
        Create the collection if it does not exist yet.

        Returns:
            True if the collection was created, False if it already existed
        """

        def _ensure() -> bool:
            client = self._get_client()
            existing = {c.name for c in client.get_collections().collections}
            if self.collection_name in existing:
                return False
            client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.vector_size, distance=Distance.COSINE),
            )
            return True

        try:
            created = await asyncio.to_thread(_ensure)
        except Exception as e:
            raise IndexWriteError(
                f"Failed to ensure Qdrant collection: {e}",
                collection=self.collection_name,
            ) from e

        if created:
            logger.info(
                f"Created Qdrant collection: {self.collection_name} (vector_size={self.vector_size})"
            )
        else:
            logger.debug(f"Qdrant collection {self.collection_name} already exists")
        return created

    def _validate_point(self, point: PointStruct) -> None:
        payload = point.payload or {}
        missing = [f for f in REQUIRED_PAYLOAD_FIELDS if payload.get(f) in (None, "")]
        if missing:
            raise IndexWriteError(
                "Point payload is missing required fields",
                collection=self.collection_name,
                details={"point_id": str(point.id), "missing": missing},
            )
        vector = point.vector
        if isinstance(vector, list) and len(vector) != self.vector_size:
            raise IndexWriteError(
                "Point vector size does not match the collection",
                collection=self.collection_name,
                details={
                    "point_id": str(point.id),
                    "expected": self.vector_size,
                    "actual": len(vector),
                },
            )

    async def upsert(self, points: Sequence[PointStruct]) -> None:
        """
        Write points, replacing any existing point with the same id.

        Raises:
            IndexWriteError: On an invalid point or a failed write
        """
        if not points:
            return

        for point in points:
            self._validate_point(point)

        def _upsert() -> None:
            self._get_client().upsert(
                collection_name=self.collection_name,
                points=list(points),
                wait=True,
            )

        try:
            await asyncio.to_thread(_upsert)
        except Exception as e:
            raise IndexWriteError(
                f"Failed to upsert points into Qdrant: {e}",
                collection=self.collection_name,
                details={"points": len(points)},
            ) from e

        logger.info(f"Qdrant upsert complete: collection={self.collection_name}, points={len(points)}")

    async def upsert_chunks(
        self,
        chunks: Sequence[DocumentChunk],
        embeddings: Sequence[Sequence[float]],
    ) -> List[str]:
        """
        Upsert chunks with their vectors and return the point ids.

        Assumes `embeddings` is aligned with `chunks` in order (same length).
        """
        if len(chunks) != len(embeddings):
            raise IndexWriteError(
                "Chunks and embeddings length mismatch",
                collection=self.collection_name,
                details={"chunks": len(chunks), "embeddings": len(embeddings)},
            )

        points = [
            PointStruct(id=chunk.id, vector=list(vector), payload=chunk.to_payload())
            for chunk, vector in zip(chunks, embeddings)
        ]

        await self.ensure_collection()
        await self.upsert(points)
        return [chunk.id for chunk in chunks]

    @staticmethod
    def _to_search_result(point: Any) -> SearchResult:
        payload: Dict[str, Any] = dict(point.payload or {})
        return SearchResult(
            id=str(point.id),
            score=float(point.score),
            content=payload.get("content", ""),
            metadata=ChunkMetadata.model_validate(payload),
        )

    async def search(self, query_vector: Sequence[float], limit: int = 5) -> List[SearchResult]:
        """
        Nearest points to `query_vector`, best match first.

        Raises:
            IndexReadError: If the search call fails
        """

        def _search():
            return self._get_client().query_points(
                collection_name=self.collection_name,
                query=list(query_vector),
                limit=limit,
                with_payload=True,
            ).points

        try:
            points = await asyncio.to_thread(_search)
            results = [self._to_search_result(p) for p in points]
        except Exception as e:
            raise IndexReadError(
                f"Failed to search Qdrant: {e}",
                collection=self.collection_name,
            ) from e

        logger.debug(f"Qdrant search returned {len(results)} results (limit={limit})")
        return results

    async def get_stats(self) -> CollectionStats:
        """Point, indexed-vector and segment counts of the collection."""

        def _stats() -> CollectionStats:
            info = self._get_client().get_collection(self.collection_name)
            return CollectionStats(
                points_count=info.points_count or 0,
                indexed_vectors_count=info.indexed_vectors_count or 0,
                segments_count=info.segments_count or 0,
            )

        try:
            return await asyncio.to_thread(_stats)
        except Exception as e:
            raise IndexReadError(
                f"Failed to get Qdrant collection stats: {e}",
                collection=self.collection_name,
            ) from e

    async def delete_by_document_id(self, document_id: str) -> None:
        """Remove every point whose payload `documentId` equals `document_id`."""

        def _delete() -> None:
            self._get_client().delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(
                    filter=Filter(
                        must=[FieldCondition(key="documentId", match=MatchValue(value=document_id))]
                    )
                ),
                wait=True,
            )

        try:
            await asyncio.to_thread(_delete)
        except Exception as e:
            raise IndexWriteError(
                f"Failed to delete document from Qdrant: {e}",
                collection=self.collection_name,
                details={"document_id": document_id},
            ) from e

        logger.info(f"Deleted document {document_id} from Qdrant collection {self.collection_name}")

    async def ping(self) -> bool:
        """Check that Qdrant answers a collections listing."""
        try:
            await asyncio.to_thread(lambda: self._get_client().get_collections())
            return True
        except Exception as e:
            logger.warning(f"Qdrant connection check failed: {e}")
            return False


_qdrant_service: Optional[QdrantService] = None


def get_qdrant_service() -> QdrantService:
    """Get the process-wide Qdrant service (client created lazily)."""
    global _qdrant_service
    if _qdrant_service is None:
        _qdrant_service = QdrantService()
    return _qdrant_service
