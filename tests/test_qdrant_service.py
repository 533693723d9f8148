"""Tests for the Qdrant vector index service (in-memory Qdrant)."""

import asyncio
import time
from unittest.mock import MagicMock, patch

import pytest
from qdrant_client.models import PointStruct

from knowledge_base.models.chunk import ChunkMetadata, DocumentChunk
from knowledge_base.services.chunking_service import make_chunk_id
from knowledge_base.services.qdrant_service import QdrantService
from knowledge_base.utils.errors import IndexReadError, IndexWriteError

from .conftest import TEST_DIMENSION, fake_vector


def _chunk(document_id: str, index: int, total: int, content: str, **meta) -> DocumentChunk:
    return DocumentChunk(
        id=make_chunk_id(document_id, index),
        content=content,
        metadata=ChunkMetadata(
            source=meta.pop("source", f"{document_id}.txt"),
            document_id=document_id,
            chunk_index=index,
            total_chunks=total,
            **meta,
        ),
    )


def _axis(position: int) -> list:
    vector = [0.0] * TEST_DIMENSION
    vector[position] = 1.0
    return vector


class TestEnsureCollection:
    """Tests for collection creation."""

    @pytest.mark.asyncio
    async def test_creates_then_reuses(self, memory_index):
        assert await memory_index.ensure_collection() is True
        assert await memory_index.ensure_collection() is False

    @pytest.mark.asyncio
    async def test_client_failure_is_write_error(self):
        client = MagicMock()
        client.get_collections.side_effect = ConnectionError("connection refused")
        index = QdrantService(client=client, collection_name="kb", vector_size=TEST_DIMENSION)

        with pytest.raises(IndexWriteError) as exc_info:
            await index.ensure_collection()

        assert exc_info.value.details["collection"] == "kb"


class TestUpsert:
    """Tests for point writes."""

    @pytest.mark.asyncio
    async def test_upsert_same_id_overwrites(self, memory_index):
        first = _chunk("doc", 0, 1, "Old wording.")
        second = _chunk("doc", 0, 1, "New wording.")

        await memory_index.upsert_chunks([first], [_axis(0)])
        await memory_index.upsert_chunks([second], [_axis(0)])

        stats = await memory_index.get_stats()
        assert stats.points_count == 1
        [result] = await memory_index.search(_axis(0), limit=5)
        assert result.content == "New wording."

    @pytest.mark.asyncio
    async def test_upsert_chunks_returns_ids(self, memory_index):
        chunks = [_chunk("doc", i, 2, f"Part {i}.") for i in range(2)]
        ids = await memory_index.upsert_chunks(chunks, [_axis(0), _axis(1)])
        assert ids == [c.id for c in chunks]

    @pytest.mark.asyncio
    async def test_missing_payload_field_is_rejected(self):
        client = MagicMock()
        index = QdrantService(client=client, collection_name="kb", vector_size=TEST_DIMENSION)
        point = PointStruct(
            id=make_chunk_id("doc", 0),
            vector=_axis(0),
            payload={"content": "text", "source": "doc.txt", "chunkIndex": 0, "totalChunks": 1},
        )

        with pytest.raises(IndexWriteError) as exc_info:
            await index.upsert([point])

        assert exc_info.value.details["missing"] == ["documentId"]
        client.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_wrong_vector_size_is_rejected(self, memory_index):
        with pytest.raises(IndexWriteError):
            await memory_index.upsert_chunks([_chunk("doc", 0, 1, "Text.")], [[1.0, 0.0]])

    @pytest.mark.asyncio
    async def test_length_mismatch_is_rejected(self, memory_index):
        with pytest.raises(IndexWriteError):
            await memory_index.upsert_chunks([_chunk("doc", 0, 1, "Text.")], [])

    @pytest.mark.asyncio
    async def test_upsert_waits_for_acknowledgement(self):
        client = MagicMock()
        index = QdrantService(client=client, collection_name="kb", vector_size=TEST_DIMENSION)
        chunk = _chunk("doc", 0, 1, "Text.")

        await index.upsert([PointStruct(id=chunk.id, vector=_axis(0), payload=chunk.to_payload())])

        assert client.upsert.call_args.kwargs["wait"] is True


class TestSearch:
    """Tests for similarity search."""

    @pytest.mark.asyncio
    async def test_results_are_ranked_best_first(self, memory_index):
        chunks = [_chunk("doc", i, 3, f"Part {i}.") for i in range(3)]
        await memory_index.upsert_chunks(chunks, [_axis(0), _axis(1), _axis(2)])

        query = _axis(1)
        query[0] = 0.5
        results = await memory_index.search(query, limit=3)

        assert [r.content for r in results] == ["Part 1.", "Part 0.", "Part 2."]
        assert results[0].score >= results[1].score >= results[2].score
        assert results[0].id == chunks[1].id

    @pytest.mark.asyncio
    async def test_identical_vector_scores_one(self, memory_index):
        vector = fake_vector("Escalate billing disputes.")
        await memory_index.upsert_chunks([_chunk("doc", 0, 1, "Escalate billing disputes.")], [vector])

        [result] = await memory_index.search(vector, limit=1)
        assert result.score == pytest.approx(1.0, abs=1e-4)

    @pytest.mark.asyncio
    async def test_limit_is_respected(self, memory_index):
        chunks = [_chunk("doc", i, 4, f"Part {i}.") for i in range(4)]
        await memory_index.upsert_chunks(chunks, [_axis(i) for i in range(4)])

        assert len(await memory_index.search(_axis(0), limit=2)) == 2

    @pytest.mark.asyncio
    async def test_metadata_round_trips(self, memory_index):
        chunk = _chunk(
            "policy",
            2,
            5,
            "Never promise refunds.",
            source="policy.pdf",
            title="Refund Policy",
            page_number=7,
        )
        await memory_index.upsert_chunks([chunk], [_axis(3)])

        [result] = await memory_index.search(_axis(3), limit=1)
        assert result.metadata == chunk.metadata
        assert result.content == "Never promise refunds."

    @pytest.mark.asyncio
    async def test_empty_collection_returns_nothing(self, memory_index):
        await memory_index.ensure_collection()
        assert await memory_index.search(_axis(0), limit=5) == []

    @pytest.mark.asyncio
    async def test_missing_collection_is_read_error(self, memory_index):
        with pytest.raises(IndexReadError):
            await memory_index.search(_axis(0), limit=5)


class TestStatsAndDelete:
    """Tests for collection statistics and retraction."""

    @pytest.mark.asyncio
    async def test_stats_count_points(self, memory_index):
        chunks = [_chunk("doc", i, 3, f"Part {i}.") for i in range(3)]
        await memory_index.upsert_chunks(chunks, [_axis(i) for i in range(3)])

        stats = await memory_index.get_stats()
        assert stats.points_count == 3

    @pytest.mark.asyncio
    async def test_stats_on_missing_collection_is_read_error(self, memory_index):
        with pytest.raises(IndexReadError):
            await memory_index.get_stats()

    @pytest.mark.asyncio
    async def test_delete_by_document_id(self, memory_index):
        keep = [_chunk("keep", i, 2, f"Keep {i}.") for i in range(2)]
        drop = [_chunk("drop", i, 3, f"Drop {i}.") for i in range(3)]
        await memory_index.upsert_chunks(keep + drop, [_axis(i) for i in range(5)])

        await memory_index.delete_by_document_id("drop")

        stats = await memory_index.get_stats()
        assert stats.points_count == 2
        results = await memory_index.search(_axis(0), limit=10)
        assert {r.metadata.document_id for r in results} == {"keep"}

    @pytest.mark.asyncio
    async def test_ping(self, memory_index):
        assert await memory_index.ping() is True

    @pytest.mark.asyncio
    async def test_ping_reports_unreachable(self):
        client = MagicMock()
        client.get_collections.side_effect = ConnectionError("down")
        index = QdrantService(client=client, collection_name="kb", vector_size=TEST_DIMENSION)

        assert await index.ping() is False


class TestClientCreation:
    """Tests for the lazily created Qdrant client."""

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_share_one_client(self):
        built = []

        def slow_client(**kwargs):
            time.sleep(0.05)
            client = MagicMock()
            built.append(client)
            return client

        index = QdrantService(collection_name="kb", vector_size=TEST_DIMENSION)

        with patch("knowledge_base.services.qdrant_service.QdrantClient", side_effect=slow_client):
            results = await asyncio.gather(*(index.ping() for _ in range(5)))

        assert results == [True] * 5
        assert len(built) == 1
        assert index._get_client() is built[0]
