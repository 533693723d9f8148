"""Pytest configuration and fixtures for knowledge-base tests."""

import hashlib
import os
from typing import List, Sequence

import pytest

# Set environment variables before any imports that read settings
os.environ["ENVIRONMENT"] = "development"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["QDRANT_URL"] = "http://localhost:6333"
os.environ["STARTUP_INIT_COLLECTION"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from qdrant_client import QdrantClient  # noqa: E402

from knowledge_base.services.chunking_service import ChunkingService  # noqa: E402
from knowledge_base.services.knowledge_service import KnowledgeService  # noqa: E402
from knowledge_base.services.qdrant_service import QdrantService  # noqa: E402

TEST_DIMENSION = 8


def fake_vector(text: str, dimension: int = TEST_DIMENSION) -> List[float]:
    """Deterministic, never-zero vector derived from the text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [digest[i] / 255.0 + 0.01 for i in range(dimension)]


class FakeEmbeddingService:
    """Stands in for EmbeddingService; records what it was asked to embed."""

    def __init__(self, dimension: int = TEST_DIMENSION):
        self.dimension = dimension
        self.embed_calls: List[str] = []
        self.batch_calls: List[List[str]] = []

    async def embed(self, text: str) -> List[float]:
        self.embed_calls.append(text)
        return fake_vector(text, self.dimension)

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        return [fake_vector(t, self.dimension) for t in texts]


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddingService()


@pytest.fixture
def qdrant_client():
    """In-memory Qdrant, fresh for each test."""
    client = QdrantClient(":memory:")
    yield client
    client.close()


@pytest.fixture
def memory_index(qdrant_client):
    return QdrantService(
        client=qdrant_client,
        collection_name="test_knowledge_base",
        vector_size=TEST_DIMENSION,
    )


@pytest.fixture
def knowledge_service(fake_embeddings, memory_index):
    return KnowledgeService(
        chunking_service=ChunkingService(chunk_size=1000, chunk_overlap=200, deterministic_ids=True),
        embedding_service=fake_embeddings,
        qdrant_service=memory_index,
    )
