"""Embedding generation service (provider-agnostic)."""

from __future__ import annotations

from typing import List, Optional, Sequence

from knowledge_base.config import EmbeddingProvider, EmbeddingSettings, get_settings
from knowledge_base.utils.errors import ConfigurationError, EmbeddingServiceError
from knowledge_base.utils.logging import get_logger

logger = get_logger("embedding_service")


class EmbeddingService:
    """
    Turn text into dense vectors using a configurable provider.

    Providers:
    - openai: OpenAI direct API (`text-embedding-3-small`, 1536 dimensions)
    - azure: Azure OpenAI (requires deployment + quota)

    Requests are not retried here; a failed call fails the whole operation and
    the caller decides what to do about it.
    """

    def __init__(self, settings: Optional[EmbeddingSettings] = None) -> None:
        self._settings = settings or get_settings().embedding
        self._provider = self._settings.provider
        self._model_name = self._settings.resolved_model_name
        self._client = None  # lazy

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimension(self) -> int:
        return self._settings.dimension

    def _get_client(self):
        """Create the appropriate OpenAI client for the selected provider."""
        if self._client is not None:
            return self._client

        from openai import AsyncAzureOpenAI, AsyncOpenAI

        if self._provider == EmbeddingProvider.OPENAI:
            if not self._settings.openai_api_key:
                raise ConfigurationError(
                    "OPENAI_API_KEY is required when EMBEDDING_PROVIDER=openai",
                    details={"missing": ["OPENAI_API_KEY"]},
                )
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url,
                timeout=self._settings.timeout,
            )
            return self._client

        if self._provider == EmbeddingProvider.AZURE:
            if not self._settings.is_configured:
                raise ConfigurationError(
                    "Azure embeddings require AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY, "
                    "and EMBEDDING_DEPLOYMENT_NAME",
                    details={
                        "missing": [
                            "AZURE_OPENAI_ENDPOINT",
                            "AZURE_OPENAI_API_KEY",
                            "EMBEDDING_DEPLOYMENT_NAME",
                        ]
                    },
                )
            self._client = AsyncAzureOpenAI(
                api_key=self._settings.azure_openai_api_key,
                azure_endpoint=self._settings.azure_openai_endpoint,
                api_version=self._settings.azure_openai_api_version,
                timeout=self._settings.timeout,
            )
            return self._client

        raise ConfigurationError(f"Unsupported embedding provider: {self._provider}")

    async def _request(self, inputs: List[str]) -> List[List[float]]:
        """Issue one embeddings request and validate the response shape."""
        client = self._get_client()
        try:
            resp = await client.embeddings.create(model=self._model_name, input=inputs)
        except Exception as e:
            raise EmbeddingServiceError(
                f"Embedding request failed: {e}", model=self._model_name
            ) from e

        data = getattr(resp, "data", None) or []
        if len(data) != len(inputs):
            raise EmbeddingServiceError(
                "Embedding response size mismatch",
                model=self._model_name,
                details={"expected": len(inputs), "got": len(data)},
            )

        vectors = [list(d.embedding) for d in data]

        for vector in vectors:
            if len(vector) != self.dimension:
                raise EmbeddingServiceError(
                    "Embedding dimension mismatch",
                    model=self._model_name,
                    details={"expected_dimension": self.dimension, "actual_dimension": len(vector)},
                )
        return vectors

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single string.

        Raises:
            EmbeddingServiceError: If the call fails or returns no data
        """
        vectors = await self._request([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed many strings, index-aligned with the input.

        Texts are sent in sub-batches of `EMBEDDING_BATCH_SIZE`, one request at
        a time, and the vectors are concatenated in input order. If any
        sub-batch fails the whole call fails.
        """
        if not texts:
            return []

        batch_size = max(1, self._settings.batch_size)
        provider_str = self._provider.value if hasattr(self._provider, "value") else str(self._provider)
        logger.info(
            f"Generating embeddings: provider={provider_str}, model={self._model_name}, "
            f"texts={len(texts)}, batch_size={batch_size}"
        )

        out: List[List[float]] = []
        for start in range(0, len(texts), batch_size):
            batch = list(texts[start : start + batch_size])
            out.extend(await self._request(batch))

        logger.info(f"Embeddings generated successfully: count={len(out)}, dimension={self.dimension}")
        return out


_embedding_service: Optional[EmbeddingService] = None


def get_embedding_service() -> EmbeddingService:
    """Get the process-wide embedding service."""
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service
