"""Configuration management using pydantic-settings."""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from knowledge_base.utils.errors import ConfigurationError


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class EmbeddingProvider(str, Enum):
    """Embedding provider selection."""

    OPENAI = "openai"
    AZURE = "azure"


class EmbeddingSettings(BaseSettings):
    """Embedding configuration (provider-agnostic)."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    embedding_provider: EmbeddingProvider = Field(
        default=EmbeddingProvider.OPENAI,
        description="Embedding provider: openai or azure. Env var: EMBEDDING_PROVIDER",
    )

    # OpenAI (direct) embeddings
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key for embeddings. Env var: OPENAI_API_KEY",
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Optional OpenAI base URL (advanced). Env var: OPENAI_BASE_URL",
    )

    # Azure OpenAI embeddings (optional)
    azure_openai_endpoint: Optional[str] = Field(
        default=None, description="Azure OpenAI endpoint URL. Env var: AZURE_OPENAI_ENDPOINT"
    )
    azure_openai_api_key: Optional[str] = Field(
        default=None, description="Azure OpenAI API key. Env var: AZURE_OPENAI_API_KEY"
    )
    azure_openai_api_version: str = Field(
        default="2024-02-15-preview",
        description="Azure OpenAI API version. Env var: AZURE_OPENAI_API_VERSION",
    )

    # Model configuration
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name (OpenAI direct). Env var: EMBEDDING_MODEL",
    )
    embedding_deployment_name: Optional[str] = Field(
        default=None,
        description="Embedding deployment name (Azure OpenAI). Env var: EMBEDDING_DEPLOYMENT_NAME",
    )
    embedding_dimension: int = Field(
        default=1536,
        gt=0,
        description="Vector size of the embedding model; also the Qdrant collection size. Env var: EMBEDDING_DIMENSION",
    )
    embedding_batch_size: int = Field(
        default=100,
        description="Texts per embedding request. Env var: EMBEDDING_BATCH_SIZE",
    )
    embedding_timeout: float = Field(
        default=30.0,
        description="Embedding request timeout in seconds. Env var: EMBEDDING_TIMEOUT",
    )

    @property
    def provider(self) -> EmbeddingProvider:
        """Get the embedding provider."""
        return self.embedding_provider

    @property
    def is_configured(self) -> bool:
        """Check if the selected embedding provider is configured."""
        if self.embedding_provider == EmbeddingProvider.OPENAI:
            return bool(self.openai_api_key)
        if self.embedding_provider == EmbeddingProvider.AZURE:
            return bool(
                self.azure_openai_endpoint
                and self.azure_openai_api_key
                and self.embedding_deployment_name
            )
        return False

    @property
    def resolved_model_name(self) -> str:
        """Get the effective model/deployment name to use for embeddings."""
        if self.embedding_provider == EmbeddingProvider.AZURE:
            return self.embedding_deployment_name or ""
        return self.embedding_model

    @property
    def batch_size(self) -> int:
        return self.embedding_batch_size

    @property
    def timeout(self) -> float:
        return self.embedding_timeout

    @property
    def dimension(self) -> int:
        return self.embedding_dimension


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_", case_sensitive=False)

    url: str = Field(default="http://localhost:6333", description="Qdrant connection URL")
    api_key: Optional[str] = Field(
        default=None, description="Qdrant API key (for Qdrant Cloud). Env var: QDRANT_API_KEY"
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")
    collection_name: str = Field(
        default="voice_agent_knowledge_base",
        description="Knowledge base collection. Env var: QDRANT_COLLECTION_NAME",
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.url.strip())


class ChunkingSettings(BaseSettings):
    """Text chunking configuration (sizes are in characters)."""

    model_config = SettingsConfigDict(env_prefix="CHUNK_", case_sensitive=False)

    size: int = Field(default=1000, gt=0, description="Chunk size in characters. Env var: CHUNK_SIZE")
    overlap: int = Field(
        default=200, ge=0, description="Overlap carried into the next chunk. Env var: CHUNK_OVERLAP"
    )
    deterministic_ids: bool = Field(
        default=True,
        description=(
            "Derive point ids from (documentId, chunkIndex) so re-ingestion overwrites. "
            "Env var: CHUNK_DETERMINISTIC_IDS"
        ),
    )

    @model_validator(mode="after")
    def check_overlap(self) -> "ChunkingSettings":
        """Overlap must leave room for the scan to advance."""
        if self.overlap >= self.size:
            raise ValueError("CHUNK_OVERLAP must be less than CHUNK_SIZE")
        return self


class StartupSettings(BaseSettings):
    """Collection warm-up performed by the application lifespan."""

    model_config = SettingsConfigDict(env_prefix="STARTUP_", case_sensitive=False)

    init_collection: bool = Field(
        default=True, description="Ensure the collection exists on startup. Env var: STARTUP_INIT_COLLECTION"
    )
    max_attempts: int = Field(
        default=5, ge=1, description="Warm-up attempts before giving up. Env var: STARTUP_MAX_ATTEMPTS"
    )
    retry_delay: float = Field(
        default=3.0, ge=0, description="Seconds between warm-up attempts. Env var: STARTUP_RETRY_DELAY"
    )


class ServerSettings(BaseSettings):
    """Server configuration."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    host: str = Field(default="0.0.0.0", description="Server host. Env var: HOST")
    port: int = Field(default=8004, description="HTTP server port. Env var: PORT")
    reload: bool = Field(
        default=False, description="Enable auto-reload (development only). Env var: RELOAD"
    )


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="knowledge-base", description="Application name. Env var: APP_NAME")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment. Env var: ENVIRONMENT",
    )
    log_level: str = Field(default="INFO", description="Logging level. Env var: LOG_LEVEL")
    cors_origins_str: str = Field(
        default="*",
        description="Allowed CORS origins (comma-separated). Env var: CORS_ORIGINS_STR",
    )

    # Sub-settings
    embedding: Optional[EmbeddingSettings] = None
    qdrant: Optional[QdrantSettings] = None
    chunking: Optional[ChunkingSettings] = None
    startup: Optional[StartupSettings] = None
    server: Optional[ServerSettings] = None

    @model_validator(mode="after")
    def initialize_nested_settings(self) -> "Settings":
        """Initialize nested settings to ensure they read from environment."""
        if self.embedding is None:
            self.embedding = EmbeddingSettings()
        if self.qdrant is None:
            self.qdrant = QdrantSettings()
        if self.chunking is None:
            self.chunking = ChunkingSettings()
        if self.startup is None:
            self.startup = StartupSettings()
        if self.server is None:
            self.server = ServerSettings()
        return self

    @field_validator("environment", mode="before")
    @classmethod
    def parse_environment(cls, v):
        """Parse environment from string."""
        if isinstance(v, str):
            try:
                return Environment(v.lower())
            except ValueError:
                return Environment.DEVELOPMENT
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()] or ["*"]

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def validate_configuration(self) -> None:
        """
        Check that the external services the pipeline talks to are configured.

        Raises:
            ConfigurationError: If embedding credentials or the Qdrant URL are missing
        """
        missing: List[str] = []
        if not self.embedding.is_configured:
            if self.embedding.provider == EmbeddingProvider.AZURE:
                missing.extend(
                    ["AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "EMBEDDING_DEPLOYMENT_NAME"]
                )
            else:
                missing.append("OPENAI_API_KEY")
        if not self.qdrant.is_configured:
            missing.append("QDRANT_URL")

        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                details={"missing": missing},
            )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
