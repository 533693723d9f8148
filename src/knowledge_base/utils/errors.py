"""Custom exception classes for the Knowledge Base service."""

from typing import Any, Dict, Optional


class KnowledgeBaseException(Exception):
    """Base exception for all Knowledge Base errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(KnowledgeBaseException):
    """Malformed or incomplete documents or queries."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if errors:
            error_details["validation_errors"] = errors
        super().__init__(
            message=message,
            status_code=400,
            code="VALIDATION_ERROR",
            details=error_details,
        )


class ConfigurationError(KnowledgeBaseException):
    """Required credentials or URLs are missing."""

    def __init__(
        self,
        message: str = "Service is not configured",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="CONFIGURATION_ERROR",
            details=details,
        )


class ChunkingError(KnowledgeBaseException):
    """Exception raised for text chunking errors."""

    def __init__(
        self,
        message: str = "Text chunking failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="CHUNKING_ERROR",
            details=details,
        )


class EmbeddingServiceError(KnowledgeBaseException):
    """The embedding call failed or returned empty/malformed data."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if model:
            error_details["model"] = model
        super().__init__(
            message=message,
            status_code=502,
            code="EMBEDDING_ERROR",
            details=error_details,
        )


class VectorIndexError(KnowledgeBaseException):
    """Common base for vector index failures."""

    def __init__(
        self,
        message: str,
        code: str,
        collection: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if collection:
            error_details["collection"] = collection
        super().__init__(
            message=message,
            status_code=502,
            code=code,
            details=error_details,
        )


class IndexWriteError(VectorIndexError):
    """Collection create, upsert or delete failed."""

    def __init__(
        self,
        message: str = "Vector index write failed",
        collection: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "INDEX_WRITE_ERROR", collection=collection, details=details)


class IndexReadError(VectorIndexError):
    """Search or stats call failed."""

    def __init__(
        self,
        message: str = "Vector index read failed",
        collection: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "INDEX_READ_ERROR", collection=collection, details=details)
