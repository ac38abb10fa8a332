"""Custom exception hierarchy."""

from enum import StrEnum
from typing import Any


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ExtractionError(AppError):
    """Base class for text extraction failures."""


class ExtractionFailedError(ExtractionError):
    """Direct extraction and the LLM fallback both produced insufficient text."""

    def __init__(
        self,
        message: str,
        storage_key: str,
        original_error: BaseException | None = None,
    ):
        self.storage_key = storage_key
        self.original_error = original_error
        super().__init__(message, code="EXTRACTION_FAILED")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        details: dict[str, Any] = {"storage_key": self.storage_key}
        if self.original_error is not None:
            details["original_error"] = str(self.original_error)
        result["error"]["details"] = details
        return result


class UnsupportedFormatError(ExtractionError):
    """File extension not recognised and plain-text decoding failed."""

    def __init__(self, message: str, extension: str):
        self.extension = extension
        super().__init__(message, code="UNSUPPORTED_FORMAT")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"extension": self.extension}
        return result


class DocumentFetchError(AppError):
    """Document bytes could not be read from the byte store."""

    def __init__(self, message: str, storage_key: str):
        self.storage_key = storage_key
        super().__init__(message, code="DOCUMENT_FETCH_FAILED")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"storage_key": self.storage_key}
        return result


class EmbeddingFailureError(AppError):
    """Embedding service returned no vector where one was required."""

    def __init__(self, message: str, document_id: str | None = None):
        self.document_id = document_id
        super().__init__(message, code="EMBEDDING_FAILED")


class VectorStoreOperation(StrEnum):
    """Vector store operation that failed."""

    ADD = "add"
    QUERY = "query"
    REMOVE = "remove"
    CONNECT = "connect"


class VectorStoreError(AppError):
    """Underlying vector database failure."""

    def __init__(self, message: str, operation: VectorStoreOperation, store: str):
        self.operation = operation
        self.store = store
        super().__init__(message, code="VECTOR_STORE_ERROR")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {
            "operation": str(self.operation),
            "store": self.store,
        }
        return result


class NoImplementationError(AppError):
    """Registry lookup found nothing for the requested name or no default."""

    def __init__(self, message: str, registry: str, name: str | None = None):
        self.registry = registry
        self.name = name
        super().__init__(message, code="NO_IMPLEMENTATION")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"registry": self.registry, "name": self.name}
        return result


class LLMError(AppError):
    """LLM communication error."""

    def __init__(self, message: str, provider: str):
        self.provider = provider
        super().__init__(message, code="LLM_ERROR")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"provider": self.provider}
        return result


class ConfigurationError(AppError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")
