"""Core infrastructure module - config, DI container, protocols, exceptions."""

from inqdoc.core.config import (
    AppConfig,
    ExtractionConfig,
    LLMConfig,
    RAGConfig,
    StorageConfig,
    get_config,
)
from inqdoc.core.exceptions import (
    AppError,
    ConfigurationError,
    DocumentFetchError,
    EmbeddingFailureError,
    ExtractionError,
    ExtractionFailedError,
    LLMError,
    NoImplementationError,
    UnsupportedFormatError,
    VectorStoreError,
    VectorStoreOperation,
)

__all__ = [
    "AppConfig",
    "ExtractionConfig",
    "LLMConfig",
    "RAGConfig",
    "StorageConfig",
    "get_config",
    "AppError",
    "ConfigurationError",
    "DocumentFetchError",
    "EmbeddingFailureError",
    "ExtractionError",
    "ExtractionFailedError",
    "LLMError",
    "NoImplementationError",
    "UnsupportedFormatError",
    "VectorStoreError",
    "VectorStoreOperation",
]
