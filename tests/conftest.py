"""Common test fixtures."""

import pytest

from inqdoc.core.config import AppConfig, ExtractionConfig, LLMConfig, RAGConfig, StorageConfig
from inqdoc.documents.in_memory_store import InMemoryVectorStore
from inqdoc.documents.vector_store import VectorStoreRegistry
from tests.fakes import (
    FakeClock,
    MockCompletionGateway,
    MockDocumentStore,
    MockEmbeddingGenerator,
)


@pytest.fixture
def test_config() -> AppConfig:
    """Create test configuration."""
    return AppConfig(
        debug=True,
        log_level="DEBUG",
        llm=LLMConfig(
            provider_order=["openrouter", "groq"],
            openrouter_api_key="test-key",
            groq_api_key=None,
            gemini_api_key=None,
        ),
        rag=RAGConfig(vector_store="in_memory", chunker="semantic"),
        extraction=ExtractionConfig(cache_ttl_seconds=60),
        storage=StorageConfig(backend="local", local_root="./uploads"),
    )


@pytest.fixture
def document_store() -> MockDocumentStore:
    """Create mock document store."""
    return MockDocumentStore()


@pytest.fixture
def completion_gateway() -> MockCompletionGateway:
    """Create mock completion gateway."""
    return MockCompletionGateway()


@pytest.fixture
def embedding_generator() -> MockEmbeddingGenerator:
    """Create mock embedding generator."""
    return MockEmbeddingGenerator()


@pytest.fixture
def clock() -> FakeClock:
    """Create fake clock."""
    return FakeClock()


@pytest.fixture
def in_memory_store(embedding_generator) -> InMemoryVectorStore:
    """Create in-memory vector store backed by the mock embedder."""
    return InMemoryVectorStore(embedding_generator=embedding_generator)


@pytest.fixture
def vector_store_registry(in_memory_store) -> VectorStoreRegistry:
    """Registry whose default store is the in-memory fixture."""

    async def factory():
        return in_memory_store

    registry = VectorStoreRegistry()
    registry.register("in_memory", factory, is_default=True)
    return registry
