"""Dependency Injector based DI Container."""

from dependency_injector import containers, providers

from inqdoc.core.config import get_config

# --- Factory Functions (defined before class to avoid NameError) ---


def _init_logging(config):
    """Configure structlog from application settings."""
    from inqdoc.core.logging import setup_logging

    setup_logging(
        log_level=config.log_level,
        json_format=config.json_logs,
        log_file=config.log_file,
    )


def _create_document_store(config):
    """Create document byte store."""
    from inqdoc.documents.storage import create_document_store

    return create_document_store(config.storage)


def _create_embedding_generator(config):
    """Create embedding generator."""
    from inqdoc.documents.embeddings import create_embedding_generator

    api_key = config.rag.embedding_api_key
    if config.rag.embedding_provider == "pinecone":
        api_key = api_key or config.rag.pinecone_api_key
    else:
        api_key = api_key or config.llm.openai_api_key
    return create_embedding_generator(
        provider=config.rag.embedding_provider,
        model=config.rag.embedding_model,
        api_key=api_key,
    )


def _create_completion_gateway(config):
    """Create completion gateway."""
    from inqdoc.llm import create_completion_gateway

    return create_completion_gateway(config.llm)


def _create_content_extractor(config, document_store, completion_gateway):
    """Create content extractor."""
    from inqdoc.documents.extractor import ContentExtractor

    return ContentExtractor(
        document_store=document_store,
        completion_gateway=completion_gateway,
        cache_ttl_seconds=config.extraction.cache_ttl_seconds,
        min_chars=config.extraction.min_extracted_chars,
        fallback_max_chars=config.extraction.fallback_max_chars,
        cache_max_entries=config.extraction.cache_max_entries,
    )


def _create_chunker_registry(config):
    """Create chunker registry."""
    from inqdoc.documents.chunking import ChunkingOptions, create_chunker_registry

    options = ChunkingOptions(
        max_chunk_size=config.rag.max_chunk_size,
        target_chunk_size=config.rag.target_chunk_size,
        min_chunk_size=config.rag.min_chunk_size,
        chunk_overlap=config.rag.chunk_overlap,
    )
    return create_chunker_registry(options, default=config.rag.chunker)


def _create_vector_store_registry(config, embedding_generator):
    """Create vector store registry (Pinecone and in-memory)."""
    from inqdoc.documents.in_memory_store import InMemoryVectorStore
    from inqdoc.documents.pinecone_store import PineconeVectorStore
    from inqdoc.documents.vector_store import VectorStoreRegistry

    async def pinecone_factory():
        return PineconeVectorStore(
            embedding_generator=embedding_generator,
            api_key=config.rag.pinecone_api_key,
            index_name=config.rag.pinecone_index_name,
            namespace=config.rag.pinecone_namespace,
        )

    async def in_memory_factory():
        return InMemoryVectorStore(embedding_generator=embedding_generator)

    registry = VectorStoreRegistry()
    registry.register("pinecone", pinecone_factory)
    registry.register("in_memory", in_memory_factory)
    registry.set_default_implementation(config.rag.vector_store)
    return registry


def _create_search_optimizer(vector_store_registry, embedding_generator):
    """Create search optimizer."""
    from inqdoc.documents.search import SearchOptimizer

    return SearchOptimizer(
        vector_store_registry=vector_store_registry,
        embedding_generator=embedding_generator,
    )


def _create_pipeline(
    config,
    content_extractor,
    chunker_registry,
    vector_store_registry,
    search_optimizer,
    completion_gateway,
):
    """Create document pipeline."""
    from functools import partial

    from inqdoc.documents.pipeline import DocumentPipeline
    from inqdoc.utils.token_counter import count_tokens

    return DocumentPipeline(
        content_extractor=content_extractor,
        chunker_registry=chunker_registry,
        vector_store_registry=vector_store_registry,
        search_optimizer=search_optimizer,
        completion_gateway=completion_gateway,
        top_k=config.rag.top_k,
        keyword_weight=config.rag.keyword_weight,
        semantic_weight=config.rag.semantic_weight,
        include_neighbour_context=config.rag.include_neighbour_context,
        max_context_tokens=config.llm.max_context_tokens,
        token_counter=partial(count_tokens, model=config.llm.token_encoding_model),
    )


class DIContainer(containers.DeclarativeContainer):
    """Main dependency injection container."""

    # Configuration provider
    config = providers.Singleton(get_config)

    # Logging (configured by init_resources())
    logging = providers.Resource(
        _init_logging,
        config=config,
    )

    # Document byte store
    document_store = providers.Singleton(
        _create_document_store,
        config=config,
    )

    # Embedding Generator
    embedding_generator = providers.Singleton(
        _create_embedding_generator,
        config=config,
    )

    # Completion gateway (provider fallback chain)
    completion_gateway = providers.Singleton(
        _create_completion_gateway,
        config=config,
    )

    # Content extractor (process-wide cache)
    content_extractor = providers.Singleton(
        _create_content_extractor,
        config=config,
        document_store=document_store,
        completion_gateway=completion_gateway,
    )

    # Chunking strategies
    chunker_registry = providers.Singleton(
        _create_chunker_registry,
        config=config,
    )

    # Vector stores
    vector_store_registry = providers.Singleton(
        _create_vector_store_registry,
        config=config,
        embedding_generator=embedding_generator,
    )

    # Hybrid search
    search_optimizer = providers.Singleton(
        _create_search_optimizer,
        vector_store_registry=vector_store_registry,
        embedding_generator=embedding_generator,
    )

    # Pipeline
    pipeline = providers.Singleton(
        _create_pipeline,
        config=config,
        content_extractor=content_extractor,
        chunker_registry=chunker_registry,
        vector_store_registry=vector_store_registry,
        search_optimizer=search_optimizer,
        completion_gateway=completion_gateway,
    )


# Global container instance
container = DIContainer()
