"""Document ingestion and retrieval pipeline.

Extraction of text from PDF, DOCX and TXT files, structure and entity analysis,
chunking, vector storage, hybrid search and token-budgeted prompt assembly.
"""

from .chunking import ChunkerRegistry, ChunkingOptions, chunker_registry
from .entities import extract_entities
from .extractor import ContentExtractor, get_document_text_content
from .models import (
    ChunkingResult,
    DocumentChunk,
    DocumentMetadata,
    DocumentSection,
    EnhancedSearchResult,
    VectorQueryResult,
    VectorStoreDocument,
)
from .pipeline import DocumentPipeline
from .prompt_builder import build_prompt_with_context_limit
from .search import HybridSearchOptions, SearchOptimizer, hybrid_search
from .structure import analyze_document_structure
from .vector_store import VectorQueryOptions, VectorStoreClient, VectorStoreRegistry, get_vector_store

__all__ = [
    "ChunkerRegistry",
    "ChunkingOptions",
    "ChunkingResult",
    "ContentExtractor",
    "DocumentChunk",
    "DocumentMetadata",
    "DocumentPipeline",
    "DocumentSection",
    "EnhancedSearchResult",
    "HybridSearchOptions",
    "SearchOptimizer",
    "VectorQueryOptions",
    "VectorQueryResult",
    "VectorStoreClient",
    "VectorStoreDocument",
    "VectorStoreRegistry",
    "analyze_document_structure",
    "build_prompt_with_context_limit",
    "extract_entities",
    "chunker_registry",
    "get_document_text_content",
    "get_vector_store",
    "hybrid_search",
]
