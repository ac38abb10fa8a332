"""Chunking strategies for document processing."""

from inqdoc.documents.chunking.base import BaseChunker, ChunkingOptions
from inqdoc.documents.chunking.registry import (
    SEMANTIC,
    SLIDING_WINDOW,
    ChunkerRegistry,
    chunker_registry,
    create_chunker_registry,
)
from inqdoc.documents.chunking.semantic import SemanticChunker, SemanticChunkingOptions
from inqdoc.documents.chunking.sliding_window import SlidingWindowChunker

__all__ = [
    "SEMANTIC",
    "SLIDING_WINDOW",
    "BaseChunker",
    "ChunkerRegistry",
    "ChunkingOptions",
    "SemanticChunker",
    "SemanticChunkingOptions",
    "SlidingWindowChunker",
    "chunker_registry",
    "create_chunker_registry",
]
