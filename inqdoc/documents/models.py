"""Document models for the InQDoc pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class DocumentMetadata:
    """Descriptive attributes of a source document."""

    title: str | None = None
    author: str | None = None
    created_date: str | None = None
    created_at: datetime | None = None
    modified_date: str | None = None
    summary: str | None = None
    language: str | None = None
    page_count: int | None = None
    word_count: int | None = None
    character_count: int | None = None
    keywords: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class DocumentSection:
    """A heading-derived structural unit of a document.

    A child section's ``[start_position, end_position)`` interval lies within
    its parent's.
    """

    title: str
    level: int
    start_position: int | None = None
    end_position: int | None = None
    start_page: int | None = None
    end_page: int | None = None
    content: str | None = None
    id: str | None = None
    parent_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    children: list[DocumentSection] = field(default_factory=list)

    def contains(self, position: int) -> bool:
        """Whether ``position`` falls inside this section."""
        if self.start_position is None or self.start_position > position:
            return False
        return self.end_position is None or position < self.end_position


@dataclass
class DocumentStructure:
    """Result of heading analysis over a document's text."""

    sections: list[DocumentSection] = field(default_factory=list)
    table_of_contents: list[DocumentSection] = field(default_factory=list)
    heading_count: int = 0
    max_heading_level: int = 0
    title: str | None = None


@dataclass
class ChunkSection:
    """Section reference carried by a chunk."""

    title: str
    level: int


@dataclass
class DocumentChunk:
    """A bounded slice of a document's text; the unit of retrieval."""

    id: str
    document_id: str
    content: str
    index: int
    start_position: int
    end_position: int
    start_page: int | None = None
    end_page: int | None = None
    section: ChunkSection | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    embedding: list[float] | None = None

    def to_vector_document(self) -> VectorStoreDocument:
        """Build the persisted vector store form of this chunk."""
        metadata: dict[str, Any] = {
            **self.metadata,
            "document_id": self.document_id,
            "chunk_index": self.index,
            "start_position": self.start_position,
            "end_position": self.end_position,
            "start_page": self.start_page,
            "end_page": self.end_page,
        }
        if self.section:
            metadata["section_title"] = self.section.title
            metadata["section_level"] = self.section.level

        # Pinecone rejects null metadata values
        metadata = {k: v for k, v in metadata.items() if v is not None}

        return VectorStoreDocument(
            id=self.id,
            text=self.content,
            metadata=metadata,
            vector=self.embedding,
        )


@dataclass
class ChunkingResult:
    """Output of a chunker run."""

    chunks: list[DocumentChunk] = field(default_factory=list)
    total_characters: int = 0
    chunk_count: int = 0
    average_chunk_size: float = 0.0


@dataclass
class VectorStoreDocument:
    """A unit persisted in a vector store."""

    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    vector: list[float] | None = None


@dataclass
class VectorQueryResult:
    """A nearest-neighbour match returned by a vector store."""

    id: str
    text: str
    metadata: dict[str, Any]
    score: float


@dataclass
class EnhancedSearchResult(VectorQueryResult):
    """Hybrid search result with neighbouring context and highlighting."""

    preceding_context: str | None = None
    following_context: str | None = None
    highlighted_content: str | None = None
    relevance_explanation: str | None = None
