"""Base chunker with shared utilities."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from inqdoc.documents.models import (
    ChunkingResult,
    ChunkSection,
    DocumentChunk,
    DocumentMetadata,
    DocumentSection,
)

PARAGRAPH_SEPARATOR = re.compile(r"\n\s*\n")


@dataclass
class ChunkingOptions:
    """Configuration shared by all chunking strategies (sizes in characters)."""

    max_chunk_size: int = 1000
    target_chunk_size: int = 500
    min_chunk_size: int = 100
    chunk_overlap: int = 50
    respect_sentence_boundaries: bool = True
    respect_paragraph_boundaries: bool = True
    respect_section_boundaries: bool = True
    include_section_titles: bool = True
    section_separator: str = "\n\n"

    def __post_init__(self) -> None:
        if self.max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.max_chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than max_chunk_size")


def empty_result() -> ChunkingResult:
    return ChunkingResult(chunks=[], total_characters=0, chunk_count=0, average_chunk_size=0)


def build_result(text: str, chunks: list[DocumentChunk]) -> ChunkingResult:
    """Wrap chunks with run statistics."""
    total_characters = len(text)
    chunk_count = len(chunks)
    return ChunkingResult(
        chunks=chunks,
        total_characters=total_characters,
        chunk_count=chunk_count,
        average_chunk_size=total_characters / chunk_count if chunk_count else 0,
    )


def split_paragraphs(text: str) -> list[tuple[str, int]]:
    """Split on blank lines, keeping each paragraph's offset in ``text``."""
    paragraphs: list[tuple[str, int]] = []
    start = 0
    for match in PARAGRAPH_SEPARATOR.finditer(text):
        paragraphs.append((text[start : match.start()], start))
        start = match.end()
    paragraphs.append((text[start:], start))
    return paragraphs


def find_section_for_position(
    sections: Sequence[DocumentSection] | None,
    position: int,
) -> DocumentSection | None:
    """Deepest section whose ``[start, end)`` interval contains ``position``.

    Sections are expected in document order, so the last match is the most
    specific one.
    """
    if not sections:
        return None
    for section in reversed(sections):
        if section.start_position is None or section.start_position > position:
            continue
        if section.end_position is None or position < section.end_position:
            return section
    return None


class BaseChunker(ABC):
    """Abstract base class for chunking strategies.

    Subclasses implement create_chunks() with their own splitting logic.
    """

    default_chunk_overlap = 50

    def __init__(self, options: ChunkingOptions | None = None, **overrides: Any) -> None:
        """Initialize the chunker.

        Args:
            options: Chunking options (strategy defaults if omitted)
            **overrides: Individual option fields to override
        """
        base = options or ChunkingOptions(chunk_overlap=self.default_chunk_overlap)
        self.options = replace(base, **overrides) if overrides else base

    @abstractmethod
    async def create_chunks(
        self,
        document_id: str,
        text: str,
        metadata: DocumentMetadata | None = None,
        sections: Sequence[DocumentSection] | None = None,
    ) -> ChunkingResult:
        """Split a document's text into chunks.

        Args:
            document_id: ID of the document being chunked
            text: Full text of the document
            metadata: Document metadata
            sections: Document sections in document order, if known

        Returns:
            Chunking result; empty for blank text
        """
        ...

    @staticmethod
    def generate_chunk_id(document_id: str, index: int) -> str:
        return f"{document_id}_chunk_{index}"

    def _make_chunk(
        self,
        document_id: str,
        index: int,
        content: str,
        start: int,
        end: int,
        section: DocumentSection | None,
        metadata: DocumentMetadata | None,
    ) -> DocumentChunk:
        return DocumentChunk(
            id=self.generate_chunk_id(document_id, index),
            document_id=document_id,
            content=content,
            index=index,
            start_position=start,
            end_position=end,
            start_page=section.start_page if section else None,
            end_page=section.end_page if section else None,
            section=ChunkSection(title=section.title, level=section.level) if section else None,
            metadata=self._chunk_metadata(metadata, start, end, section),
        )

    @staticmethod
    def _chunk_metadata(
        document_metadata: DocumentMetadata | None,
        start: int,
        end: int,
        section: DocumentSection | None,
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {}

        if document_metadata:
            if document_metadata.title:
                metadata["document_title"] = document_metadata.title
            if document_metadata.author:
                metadata["document_author"] = document_metadata.author
            if document_metadata.created_date:
                metadata["document_created_date"] = document_metadata.created_date
            elif document_metadata.created_at:
                metadata["document_created_date"] = document_metadata.created_at.isoformat()
            if document_metadata.keywords:
                metadata["document_keywords"] = list(document_metadata.keywords)

        metadata["start_position"] = start
        metadata["end_position"] = end

        if section:
            metadata["section_title"] = section.title
            metadata["section_level"] = section.level
            if section.start_position is not None:
                metadata["section_position"] = section.start_position

        return metadata
