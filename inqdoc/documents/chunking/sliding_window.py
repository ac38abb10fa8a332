"""Sliding window chunker: paragraph-respecting fixed windows with overlap."""

from __future__ import annotations

from collections.abc import Sequence
from typing_extensions import override

from inqdoc.core.logging import get_logger
from inqdoc.documents.chunking.base import (
    BaseChunker,
    build_result,
    empty_result,
    find_section_for_position,
    split_paragraphs,
)
from inqdoc.documents.models import (
    ChunkingResult,
    DocumentChunk,
    DocumentMetadata,
    DocumentSection,
)

logger = get_logger(__name__)


class SlidingWindowChunker(BaseChunker):
    """Splits text into paragraphs and windows any paragraph that is too long.

    Paragraphs up to ``max_chunk_size`` become one chunk each. Longer ones are
    covered by windows of ``max_chunk_size`` characters stepping by
    ``max_chunk_size - chunk_overlap``. When the tail left after a step is
    shorter than a third of a window, it is folded into the previous chunk.
    """

    default_chunk_overlap = 200

    @override
    async def create_chunks(
        self,
        document_id: str,
        text: str,
        metadata: DocumentMetadata | None = None,
        sections: Sequence[DocumentSection] | None = None,
    ) -> ChunkingResult:
        if not text or not text.strip():
            return empty_result()

        max_size = self.options.max_chunk_size
        step = max_size - self.options.chunk_overlap

        if self.options.respect_paragraph_boundaries:
            paragraphs = split_paragraphs(text)
        else:
            paragraphs = [(text, 0)]

        chunks: list[DocumentChunk] = []

        def emit(start: int, end: int) -> None:
            section = find_section_for_position(sections, start)
            chunks.append(
                self._make_chunk(
                    document_id,
                    len(chunks),
                    text[start:end],
                    start,
                    end,
                    section,
                    metadata,
                )
            )

        for paragraph, offset in paragraphs:
            if not paragraph.strip():
                continue

            length = len(paragraph)
            if length <= max_size:
                emit(offset, offset + length)
                continue

            start = 0
            while start < length:
                end = min(start + max_size, length)
                emit(offset + start, offset + end)
                if end == length:
                    break

                start += step
                remaining = length - start
                if start + max_size > length and remaining < max_size / 3:
                    # Fold the short tail into the window just emitted
                    last = chunks.pop()
                    emit(last.start_position, offset + length)
                    break

        logger.debug(
            "sliding_window_chunks_created",
            document_id=document_id,
            chunk_count=len(chunks),
        )
        return build_result(text, chunks)
