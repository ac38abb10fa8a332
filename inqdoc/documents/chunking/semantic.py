"""Semantic chunker: packs paragraphs into chunks that follow document sections."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

from typing_extensions import override

from inqdoc.core.logging import get_logger
from inqdoc.documents.chunking.base import (
    BaseChunker,
    ChunkingOptions,
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

# Sentence end followed by a capital letter, or trailing punctuation
SENTENCE_BOUNDARY = re.compile(r"([.!?])\s+(?=[A-Z])|([.!?])(?=\s*$)|(\.{3})\s+(?=[A-Z])")


@dataclass
class SemanticChunkingOptions(ChunkingOptions):
    """Chunking options with semantic-strategy switches.

    Switches left as None inherit from the matching base option.
    """

    new_chunk_on_section_boundary: bool | None = None
    include_section_headings: bool | None = None
    prefer_complete_sentences: bool | None = None
    heading_format: str = "## {title}\n\n"

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.new_chunk_on_section_boundary is None:
            self.new_chunk_on_section_boundary = self.respect_section_boundaries
        if self.include_section_headings is None:
            self.include_section_headings = self.include_section_titles
        if self.prefer_complete_sentences is None:
            self.prefer_complete_sentences = self.respect_sentence_boundaries


def split_sentences(text: str) -> list[str]:
    """Split on sentence-ending punctuation; pieces concatenate back to ``text``."""
    boundaries = [match.start() + 1 for match in SENTENCE_BOUNDARY.finditer(text)]
    boundaries.append(len(text))

    sentences: list[str] = []
    start = 0
    for boundary in boundaries:
        if boundary <= start:
            continue
        piece = text[start:boundary]
        if sentences and not piece.strip():
            sentences[-1] += piece
        else:
            sentences.append(piece)
        start = boundary
    return sentences


class _ChunkBuilder:
    """Accumulates paragraphs for the chunk currently being built."""

    def __init__(self, separator: str):
        self.separator = separator
        self.heading = ""
        self.parts: list[str] = []
        self.start = 0
        self.end = 0
        self.section: DocumentSection | None = None

    @property
    def has_content(self) -> bool:
        return bool(self.parts)

    @property
    def text(self) -> str:
        return self.heading + self.separator.join(self.parts)

    def __len__(self) -> int:
        return len(self.text)

    def begin(self, start: int, section: DocumentSection | None, heading: str) -> None:
        self.heading = heading
        self.parts = []
        self.start = start
        self.end = start
        self.section = section

    def add(self, part: str, end: int) -> None:
        self.parts.append(part)
        self.end = end


class SemanticChunker(BaseChunker):
    """Packs paragraphs up to ``target_chunk_size`` without crossing sections.

    A chunk is closed when the next paragraph would push it past
    ``max_chunk_size``, when a new section starts, or at a sentence boundary
    once the target size is reached. Paragraphs longer than
    ``max_chunk_size`` are first split at sentence boundaries.
    """

    def __init__(self, options: ChunkingOptions | None = None, **overrides: Any) -> None:
        super().__init__(options, **overrides)
        if not isinstance(self.options, SemanticChunkingOptions):
            self.options = SemanticChunkingOptions(**asdict(self.options))

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

        opts = self.options
        chunks: list[DocumentChunk] = []
        builder = _ChunkBuilder(opts.section_separator)
        current_section: DocumentSection | None = None

        def close() -> None:
            if not builder.has_content:
                return
            chunks.append(
                self._make_chunk(
                    document_id,
                    len(chunks),
                    builder.text,
                    builder.start,
                    builder.end,
                    builder.section,
                    metadata,
                )
            )
            builder.parts = []

        for paragraph, para_start in self._paragraphs(text, sections):
            para_end = para_start + len(paragraph)

            section = find_section_for_position(sections, para_start)
            if section is not current_section:
                if opts.new_chunk_on_section_boundary and section is not None:
                    close()
                current_section = section

            if not builder.has_content:
                builder.begin(para_start, current_section, self._heading_for(current_section))

            separator = len(opts.section_separator) if builder.has_content else 0
            projected = len(builder) + separator + len(paragraph)
            if builder.has_content and projected > opts.max_chunk_size:
                close()
                builder.begin(para_start, current_section, self._heading_for(current_section))
                builder.add(paragraph, para_end)
                continue

            if (
                builder.has_content
                and opts.prefer_complete_sentences
                and len(builder) + len(paragraph) > opts.target_chunk_size
            ):
                remainder = self._break_at_sentence(builder, paragraph, para_start, para_end)
                if remainder is not None:
                    close()
                    rest, rest_start = remainder
                    builder.begin(rest_start, current_section, self._heading_for(current_section))
                    builder.add(rest, para_end)
                    continue

            builder.add(paragraph, para_end)

        close()

        logger.debug(
            "semantic_chunks_created",
            document_id=document_id,
            chunk_count=len(chunks),
            section_count=len(sections) if sections else 0,
        )
        return build_result(text, chunks)

    def _heading_for(self, section: DocumentSection | None) -> str:
        if section is None or not self.options.include_section_headings:
            return ""
        return self.options.heading_format.format(title=section.title)

    def _split_at_sections(
        self,
        paragraph: str,
        offset: int,
        sections: Sequence[DocumentSection] | None,
    ) -> list[tuple[str, int]]:
        """Cut ``paragraph`` at every section start strictly inside it."""
        if not sections or not self.options.new_chunk_on_section_boundary:
            return [(paragraph, offset)]

        end = offset + len(paragraph)
        cuts = sorted(
            {
                s.start_position - offset
                for s in sections
                if s.start_position is not None and offset < s.start_position < end
            }
        )
        if not cuts:
            return [(paragraph, offset)]

        pieces: list[tuple[str, int]] = []
        previous = 0
        for cut in [*cuts, len(paragraph)]:
            piece = paragraph[previous:cut]
            stripped = piece.strip()
            if stripped:
                pieces.append((stripped, offset + previous + piece.index(stripped)))
            previous = cut
        return pieces

    def _paragraphs(
        self,
        text: str,
        sections: Sequence[DocumentSection] | None = None,
    ) -> list[tuple[str, int]]:
        """Non-blank paragraphs with offsets, each inside a single section.

        Pieces longer than ``max_chunk_size`` less the heading that will
        prefix them are split by sentence.
        """
        paragraphs: list[tuple[str, int]] = []

        for block, block_offset in split_paragraphs(text):
            if not block.strip():
                continue
            for paragraph, offset in self._split_at_sections(block, block_offset, sections):
                heading = self._heading_for(find_section_for_position(sections, offset))
                max_size = max(self.options.max_chunk_size - len(heading), 1)
                if len(paragraph) <= max_size:
                    paragraphs.append((paragraph, offset))
                    continue

                piece, piece_start = "", offset
                cursor = offset
                for sentence in split_sentences(paragraph):
                    if piece and len(piece) + len(sentence) > max_size:
                        paragraphs.append((piece, piece_start))
                        piece, piece_start = "", cursor
                    while len(sentence) > max_size:
                        paragraphs.append((sentence[:max_size], cursor))
                        sentence = sentence[max_size:]
                        cursor += max_size
                        piece_start = cursor
                    piece += sentence
                    cursor += len(sentence)
                if piece.strip():
                    paragraphs.append((piece, piece_start))

        return paragraphs

    def _break_at_sentence(
        self,
        builder: _ChunkBuilder,
        paragraph: str,
        para_start: int,
        para_end: int,
    ) -> tuple[str, int] | None:
        """Move the leading sentences of ``paragraph`` that fit the target into
        the current chunk.

        Returns the remaining text and its start position, or None when no
        sentence fits or the chunk would stay below ``min_chunk_size``.
        """
        sentences = split_sentences(paragraph)
        if len(sentences) <= 1:
            return None

        room = self.options.target_chunk_size - len(builder)
        taken = 0
        length = 0
        for sentence in sentences:
            if length + len(sentence) > room:
                break
            length += len(sentence)
            taken += 1

        if taken == 0 or taken == len(sentences):
            return None
        if len(builder) + length < self.options.min_chunk_size:
            return None

        first = "".join(sentences[:taken])
        rest = "".join(sentences[taken:])
        break_position = para_start + len(first)
        builder.add(first, break_position)

        stripped = rest.lstrip()
        return stripped, para_end - len(stripped)
