"""Heading detection and section tree construction."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from inqdoc.core.logging import get_logger
from inqdoc.documents.models import DocumentMetadata, DocumentSection, DocumentStructure

logger = get_logger(__name__)

MARKDOWN_HEADING = re.compile(r"^(#{1,6})\s+(.+)$")
NUMBERED_HEADING = re.compile(r"^((?:\d+\.)+)\s+(.+)$")
UNDERLINE = re.compile(r"^=+$")


@dataclass
class StructureAnalysisOptions:
    """Options for structure analysis."""

    detect_markdown_headings: bool = True
    detect_typographical_headings: bool = True
    detect_numbered_sections: bool = True
    build_table_of_contents: bool = True
    max_heading_length: int = 200


def detect_heading(
    line: str,
    detect_markdown: bool = True,
    detect_typographical: bool = True,
    detect_numbered: bool = True,
) -> tuple[str, int] | None:
    """Return ``(title, level)`` if the line looks like a heading."""
    trimmed = line.strip()
    if not trimmed:
        return None

    if detect_markdown:
        match = MARKDOWN_HEADING.match(trimmed)
        if match:
            return match.group(2).strip(), len(match.group(1))

    if detect_numbered:
        match = NUMBERED_HEADING.match(trimmed)
        if match:
            level = len([p for p in match.group(1).split(".") if p])
            # Numbers stay part of the title
            return trimmed, min(level, 6)

    if detect_typographical and 3 <= len(trimmed) <= 100:
        # ALL CAPS lines with at least one letter
        if trimmed == trimmed.upper() and any(c.isalpha() for c in trimmed):
            return trimmed, 2

    return None


def extract_document_title(text: str) -> str | None:
    """Guess a title: first ``# `` heading, an underlined line, else the first line."""
    lines = text.split("\n")

    for i, raw in enumerate(lines[:20]):
        line = raw.strip()
        if not line:
            continue
        if line.startswith("# "):
            return line[2:].strip()
        if i < len(lines) - 1 and UNDERLINE.match(lines[i + 1].strip()):
            return line

    for raw in lines:
        line = raw.strip()
        if line:
            return line[:100] + "..." if len(line) > 100 else line

    return None


def analyze_document_structure(
    text: str,
    metadata: DocumentMetadata | None = None,
    options: StructureAnalysisOptions | None = None,
) -> DocumentStructure:
    """Detect headings and build the section tree of a document.

    Sections are returned flat in document order, each with ``parent_id``
    set and ``children`` populated. A section ends where the next heading of
    the same or a higher level starts, or at the end of the text.

    Args:
        text: Document text
        metadata: Existing metadata; its title wins over detection
        options: Detection options

    Returns:
        DocumentStructure with sections and table of contents
    """
    opts = options or StructureAnalysisOptions()
    result = DocumentStructure()
    result.title = metadata.title if metadata and metadata.title else extract_document_title(text)

    root = DocumentSection(title=result.title or "Document", level=0, start_position=0, id="root")
    stack: list[DocumentSection] = [root]
    sections: list[DocumentSection] = []
    position = 0

    def close_top(end: int) -> None:
        closed = stack.pop()
        closed.end_position = end
        closed.content = text[closed.start_position : end]
        stack[-1].children.append(closed)

    for line in text.split("\n"):
        heading = detect_heading(
            line,
            opts.detect_markdown_headings,
            opts.detect_typographical_headings,
            opts.detect_numbered_sections,
        )

        if heading:
            title, level = heading
            if opts.max_heading_length > 0 and len(title) > opts.max_heading_length:
                title = title[: opts.max_heading_length] + "..."

            result.heading_count += 1
            result.max_heading_level = max(result.max_heading_level, level)

            while len(stack) > 1 and stack[-1].level >= level:
                close_top(position)

            section = DocumentSection(
                title=title,
                level=level,
                start_position=position,
                id=f"section_{len(sections)}",
                parent_id=stack[-1].id if len(stack) > 1 else None,
            )
            sections.append(section)
            stack.append(section)

        # +1 for the newline
        position += len(line) + 1

    end = len(text)
    while len(stack) > 1:
        close_top(end)
    root.end_position = end

    result.sections = sections
    if opts.build_table_of_contents:
        result.table_of_contents = root.children

    logger.debug(
        "document_structure_analyzed",
        heading_count=result.heading_count,
        max_heading_level=result.max_heading_level,
    )
    return result


def build_table_of_contents(sections: list[DocumentSection]) -> list[DocumentSection]:
    """Nest a flat, document-ordered section list by heading level."""
    toc: list[DocumentSection] = []
    stack: list[DocumentSection] = []

    for section in sections:
        entry = replace(section, children=[])

        while stack and stack[-1].level >= section.level:
            stack.pop()

        if stack:
            stack[-1].children.append(entry)
        else:
            toc.append(entry)

        stack.append(entry)

    return toc


def extract_document_metadata(text: str, title: str | None = None) -> DocumentMetadata:
    """Compute basic descriptive metadata for a document's text."""
    return DocumentMetadata(
        title=title or extract_document_title(text),
        word_count=len(text.split()),
        character_count=len(text),
    )
