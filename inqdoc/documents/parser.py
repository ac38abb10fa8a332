"""Format-specific text extraction from raw document bytes."""

from __future__ import annotations

import io
from collections.abc import Callable

from inqdoc.core.logging import get_logger

logger = get_logger(__name__)

TextExtractor = Callable[[bytes], str]


def decode_text(content: bytes) -> str:
    """Decode bytes as UTF-8, falling back to Latin-1.

    Raises:
        UnicodeDecodeError: If neither encoding can decode the bytes
    """
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("utf8_decode_failed_trying_latin1", size=len(content))
        return content.decode("latin-1")


def extract_plain_text(content: bytes) -> str:
    """Extract text from a plain text file."""
    return decode_text(content)


def extract_pdf_text(content: bytes) -> str:
    """Extract text from a PDF using pdfplumber, one block per page."""
    try:
        import pdfplumber
    except ImportError as err:
        raise ImportError(
            "pdfplumber is required for PDF parsing. Install with: pip install pdfplumber"
        ) from err

    pages: list[str] = []
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text and text.strip():
                pages.append(text.strip())

    logger.debug("pdf_text_extracted", page_count=len(pages))
    return "\n\n".join(pages)


def extract_docx_text(content: bytes) -> str:
    """Extract text from a DOCX file using python-docx.

    Paragraphs styled as headings are emitted as markdown headings so the
    structure analyser can recover sections. Tables follow the body text,
    one row per line.
    """
    try:
        from docx import Document as DocxDocument
    except ImportError as err:
        raise ImportError(
            "python-docx is required for DOCX parsing. Install with: pip install python-docx"
        ) from err

    doc = DocxDocument(io.BytesIO(content))
    blocks: list[str] = []

    for para in doc.paragraphs:
        text = para.text.strip()
        if not text:
            continue

        style_name = para.style.name if para.style is not None else ""
        if style_name.startswith("Heading"):
            level_str = style_name.removeprefix("Heading").strip()
            level = int(level_str) if level_str.isdigit() else 1
            blocks.append(f"{'#' * min(max(level, 1), 6)} {text}")
        else:
            blocks.append(text)

    for table in doc.tables:
        rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
        if rows:
            blocks.append("\n".join(rows))

    logger.debug("docx_text_extracted", block_count=len(blocks))
    return "\n\n".join(blocks)


def default_extractors() -> dict[str, TextExtractor]:
    """Extension to extractor mapping for the supported formats."""
    return {
        "pdf": extract_pdf_text,
        "docx": extract_docx_text,
        "txt": extract_plain_text,
    }
