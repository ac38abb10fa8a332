"""Content extraction with format dispatch, LLM fallback and a TTL cache.

Turns a stored document (addressed by its storage key) into plain text:

1. A process-local ``cachetools.TTLCache`` keyed by storage key answers repeat
   requests for ``cache_ttl_seconds`` without any I/O. Entries expire lazily
   and the least recently used entry is dropped once ``cache_max_entries`` is
   reached.
2. On a miss the bytes are fetched from the document store and handed to the
   extractor registered for the key's extension (pdf, docx, txt). Unknown
   extensions are decoded as plain text on a best-effort basis.
3. If the direct result is shorter than ``min_chars`` after trimming, or the
   extractor raised, the raw buffer is sent to the completion gateway's
   extraction fallback.
4. Successful text is cached and returned.

Concurrent misses for the same key share one extraction (per-key lock).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from cachetools import TTLCache

from inqdoc.core.exceptions import ExtractionFailedError, UnsupportedFormatError
from inqdoc.core.logging import get_logger
from inqdoc.documents.parser import TextExtractor, default_extractors, extract_plain_text

if TYPE_CHECKING:
    from inqdoc.core.protocols import CompletionService, DocumentStore

logger = get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_CACHE_MAX_ENTRIES = 1000
MIN_EXTRACTED_CHARS = 10
FALLBACK_MAX_CHARS = 15000
TRUNCATION_MARKER = "\n[truncated]"

FALLBACK_PROMPT_TEMPLATE = """You are a document text extraction assistant.
The content below was read from the stored file "{storage_key}". It may be raw,
binary or partially garbled. Extract ALL readable text from it, preserving the
original order, headings and paragraph breaks. Do not summarise, translate or
comment. Return only the extracted text.

--- BEGIN CONTENT ---
{content}
--- END CONTENT ---"""


def get_file_extension(storage_key: str) -> str:
    """Lower-cased extension of a storage key, or empty string."""
    name = storage_key.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


class ContentExtractor:
    """Extracts and caches plain text for stored documents."""

    def __init__(
        self,
        document_store: DocumentStore,
        completion_gateway: CompletionService,
        extractors: dict[str, TextExtractor] | None = None,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        min_chars: int = MIN_EXTRACTED_CHARS,
        fallback_max_chars: int = FALLBACK_MAX_CHARS,
        clock: Callable[[], float] = time.monotonic,
        cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
    ):
        """Initialize the extractor.

        Args:
            document_store: Byte store documents are fetched from
            completion_gateway: Gateway used for the LLM extraction fallback
            extractors: Extension to extractor mapping (defaults to pdf/docx/txt)
            cache_ttl_seconds: Lifetime of cached extraction results
            min_chars: Minimum trimmed length for extracted text to count
            fallback_max_chars: Raw content sent to the fallback is cut to this size
            clock: Monotonic time source for cache expiry
            cache_max_entries: Upper bound on cached documents
        """
        self.document_store = document_store
        self.completion_gateway = completion_gateway
        self.extractors = extractors if extractors is not None else default_extractors()
        self.cache_ttl_seconds = cache_ttl_seconds
        self.min_chars = min_chars
        self.fallback_max_chars = fallback_max_chars
        self._cache: TTLCache[str, str] = TTLCache(
            maxsize=cache_max_entries, ttl=cache_ttl_seconds, timer=clock
        )
        self._locks: dict[str, asyncio.Lock] = {}

    async def get_document_text_content(self, storage_key: str) -> str:
        """Return the plain text of the document stored under ``storage_key``.

        Raises:
            DocumentFetchError: If the bytes cannot be fetched
            UnsupportedFormatError: Unknown extension, undecodable, fallback failed
            ExtractionFailedError: Direct extraction and fallback both insufficient
        """
        cached = self._cache.get(storage_key)
        if cached is not None:
            logger.debug("extraction_cache_hit", storage_key=storage_key)
            return cached

        lock = self._locks.setdefault(storage_key, asyncio.Lock())
        try:
            async with lock:
                # Another task may have filled the cache while we waited
                cached = self._cache.get(storage_key)
                if cached is not None:
                    return cached

                logger.info("extraction_cache_miss", storage_key=storage_key)
                text = await self._extract(storage_key)
                self._cache[storage_key] = text
                return text
        finally:
            if not lock.locked() and self._locks.get(storage_key) is lock:
                del self._locks[storage_key]

    def invalidate(self, storage_key: str) -> None:
        """Drop the cached text for one key."""
        self._cache.pop(storage_key, None)

    def clear_cache(self) -> None:
        """Drop all cached text."""
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _is_sufficient(self, text: str | None) -> bool:
        return text is not None and len(text.strip()) >= self.min_chars

    async def _extract(self, storage_key: str) -> str:
        extension = get_file_extension(storage_key)
        buffer = await self.document_store.fetch(storage_key)

        extracted: str | None = None
        original_error: Exception | None = None
        method = extension or "unknown"

        try:
            extracted = await self._extract_direct(buffer, extension)
        except Exception as e:
            original_error = e
            logger.warning(
                "direct_extraction_failed",
                storage_key=storage_key,
                method=method,
                error=str(e),
            )

        if self._is_sufficient(extracted):
            logger.info(
                "content_extracted",
                storage_key=storage_key,
                method=method,
                characters=len(extracted),
            )
            return extracted

        if original_error is None:
            logger.warning(
                "direct_extraction_insufficient",
                storage_key=storage_key,
                method=method,
                characters=len(extracted.strip()) if extracted else 0,
            )

        fallback_text = await self._extract_with_llm(storage_key, buffer)
        if self._is_sufficient(fallback_text):
            logger.info(
                "content_extracted",
                storage_key=storage_key,
                method="llm_fallback",
                characters=len(fallback_text),
            )
            return fallback_text

        logger.error("extraction_failed", storage_key=storage_key, method=method)
        if isinstance(original_error, UnsupportedFormatError):
            raise original_error
        reason = f" Reason: {original_error}" if original_error else ""
        raise ExtractionFailedError(
            f"Failed to extract text content from {storage_key} "
            f"using method {method} and the LLM fallback.{reason}",
            storage_key=storage_key,
            original_error=original_error,
        ) from original_error

    async def _extract_direct(self, buffer: bytes, extension: str) -> str:
        extractor = self.extractors.get(extension)
        if extractor is not None:
            return await asyncio.to_thread(extractor, buffer)

        logger.warning("unsupported_extension_trying_plain_text", extension=extension)
        try:
            return extract_plain_text(buffer)
        except Exception as e:
            raise UnsupportedFormatError(
                f"Unsupported file type for extraction: {extension or '(none)'}. Reason: {e}",
                extension=extension,
            ) from e

    async def _extract_with_llm(self, storage_key: str, buffer: bytes) -> str | None:
        raw = self._buffer_to_text(buffer)
        if len(raw) > self.fallback_max_chars:
            raw = raw[: self.fallback_max_chars] + TRUNCATION_MARKER

        prompt = FALLBACK_PROMPT_TEMPLATE.format(storage_key=storage_key, content=raw)
        logger.info("llm_extraction_fallback", storage_key=storage_key, prompt_chars=len(prompt))
        return await self.completion_gateway.get_extraction_fallback(prompt)

    @staticmethod
    def _buffer_to_text(buffer: bytes) -> str:
        for encoding in ("utf-8", "latin-1"):
            try:
                return buffer.decode(encoding)
            except UnicodeDecodeError:
                continue
        return ""


async def get_document_text_content(storage_key: str) -> str:
    """Extract text using the application's shared extractor."""
    from inqdoc.core.di_container import container

    return await container.content_extractor().get_document_text_content(storage_key)
