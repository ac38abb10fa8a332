"""Protocol interfaces for dependency injection."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class DocumentStore(Protocol):
    """Raw document byte store."""

    async def fetch(self, storage_key: str) -> bytes:
        """Fetch the bytes stored under ``storage_key``.

        Raises:
            DocumentFetchError: If the key is missing or unreadable
        """
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Text embedding service."""

    async def generate_embedding(self, text: str) -> list[float] | None:
        """Embed one text.

        Returns None when the text could not be embedded.
        """
        ...


@runtime_checkable
class CompletionProvider(Protocol):
    """A single LLM completion backend."""

    name: str

    async def complete(self, prompt: str, system_prompt: str | None = None) -> str:
        """Return the completion text for ``prompt``.

        Raises:
            LLMError: If the provider call fails
        """
        ...


@runtime_checkable
class CompletionService(Protocol):
    """Completion gateway consumed by the pipeline."""

    async def get_completion(self, prompt: str) -> str | None:
        """Return a completion, or None when every provider failed."""
        ...

    async def get_extraction_fallback(self, prompt: str) -> str | None:
        """Return raw-text extraction output, or None when every provider failed."""
        ...
