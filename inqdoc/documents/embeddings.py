"""Embedding generator for chunk and query vectorization.

Supports multiple providers:
- OpenAI (default, requires an OpenAI API key)
- Pinecone Inference (requires a Pinecone API key)
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from typing_extensions import override

from inqdoc.core.exceptions import ConfigurationError
from inqdoc.core.logging import get_logger

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = get_logger(__name__)

# Default batch size for embedding requests
DEFAULT_BATCH_SIZE = 100
# Pinecone Inference accepts at most 96 inputs per request
PINECONE_BATCH_SIZE = 96
# Maximum retries for rate limiting
MAX_RETRIES = 3
# Delay between retries (seconds)
RETRY_DELAY = 1.0


def _is_retryable(error: Exception) -> bool:
    error_str = str(error).lower()
    return "rate limit" in error_str or "429" in error_str or "timeout" in error_str


class BaseEmbeddingGenerator(ABC):
    """Base class for embedding generators."""

    model: str

    @abstractmethod
    async def generate(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Raises:
            Exception: The provider error once retries are exhausted
        """
        ...

    async def embed_query(self, query: str) -> list[float]:
        """Embed a single query string."""
        embeddings = await self.generate([query])
        return embeddings[0] if embeddings else []

    async def generate_embedding(self, text: str) -> list[float] | None:
        """Embed one text, returning None instead of raising.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None if the text is blank or the provider failed
        """
        if not text or not text.strip():
            logger.warning("embedding_skipped_blank_text")
            return None

        try:
            embedding = await self.embed_query(text)
        except Exception as e:
            logger.warning("embedding_generation_failed", model=self.model, error=str(e))
            return None

        return embedding or None

    async def _with_retry(
        self,
        call: Callable[[], Awaitable[list[list[float]]]],
        event: str,
    ) -> list[list[float]]:
        """Run ``call`` with exponential backoff on rate limits and timeouts."""
        last_error: Exception | None = None

        for attempt in range(MAX_RETRIES):
            try:
                return await call()
            except Exception as e:
                last_error = e
                if not _is_retryable(e):
                    logger.error(f"{event}_failed", model=self.model, error=str(e))
                    raise

                wait_time = RETRY_DELAY * (2**attempt)
                logger.warning(
                    f"{event}_retry",
                    attempt=attempt + 1,
                    max_retries=MAX_RETRIES,
                    wait_time=wait_time,
                    error=str(e),
                )
                await asyncio.sleep(wait_time)

        logger.error(f"{event}_max_retries_exceeded", model=self.model, error=str(last_error))
        raise last_error or RuntimeError("Max retries exceeded for embedding generation")


class EmbeddingGenerator(BaseEmbeddingGenerator):
    """Generate embeddings using OpenAI's embedding models."""

    def __init__(self, model: str = "text-embedding-3-small", api_key: str | None = None):
        """Initialize the embedding generator.

        Args:
            model: OpenAI embedding model to use
            api_key: Optional OpenAI API key (uses env var if not provided)
        """
        self.model = model
        self._api_key = api_key
        self._async_client: AsyncOpenAI | None = None

    def _get_async_client(self) -> AsyncOpenAI:
        """Get or create async OpenAI client."""
        if self._async_client is None:
            from openai import AsyncOpenAI

            self._async_client = AsyncOpenAI(api_key=self._api_key)
        return self._async_client

    @override
    async def generate(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        # The API rejects empty strings
        valid_texts = [t if t.strip() else " " for t in texts]
        client = self._get_async_client()
        all_embeddings: list[list[float]] = []

        for i in range(0, len(valid_texts), DEFAULT_BATCH_SIZE):
            batch = valid_texts[i : i + DEFAULT_BATCH_SIZE]

            async def embed_batch(batch: list[str] = batch) -> list[list[float]]:
                response = await client.embeddings.create(model=self.model, input=batch)
                return [item.embedding for item in response.data]

            all_embeddings.extend(await self._with_retry(embed_batch, "openai_embedding"))

        return all_embeddings


class PineconeInferenceEmbedding(BaseEmbeddingGenerator):
    """Generate embeddings using the Pinecone Inference API.

    Supported models: multilingual-e5-large, llama-text-embed-v2
    """

    def __init__(self, api_key: str, model: str = "multilingual-e5-large"):
        self._api_key = api_key
        self.model = model
        self._pinecone_client = None

    def _get_client(self):
        """Get or create Pinecone client."""
        if self._pinecone_client is None:
            from pinecone import Pinecone

            self._pinecone_client = Pinecone(api_key=self._api_key)
        return self._pinecone_client

    async def _embed(self, texts: list[str], input_type: str) -> list[list[float]]:
        client = self._get_client()
        all_embeddings: list[list[float]] = []

        for i in range(0, len(texts), PINECONE_BATCH_SIZE):
            batch = texts[i : i + PINECONE_BATCH_SIZE]

            async def embed_batch(batch: list[str] = batch) -> list[list[float]]:
                # SDK call is blocking
                response = await asyncio.to_thread(
                    client.inference.embed,
                    model=self.model,
                    inputs=batch,
                    parameters={"input_type": input_type, "truncate": "END"},
                )
                return [item.values for item in response.data]

            all_embeddings.extend(await self._with_retry(embed_batch, "pinecone_embedding"))

        return all_embeddings

    @override
    async def generate(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        valid_texts = [t if t.strip() else " " for t in texts]
        embeddings = await self._embed(valid_texts, input_type="passage")
        logger.info("pinecone_embeddings_generated", model=self.model, count=len(embeddings))
        return embeddings

    @override
    async def embed_query(self, query: str) -> list[float]:
        """Embed a query with the ``query`` input type for better retrieval."""
        if not query.strip():
            return []
        embeddings = await self._embed([query], input_type="query")
        return embeddings[0] if embeddings else []


def create_embedding_generator(
    provider: str = "openai",
    model: str = "text-embedding-3-small",
    api_key: str | None = None,
) -> BaseEmbeddingGenerator:
    """Factory function to create embedding generator based on provider.

    Args:
        provider: Embedding provider ('openai' or 'pinecone')
        model: Model name to use
        api_key: API key for the provider

    Returns:
        Embedding generator instance
    """
    if provider == "pinecone":
        if not api_key:
            raise ConfigurationError("Pinecone API key is required for Pinecone embedding provider")
        # Default to multilingual-e5-large for Pinecone
        if model == "text-embedding-3-small":
            model = "multilingual-e5-large"
        return PineconeInferenceEmbedding(api_key=api_key, model=model)
    if provider == "openai":
        return EmbeddingGenerator(model=model, api_key=api_key)
    raise ConfigurationError(f"Unknown embedding provider: {provider}")
