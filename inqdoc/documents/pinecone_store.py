"""Pinecone-backed vector store."""

from __future__ import annotations

import asyncio
from typing import Any

from typing_extensions import override

from inqdoc.core.exceptions import (
    EmbeddingFailureError,
    VectorStoreError,
    VectorStoreOperation,
)
from inqdoc.core.logging import get_logger
from inqdoc.core.protocols import EmbeddingProvider
from inqdoc.documents.models import VectorQueryResult, VectorStoreDocument
from inqdoc.documents.vector_store import VectorQueryOptions, VectorStoreClient

logger = get_logger(__name__)

# Pinecone upsert limit
UPSERT_BATCH_SIZE = 100
# Metadata key holding the chunk text
TEXT_METADATA_KEY = "text"


def build_filter(filters: dict[str, Any] | None) -> dict[str, Any] | None:
    """Normalise a metadata filter for Pinecone.

    Plain values become ``{"$eq": value}``; values that are already operator
    dicts pass through. ``None`` values are dropped.
    """
    if not filters:
        return None

    pinecone_filter: dict[str, Any] = {}
    for key, value in filters.items():
        if value is None:
            continue
        if key.startswith("$") or isinstance(value, dict):
            pinecone_filter[key] = value
        else:
            pinecone_filter[key] = {"$eq": value}

    return pinecone_filter or None


class PineconeVectorStore(VectorStoreClient):
    """Vector store for document chunks using Pinecone.

    The chunk text is stored in the vector metadata under ``text`` so query
    results can be returned without a second lookup. The index connection is
    opened on first use.
    """

    name = "pinecone"

    def __init__(
        self,
        embedding_generator: EmbeddingProvider,
        api_key: str | None = None,
        index_name: str = "inqdoc",
        namespace: str | None = None,
        index: Any | None = None,
    ):
        """Initialize the Pinecone vector store.

        Args:
            embedding_generator: Embeds documents that arrive without a vector
            api_key: Pinecone API key
            index_name: Name of the Pinecone index
            namespace: Default namespace for all operations
            index: Pre-built index handle (skips connecting)
        """
        self.embedding_generator = embedding_generator
        self.index_name = index_name
        self.namespace = namespace
        self._api_key = api_key
        self._index = index
        self._connect_lock = asyncio.Lock()

    async def _get_index(self) -> Any:
        if self._index is not None:
            return self._index

        async with self._connect_lock:
            if self._index is None:
                self._index = await asyncio.to_thread(self._connect)
        return self._index

    def _connect(self) -> Any:
        if not self._api_key:
            raise VectorStoreError(
                "Pinecone API key is not set",
                operation=VectorStoreOperation.CONNECT,
                store=self.name,
            )

        try:
            from pinecone import Pinecone

            pc = Pinecone(api_key=self._api_key)
            if self.index_name not in pc.list_indexes().names():
                raise VectorStoreError(
                    f"Pinecone index '{self.index_name}' not found",
                    operation=VectorStoreOperation.CONNECT,
                    store=self.name,
                )
            index = pc.Index(self.index_name)
        except VectorStoreError:
            logger.error("pinecone_index_not_found", index=self.index_name)
            raise
        except Exception as e:
            logger.error("pinecone_init_failed", index=self.index_name, error=str(e))
            raise VectorStoreError(
                f"Failed to connect to Pinecone: {e}",
                operation=VectorStoreOperation.CONNECT,
                store=self.name,
            ) from e

        logger.info("pinecone_initialized", index=self.index_name, namespace=self.namespace)
        return index

    async def _ensure_vector(self, document: VectorStoreDocument) -> list[float]:
        if document.vector:
            return document.vector

        vector = await self.embedding_generator.generate_embedding(document.text)
        if not vector:
            raise EmbeddingFailureError(
                f"Failed to generate embedding for document {document.id}",
                document_id=document.id,
            )
        return vector

    def _to_record(self, document: VectorStoreDocument, vector: list[float]) -> dict[str, Any]:
        return {
            "id": document.id,
            "values": vector,
            "metadata": {**document.metadata, TEXT_METADATA_KEY: document.text},
        }

    @override
    async def add_document(self, document: VectorStoreDocument) -> None:
        await self.add_documents([document])

    @override
    async def add_documents(self, documents: list[VectorStoreDocument]) -> None:
        """Upsert documents in sequential sub-batches of 100.

        Missing embeddings are generated concurrently within each sub-batch.
        A failure leaves earlier sub-batches in place.

        Raises:
            EmbeddingFailureError: If a document cannot be embedded
            VectorStoreError: If the upsert fails
        """
        if not documents:
            return

        index = await self._get_index()
        batch_count = (len(documents) + UPSERT_BATCH_SIZE - 1) // UPSERT_BATCH_SIZE
        logger.info(
            "adding_documents",
            document_count=len(documents),
            batch_count=batch_count,
        )

        for batch_number, i in enumerate(range(0, len(documents), UPSERT_BATCH_SIZE), start=1):
            batch = documents[i : i + UPSERT_BATCH_SIZE]
            vectors = await asyncio.gather(*(self._ensure_vector(doc) for doc in batch))
            records = [self._to_record(doc, vector) for doc, vector in zip(batch, vectors, strict=True)]

            try:
                await asyncio.to_thread(index.upsert, vectors=records, namespace=self.namespace)
            except Exception as e:
                logger.error(
                    "failed_to_add_documents",
                    error=str(e),
                    batch=batch_number,
                    batch_count=batch_count,
                )
                raise VectorStoreError(
                    f"Failed to add documents to Pinecone: {e}",
                    operation=VectorStoreOperation.ADD,
                    store=self.name,
                ) from e

            logger.debug("batch_upserted", batch=batch_number, size=len(records))

        logger.info("documents_added_to_store", document_count=len(documents))

    @override
    async def query(
        self,
        vector: list[float],
        options: VectorQueryOptions | None = None,
    ) -> list[VectorQueryResult]:
        opts = options or VectorQueryOptions()
        index = await self._get_index()

        try:
            response = await asyncio.to_thread(
                index.query,
                vector=vector,
                top_k=opts.top_k,
                filter=build_filter(opts.filter),
                namespace=opts.namespace or self.namespace,
                include_metadata=True,
            )
        except Exception as e:
            logger.error("pinecone_query_failed", error=str(e))
            raise VectorStoreError(
                f"Failed to query Pinecone: {e}",
                operation=VectorStoreOperation.QUERY,
                store=self.name,
            ) from e

        results: list[VectorQueryResult] = []
        for match in response.matches or []:
            metadata = dict(match.metadata or {})
            text = metadata.pop(TEXT_METADATA_KEY, "") or ""
            results.append(
                VectorQueryResult(
                    id=match.id,
                    text=text,
                    metadata=metadata if opts.include_metadata else {},
                    score=match.score or 0.0,
                )
            )

        logger.debug("pinecone_query_completed", results_count=len(results))
        return results

    @override
    async def remove_document(self, document_id: str) -> None:
        index = await self._get_index()
        try:
            await asyncio.to_thread(index.delete, ids=[document_id], namespace=self.namespace)
        except Exception as e:
            logger.error("failed_to_remove_document", error=str(e), document_id=document_id)
            raise VectorStoreError(
                f"Failed to remove document from Pinecone: {e}",
                operation=VectorStoreOperation.REMOVE,
                store=self.name,
            ) from e
        logger.info("document_removed", document_id=document_id)

    @override
    async def remove_documents(self, filter: dict[str, Any]) -> None:
        pinecone_filter = build_filter(filter)
        if pinecone_filter is None:
            raise VectorStoreError(
                "Refusing to remove documents with an empty filter",
                operation=VectorStoreOperation.REMOVE,
                store=self.name,
            )

        index = await self._get_index()
        try:
            await asyncio.to_thread(index.delete, filter=pinecone_filter, namespace=self.namespace)
        except Exception as e:
            logger.error("failed_to_remove_documents", error=str(e), filter=filter)
            raise VectorStoreError(
                f"Failed to remove documents from Pinecone: {e}",
                operation=VectorStoreOperation.REMOVE,
                store=self.name,
            ) from e
        logger.info("documents_removed", filter=filter)

    @override
    async def is_available(self) -> bool:
        try:
            await self._get_index()
        except VectorStoreError as e:
            logger.warning("pinecone_unavailable", error=e.message)
            return False
        return True
