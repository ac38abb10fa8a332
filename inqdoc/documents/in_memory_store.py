"""In-memory vector store for local development and testing."""

from __future__ import annotations

import asyncio
import math
from typing import Any

from typing_extensions import override

from inqdoc.core.exceptions import EmbeddingFailureError, VectorStoreError, VectorStoreOperation
from inqdoc.core.logging import get_logger
from inqdoc.core.protocols import EmbeddingProvider
from inqdoc.documents.models import VectorQueryResult, VectorStoreDocument
from inqdoc.documents.vector_store import VectorQueryOptions, VectorStoreClient

logger = get_logger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity, 0.0 when either vector has zero norm."""
    dot = sum(x * y for x, y in zip(a, b, strict=False))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def matches_filter(metadata: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Evaluate a metadata filter.

    Supports plain equality and the ``$eq``, ``$ne``, ``$in`` and ``$nin``
    operators; ``None`` filter values are ignored.
    """
    if not filter:
        return True

    for key, condition in filter.items():
        if condition is None:
            continue
        value = metadata.get(key)
        if not isinstance(condition, dict):
            condition = {"$eq": condition}

        for operator, expected in condition.items():
            if operator == "$eq" and value != expected:
                return False
            if operator == "$ne" and value == expected:
                return False
            if operator == "$in" and value not in expected:
                return False
            if operator == "$nin" and value in expected:
                return False

    return True


class InMemoryVectorStore(VectorStoreClient):
    """Dict-backed vector store with brute-force cosine search.

    Same contract as the Pinecone adapter, without persistence.
    """

    name = "in_memory"

    def __init__(self, embedding_generator: EmbeddingProvider | None = None):
        self.embedding_generator = embedding_generator
        self._documents: dict[str, tuple[VectorStoreDocument, list[float]]] = {}

    def __len__(self) -> int:
        return len(self._documents)

    async def _ensure_vector(self, document: VectorStoreDocument) -> list[float]:
        if document.vector:
            return document.vector
        if self.embedding_generator is None:
            raise VectorStoreError(
                f"Document {document.id} has no vector and no embedding generator is configured",
                operation=VectorStoreOperation.ADD,
                store=self.name,
            )

        vector = await self.embedding_generator.generate_embedding(document.text)
        if not vector:
            raise EmbeddingFailureError(
                f"Failed to generate embedding for document {document.id}",
                document_id=document.id,
            )
        return vector

    @override
    async def add_document(self, document: VectorStoreDocument) -> None:
        await self.add_documents([document])

    @override
    async def add_documents(self, documents: list[VectorStoreDocument]) -> None:
        vectors = await asyncio.gather(*(self._ensure_vector(doc) for doc in documents))
        for document, vector in zip(documents, vectors, strict=True):
            self._documents[document.id] = (document, vector)
        logger.debug("documents_added_to_memory_store", document_count=len(documents))

    @override
    async def query(
        self,
        vector: list[float],
        options: VectorQueryOptions | None = None,
    ) -> list[VectorQueryResult]:
        opts = options or VectorQueryOptions()
        scored: list[VectorQueryResult] = []

        for document, stored_vector in self._documents.values():
            if not matches_filter(document.metadata, opts.filter):
                continue
            scored.append(
                VectorQueryResult(
                    id=document.id,
                    text=document.text,
                    metadata=dict(document.metadata) if opts.include_metadata else {},
                    score=cosine_similarity(vector, stored_vector),
                )
            )

        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[: opts.top_k]

    @override
    async def remove_document(self, document_id: str) -> None:
        self._documents.pop(document_id, None)

    @override
    async def remove_documents(self, filter: dict[str, Any]) -> None:
        if not filter:
            raise VectorStoreError(
                "Refusing to remove documents with an empty filter",
                operation=VectorStoreOperation.REMOVE,
                store=self.name,
            )
        doomed = [
            doc_id
            for doc_id, (document, _) in self._documents.items()
            if matches_filter(document.metadata, filter)
        ]
        for doc_id in doomed:
            del self._documents[doc_id]
        logger.debug("documents_removed_from_memory_store", count=len(doomed))

    @override
    async def is_available(self) -> bool:
        return True
