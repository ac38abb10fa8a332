"""Query optimization and hybrid (semantic + keyword) search."""

from __future__ import annotations

import asyncio
import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from inqdoc.core.exceptions import EmbeddingFailureError
from inqdoc.core.logging import get_logger
from inqdoc.documents.models import EnhancedSearchResult, VectorQueryResult
from inqdoc.documents.vector_store import VectorQueryOptions, VectorStoreClient

if TYPE_CHECKING:
    from inqdoc.core.protocols import EmbeddingProvider
    from inqdoc.documents.vector_store import VectorStoreRegistry

logger = get_logger(__name__)

FILLER_WORDS = frozenset(
    {
        "a", "an", "the", "this", "that", "these", "those",
        "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did",
        "to", "of", "in", "on", "at", "by", "for", "with", "about",
        "against", "between", "into", "through", "during",
        "before", "after", "above", "below",
        "can", "could", "shall", "should", "will", "would", "may", "might", "must",
        "and", "or", "but",
    }
)  # fmt: skip

ABBREVIATIONS = {
    "vs": "versus",
    "etc": "etcetera",
    "e.g": "for example",
    "i.e": "that is",
    "fig": "figure",
    "app": "application",
    "info": "information",
    "tech": "technology",
    "doc": "document",
    "docs": "documents",
}

# Keywords shorter than this are ignored for scoring and highlighting
MIN_KEYWORD_LENGTH = 3
# Candidate over-fetch cap for reranking
MAX_CANDIDATES = 50


@dataclass
class HybridSearchOptions:
    """Options for hybrid search."""

    keyword_weight: float = 0.3
    semantic_weight: float = 0.7
    rerank: bool = True
    enhance_context: bool = True
    top_k: int = 10
    filter: dict[str, Any] | None = None
    vector_store: str | None = None


def optimize_query(original_query: str) -> str:
    """Normalize a query for embedding.

    Lowercases, expands common abbreviations and, for queries of more than
    two words, drops filler words unless that would remove every word.
    """
    optimized = original_query.lower()

    for abbreviation, expanded in ABBREVIATIONS.items():
        optimized = re.sub(rf"\b{re.escape(abbreviation)}\b", expanded, optimized)

    words = optimized.split()
    if len(words) > 2:
        filtered = [word for word in words if word not in FILLER_WORDS]
        if filtered:
            optimized = " ".join(filtered)

    return optimized


def _keywords(query: str) -> list[str]:
    return [k for k in query.lower().split() if len(k) >= MIN_KEYWORD_LENGTH]


def calculate_keyword_score(text: str, query: str) -> float:
    """Score whole-word keyword hits in ``text``, damped for long texts.

    Returns:
        Score in [0, 1]
    """
    if not text or not query:
        return 0.0

    text_lower = text.lower()
    match_count = sum(
        len(re.findall(rf"\b{re.escape(keyword)}\b", text_lower)) for keyword in _keywords(query)
    )

    damping = max(1.0, math.sqrt(min(len(text), 1000) / 100))
    return min(1.0, match_count / damping)


def highlight_matches(text: str, query: str) -> str:
    """Wrap whole-word, case-insensitive keyword matches in ``<mark>`` tags.

    Keywords are applied one after another, so tags are not nesting-safe.
    """
    if not text or not query:
        return text

    highlighted = text
    for keyword in _keywords(query):
        highlighted = re.sub(
            rf"\b({re.escape(keyword)})\b",
            r"<mark>\1</mark>",
            highlighted,
            flags=re.IGNORECASE,
        )
    return highlighted


class SearchOptimizer:
    """Runs hybrid search against a registered vector store."""

    def __init__(
        self,
        vector_store_registry: VectorStoreRegistry,
        embedding_generator: EmbeddingProvider,
    ):
        self.vector_store_registry = vector_store_registry
        self.embedding_generator = embedding_generator

    async def hybrid_search(
        self,
        query: str,
        options: HybridSearchOptions | None = None,
    ) -> list[EnhancedSearchResult]:
        """Retrieve chunks by blending vector similarity with keyword hits.

        Args:
            query: Raw user query
            options: Search options

        Returns:
            Results ordered by blended score (when reranking), at most top_k

        Raises:
            EmbeddingFailureError: If the query cannot be embedded
            VectorStoreError: If the candidate query fails
        """
        opts = options or HybridSearchOptions()

        optimized_query = optimize_query(query)
        logger.info("search_query_optimized", original=query[:100], optimized=optimized_query[:100])

        query_embedding = await self.embedding_generator.generate_embedding(optimized_query)
        if not query_embedding:
            raise EmbeddingFailureError("Failed to generate embedding for query")

        vector_store = await self.vector_store_registry.get(opts.vector_store)
        candidates = await vector_store.query(
            query_embedding,
            VectorQueryOptions(top_k=min(opts.top_k * 2, MAX_CANDIDATES), filter=opts.filter),
        )
        logger.info("semantic_candidates_retrieved", count=len(candidates))

        results = [self._score(candidate, optimized_query, opts) for candidate in candidates]

        if opts.rerank:
            results.sort(key=lambda r: r.score, reverse=True)
        results = results[: opts.top_k]

        if opts.enhance_context and results:
            placeholder = [0.0] * len(query_embedding)
            await asyncio.gather(
                *(self._enhance_with_context(vector_store, result, placeholder) for result in results)
            )

        logger.info("hybrid_search_completed", results_count=len(results))
        return results

    @staticmethod
    def _score(
        candidate: VectorQueryResult,
        optimized_query: str,
        opts: HybridSearchOptions,
    ) -> EnhancedSearchResult:
        keyword_score = calculate_keyword_score(candidate.text, optimized_query)
        hybrid_score = candidate.score * opts.semantic_weight + keyword_score * opts.keyword_weight

        return EnhancedSearchResult(
            id=candidate.id,
            text=candidate.text,
            metadata=candidate.metadata,
            score=hybrid_score,
            highlighted_content=highlight_matches(candidate.text, optimized_query),
            relevance_explanation=(
                f"Semantic: {candidate.score:.2f}, "
                f"Keyword: {keyword_score:.2f}, "
                f"Combined: {hybrid_score:.2f}"
            ),
        )

    async def _enhance_with_context(
        self,
        vector_store: VectorStoreClient,
        result: EnhancedSearchResult,
        placeholder: list[float],
    ) -> None:
        """Attach the text of the neighbouring chunks, when they can be found."""
        document_id = result.metadata.get("document_id")
        chunk_index = result.metadata.get("chunk_index")
        if not document_id or chunk_index is None:
            return

        chunk_index = int(chunk_index)
        if chunk_index > 0:
            result.preceding_context = await self._adjacent_text(
                vector_store, document_id, chunk_index - 1, placeholder
            )
        result.following_context = await self._adjacent_text(
            vector_store, document_id, chunk_index + 1, placeholder
        )

    @staticmethod
    async def _adjacent_text(
        vector_store: VectorStoreClient,
        document_id: str,
        chunk_index: int,
        placeholder: list[float],
    ) -> str | None:
        try:
            matches = await vector_store.query(
                placeholder,
                VectorQueryOptions(
                    top_k=1,
                    filter={"document_id": document_id, "chunk_index": chunk_index},
                ),
            )
        except Exception as e:
            logger.warning(
                "adjacent_chunk_lookup_failed",
                document_id=document_id,
                chunk_index=chunk_index,
                error=str(e),
            )
            return None

        if not matches:
            logger.debug("adjacent_chunk_not_found", document_id=document_id, chunk_index=chunk_index)
            return None
        return matches[0].text


async def hybrid_search(
    query: str,
    options: HybridSearchOptions | None = None,
) -> list[EnhancedSearchResult]:
    """Hybrid search using the application's shared optimizer."""
    from inqdoc.core.di_container import container

    return await container.search_optimizer().hybrid_search(query, options)
