"""Document pipeline: indexing and question answering over stored documents."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from inqdoc.core.logging import get_logger
from inqdoc.documents.entities import extract_entities
from inqdoc.documents.models import ChunkingResult, DocumentMetadata, EnhancedSearchResult
from inqdoc.documents.prompt_builder import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_PROMPT_TEMPLATE,
    build_prompt_with_context_limit,
)
from inqdoc.documents.search import HybridSearchOptions
from inqdoc.documents.structure import analyze_document_structure, extract_document_metadata
from inqdoc.utils.token_counter import count_tokens

if TYPE_CHECKING:
    from inqdoc.core.protocols import CompletionService
    from inqdoc.documents.chunking import ChunkerRegistry
    from inqdoc.documents.extractor import ContentExtractor
    from inqdoc.documents.search import SearchOptimizer
    from inqdoc.documents.vector_store import VectorStoreRegistry

logger = get_logger(__name__)


class DocumentPipeline:
    """Ties extraction, chunking, storage, retrieval and completion together.

    Reindexing removes a document's previous chunks before adding the new
    ones. The two steps are not atomic: a failure in between leaves the
    document with no chunks until it is indexed again.
    """

    def __init__(
        self,
        content_extractor: ContentExtractor,
        chunker_registry: ChunkerRegistry,
        vector_store_registry: VectorStoreRegistry,
        search_optimizer: SearchOptimizer,
        completion_gateway: CompletionService,
        vector_store_name: str | None = None,
        top_k: int = 10,
        keyword_weight: float = 0.3,
        semantic_weight: float = 0.7,
        max_context_tokens: int = DEFAULT_MAX_TOKENS,
        prompt_template: str = DEFAULT_PROMPT_TEMPLATE,
        token_counter: Callable[[str], int] = count_tokens,
        include_neighbour_context: bool = True,
    ):
        self.content_extractor = content_extractor
        self.chunker_registry = chunker_registry
        self.vector_store_registry = vector_store_registry
        self.search_optimizer = search_optimizer
        self.completion_gateway = completion_gateway
        self.vector_store_name = vector_store_name
        self.top_k = top_k
        self.keyword_weight = keyword_weight
        self.semantic_weight = semantic_weight
        self.max_context_tokens = max_context_tokens
        self.prompt_template = prompt_template
        self.token_counter = token_counter
        self.include_neighbour_context = include_neighbour_context

    async def index_document(
        self,
        document_id: str,
        storage_key: str,
        chunker: str | None = None,
        metadata: DocumentMetadata | None = None,
    ) -> ChunkingResult:
        """Extract, chunk and store a document, replacing any earlier chunks.

        Args:
            document_id: ID the chunks are stored under
            storage_key: Key of the document bytes in the document store
            chunker: Chunking strategy name (registry default if omitted)
            metadata: Known document metadata (title, author, ...)

        Returns:
            The chunking result that was stored
        """
        text = await self.content_extractor.get_document_text_content(storage_key)

        structure = analyze_document_structure(text, metadata)
        if metadata is None:
            metadata = extract_document_metadata(text, structure.title)
        elif not metadata.title and structure.title:
            metadata = replace(metadata, title=structure.title)

        if not metadata.keywords:
            entities = extract_entities(text, metadata, structure.sections)
            metadata = replace(metadata, keywords=entities.keywords())

        result = await self.chunker_registry.get_chunker(chunker).create_chunks(
            document_id,
            text,
            metadata,
            structure.sections,
        )

        vector_store = await self.vector_store_registry.get(self.vector_store_name)
        await vector_store.remove_documents({"document_id": document_id})
        if result.chunks:
            await vector_store.add_documents([chunk.to_vector_document() for chunk in result.chunks])

        logger.info(
            "document_indexed",
            document_id=document_id,
            storage_key=storage_key,
            chunk_count=result.chunk_count,
            section_count=len(structure.sections),
        )
        return result

    async def remove_document(self, document_id: str) -> None:
        """Remove every stored chunk of a document."""
        vector_store = await self.vector_store_registry.get(self.vector_store_name)
        await vector_store.remove_documents({"document_id": document_id})
        logger.info("document_chunks_removed", document_id=document_id)

    async def answer_question(
        self,
        document_id: str,
        question: str,
        top_k: int | None = None,
    ) -> str | None:
        """Answer a question from one document's indexed chunks.

        Returns:
            The completion, or None if every completion provider failed
        """
        results = await self.search_optimizer.hybrid_search(
            question,
            HybridSearchOptions(
                keyword_weight=self.keyword_weight,
                semantic_weight=self.semantic_weight,
                top_k=top_k or self.top_k,
                filter={"document_id": document_id},
                vector_store=self.vector_store_name,
                enhance_context=self.include_neighbour_context,
            ),
        )

        prompt = build_prompt_with_context_limit(
            _context_blocks(results),
            question,
            template=self.prompt_template,
            max_tokens=self.max_context_tokens,
            token_counter=self.token_counter,
        )

        answer = await self.completion_gateway.get_completion(prompt)
        if answer is None:
            logger.error("answer_generation_failed", document_id=document_id)
        else:
            logger.info("question_answered", document_id=document_id, result_count=len(results))
        return answer


def _context_blocks(results: list[EnhancedSearchResult]) -> list[str]:
    """Result texts wrapped in their neighbouring chunks.

    A neighbour that is itself among the results is left out, so no chunk
    appears twice.
    """
    result_indexes = {
        int(r.metadata["chunk_index"]) for r in results if r.metadata.get("chunk_index") is not None
    }
    blocks: list[str] = []
    for result in results:
        index = result.metadata.get("chunk_index")
        index = int(index) if index is not None else None
        parts: list[str] = []
        if result.preceding_context and (index is None or index - 1 not in result_indexes):
            parts.append(result.preceding_context)
        parts.append(result.text)
        if result.following_context and (index is None or index + 1 not in result_indexes):
            parts.append(result.following_context)
        blocks.append("\n\n".join(parts))
    return blocks
