"""Name-keyed registry of chunking strategies."""

from __future__ import annotations

from inqdoc.core.exceptions import NoImplementationError
from inqdoc.core.logging import get_logger
from inqdoc.documents.chunking.base import BaseChunker, ChunkingOptions
from inqdoc.documents.chunking.semantic import SemanticChunker
from inqdoc.documents.chunking.sliding_window import SlidingWindowChunker

logger = get_logger(__name__)

SLIDING_WINDOW = "sliding_window"
SEMANTIC = "semantic"


class ChunkerRegistry:
    """Maps strategy names to chunker instances, with one default.

    The first registered chunker becomes the default unless another is
    registered with ``set_as_default=True``.
    """

    def __init__(self) -> None:
        self._chunkers: dict[str, BaseChunker] = {}
        self._default: str | None = None

    def register(self, name: str, chunker: BaseChunker, set_as_default: bool = False) -> None:
        self._chunkers[name] = chunker
        if set_as_default or self._default is None:
            self._default = name
        logger.debug("chunker_registered", name=name, default=self._default == name)

    def get_chunker(self, name: str | None = None) -> BaseChunker:
        """Get a chunker by name, or the default one.

        Raises:
            NoImplementationError: If the name is unknown or no default exists
        """
        key = name or self._default
        if key is None:
            raise NoImplementationError("No default chunker registered", registry="chunker")
        chunker = self._chunkers.get(key)
        if chunker is None:
            raise NoImplementationError(
                f"No chunker registered under '{key}'. Available: {self.get_chunker_names()}",
                registry="chunker",
                name=key,
            )
        return chunker

    def get_chunker_names(self) -> list[str]:
        return list(self._chunkers)

    def set_default_chunker(self, name: str) -> None:
        if name not in self._chunkers:
            raise NoImplementationError(
                f"Cannot set unknown chunker '{name}' as default",
                registry="chunker",
                name=name,
            )
        self._default = name

    @property
    def default_chunker_name(self) -> str | None:
        return self._default


def create_chunker_registry(
    options: ChunkingOptions | None = None,
    default: str = SLIDING_WINDOW,
) -> ChunkerRegistry:
    """Build a registry holding both built-in strategies.

    Args:
        options: Options shared by both chunkers (strategy defaults if omitted)
        default: Name of the default strategy
    """
    registry = ChunkerRegistry()
    registry.register(SLIDING_WINDOW, SlidingWindowChunker(options))
    registry.register(SEMANTIC, SemanticChunker(options))
    registry.set_default_chunker(default)
    return registry


chunker_registry = create_chunker_registry()
