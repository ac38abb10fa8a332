"""Vector store interface and implementation registry."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from inqdoc.core.exceptions import NoImplementationError
from inqdoc.core.logging import get_logger
from inqdoc.documents.models import VectorQueryResult, VectorStoreDocument

logger = get_logger(__name__)


@dataclass
class VectorQueryOptions:
    """Options for a nearest-neighbour query."""

    top_k: int = 10
    filter: dict[str, Any] | None = None
    namespace: str | None = None
    include_metadata: bool = True


class VectorStoreClient(ABC):
    """Contract every vector database adapter implements."""

    name: str = "base"

    @abstractmethod
    async def add_document(self, document: VectorStoreDocument) -> None:
        """Add one document, embedding it first if it has no vector."""
        ...

    @abstractmethod
    async def add_documents(self, documents: list[VectorStoreDocument]) -> None:
        """Add documents in batches, embedding any that have no vector."""
        ...

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        options: VectorQueryOptions | None = None,
    ) -> list[VectorQueryResult]:
        """Return the nearest stored documents to ``vector``, best first."""
        ...

    @abstractmethod
    async def remove_document(self, document_id: str) -> None:
        """Remove one stored document by its id."""
        ...

    @abstractmethod
    async def remove_documents(self, filter: dict[str, Any]) -> None:
        """Remove every stored document whose metadata matches ``filter``."""
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the backing store can be reached."""
        ...


VectorStoreFactory = Callable[[], Awaitable[VectorStoreClient]]


class VectorStoreRegistry:
    """Maps implementation names to async factories, with one default.

    Each factory runs at most once; the client it returns is reused by later
    lookups of the same name.
    """

    def __init__(self) -> None:
        self._factories: dict[str, VectorStoreFactory] = {}
        self._instances: dict[str, VectorStoreClient] = {}
        self._default: str | None = None
        self._lock = asyncio.Lock()

    def register(self, name: str, factory: VectorStoreFactory, is_default: bool = False) -> None:
        """Register a vector store factory.

        Args:
            name: Implementation name
            factory: Coroutine function building the client
            is_default: Make this the default implementation
        """
        self._factories[name] = factory
        self._instances.pop(name, None)
        if is_default:
            self._default = name
        logger.debug("vector_store_registered", name=name, default=is_default)

    async def get(self, name: str | None = None) -> VectorStoreClient:
        """Resolve the named or default implementation.

        Raises:
            NoImplementationError: If nothing is registered under the name
        """
        key = name or self._default
        if key is None:
            raise NoImplementationError(
                "No default vector store implementation registered",
                registry="vector_store",
            )

        factory = self._factories.get(key)
        if factory is None:
            raise NoImplementationError(
                f"Vector store implementation '{key}' not found",
                registry="vector_store",
                name=key,
            )

        async with self._lock:
            client = self._instances.get(key)
            if client is None:
                client = await factory()
                self._instances[key] = client
                logger.info("vector_store_created", name=key)
        return client

    def get_implementations(self) -> list[str]:
        return list(self._factories)

    def has_implementation(self, name: str) -> bool:
        return name in self._factories

    def set_default_implementation(self, name: str) -> None:
        if name not in self._factories:
            raise NoImplementationError(
                f"Vector store implementation '{name}' not found",
                registry="vector_store",
                name=name,
            )
        self._default = name

    @property
    def default_implementation(self) -> str | None:
        return self._default


async def get_vector_store(name: str | None = None) -> VectorStoreClient:
    """Resolve a vector store from the application's shared registry."""
    from inqdoc.core.di_container import container

    return await container.vector_store_registry().get(name)
