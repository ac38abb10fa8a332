"""Document byte stores (S3 and local filesystem)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

from inqdoc.core.exceptions import ConfigurationError, DocumentFetchError
from inqdoc.core.logging import get_logger

if TYPE_CHECKING:
    from inqdoc.core.config import StorageConfig

logger = get_logger(__name__)


class S3DocumentStore:
    """Reads uploaded document bytes from an S3 bucket."""

    def __init__(self, bucket: str, region: str | None = None, client: Any = None):
        """Initialize the S3 store.

        Args:
            bucket: S3 bucket name
            region: AWS region (boto3 default resolution if omitted)
            client: Optional pre-built boto3 S3 client
        """
        self.bucket = bucket
        self.region = region
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the boto3 S3 client."""
        if self._client is None:
            import boto3

            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def _read_object(self, storage_key: str) -> bytes:
        response = self._get_client().get_object(Bucket=self.bucket, Key=storage_key)
        body = response.get("Body")
        if body is None:
            raise DocumentFetchError("S3 response body is empty", storage_key=storage_key)
        return body.read()

    async def fetch(self, storage_key: str) -> bytes:
        """Fetch the raw bytes stored under ``storage_key``.

        Raises:
            DocumentFetchError: If the object is missing or unreadable
        """
        logger.debug("fetching_document", storage_key=storage_key, bucket=self.bucket)
        try:
            # boto3 is blocking; keep the event loop free
            data = await asyncio.to_thread(self._read_object, storage_key)
        except DocumentFetchError:
            raise
        except Exception as e:
            logger.error("document_fetch_failed", storage_key=storage_key, error=str(e))
            raise DocumentFetchError(
                f"Failed to fetch document from S3: {storage_key}. Reason: {e}",
                storage_key=storage_key,
            ) from e

        logger.info("document_fetched", storage_key=storage_key, size=len(data))
        return data


class LocalDocumentStore:
    """Reads document bytes from a directory on disk."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _resolve(self, storage_key: str) -> Path:
        path = (self.root / storage_key).resolve()
        if not path.is_relative_to(self.root):
            raise DocumentFetchError(
                f"Storage key escapes the document root: {storage_key}",
                storage_key=storage_key,
            )
        return path

    async def fetch(self, storage_key: str) -> bytes:
        """Fetch the raw bytes stored under ``storage_key``."""
        path = self._resolve(storage_key)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            logger.error("document_fetch_failed", storage_key=storage_key, error=str(e))
            raise DocumentFetchError(
                f"Failed to read document: {storage_key}. Reason: {e}",
                storage_key=storage_key,
            ) from e

        logger.info("document_fetched", storage_key=storage_key, size=len(data))
        return data


def create_document_store(config: StorageConfig) -> S3DocumentStore | LocalDocumentStore:
    """Create the document store selected by configuration."""
    if config.backend == "s3":
        if not config.bucket_name:
            raise ConfigurationError("STORAGE_BUCKET_NAME is required for the s3 backend")
        return S3DocumentStore(bucket=config.bucket_name, region=config.region)
    if config.backend == "local":
        return LocalDocumentStore(config.local_root)
    raise ConfigurationError(f"Unknown storage backend: '{config.backend}'. Available: s3, local")
