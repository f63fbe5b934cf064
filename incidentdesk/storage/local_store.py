"""Local filesystem object store implementation."""

from __future__ import annotations

import asyncio
import pathlib  # noqa: TC003 - used at runtime for Path operations

import structlog

from incidentdesk.exceptions import StorageError
from incidentdesk.storage.object_store import ObjectStore

logger = structlog.get_logger(__name__)


class LocalObjectStore(ObjectStore):
    """Object store backed by local filesystem with path traversal protection.

    Buckets are directories under ``base_dir``; the application bucket is
    ``base_dir / bucket``.
    """

    def __init__(self, base_dir: pathlib.Path, bucket: str = "local") -> None:
        self._base = base_dir.resolve()
        self._bucket = bucket
        (self._base / bucket).mkdir(parents=True, exist_ok=True)

    @property
    def bucket(self) -> str:
        return self._bucket

    def _resolve_path(self, bucket: str, key: str) -> pathlib.Path:
        """Resolve bucket/key to an absolute path with traversal protection."""
        root = (self._base / bucket).resolve()
        path = (root / key).resolve()
        if not root.is_relative_to(self._base) or not path.is_relative_to(root):
            msg = f"Path traversal detected: {key}"
            raise StorageError(msg)
        return path

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Write data to local file."""
        path = self._resolve_path(self._bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        logger.debug("local_store_put", key=key, size=len(data), content_type=content_type)

    async def read_location(self, bucket: str, key: str) -> bytes:
        path = self._resolve_path(bucket, key)
        if not path.is_file():
            raise StorageError(f"No such object: s3://{bucket}/{key}")
        return await asyncio.to_thread(path.read_bytes)

    def url_for(self, key: str) -> str:
        return self._resolve_path(self._bucket, key).as_uri()
