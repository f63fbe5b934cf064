"""Abstract object store interface for photo and analysis-image storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from incidentdesk.config.settings import Settings


def parse_s3_uri(uri: str) -> tuple[str, str] | None:
    """Split ``s3://bucket/key`` into (bucket, key); None if either part is empty."""
    bucket, _, key = uri.removeprefix("s3://").partition("/")
    if not bucket or not key:
        return None
    return bucket, key


class ObjectStore(ABC):
    """Abstract base class for the application's own bucket."""

    @property
    @abstractmethod
    def bucket(self) -> str:
        """Name of the application bucket."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Store binary data at the given key."""

    @abstractmethod
    async def read_location(self, bucket: str, key: str) -> bytes:
        """Read an object from any bucket (e.g. detection output). Raises StorageError."""

    @abstractmethod
    def url_for(self, key: str) -> str:
        """Return the addressable URL of a key in the application bucket."""


def create_object_store(settings: Settings) -> ObjectStore:
    """Factory: create the appropriate ObjectStore based on settings."""
    if settings.use_aws:
        from incidentdesk.storage.s3_store import S3ObjectStore

        return S3ObjectStore(
            bucket=settings.storage_bucket or "",
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )

    from pathlib import Path

    from incidentdesk.storage.local_store import LocalObjectStore

    return LocalObjectStore(base_dir=Path(settings.local_data_dir).expanduser() / "storage")
