"""S3 object store implementation via aiobotocore."""

from __future__ import annotations

from typing import Any

import structlog
from aiobotocore.session import get_session
from botocore.exceptions import ClientError

from incidentdesk.exceptions import StorageError
from incidentdesk.storage.object_store import ObjectStore

logger = structlog.get_logger(__name__)


class S3ObjectStore(ObjectStore):
    """Object store backed by an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
    ) -> None:
        self._bucket = bucket
        self._region = region
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self._session = get_session()
        self._config: dict[str, Any] = {"region_name": region}
        if self._endpoint_url:
            self._config["endpoint_url"] = self._endpoint_url

    @property
    def bucket(self) -> str:
        return self._bucket

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Upload data to S3."""
        extra: dict[str, Any] = {"ContentType": content_type} if content_type else {}
        async with self._session.create_client("s3", **self._config) as client:
            try:
                await client.put_object(Bucket=self._bucket, Key=key, Body=data, **extra)
            except ClientError as exc:
                raise StorageError(f"Failed to write {key}: {exc}") from exc
        logger.debug("s3_put", key=key, size=len(data), bucket=self._bucket)

    async def read_location(self, bucket: str, key: str) -> bytes:
        async with self._session.create_client("s3", **self._config) as client:
            try:
                resp = await client.get_object(Bucket=bucket, Key=key)
                async with resp["Body"] as stream:
                    data: bytes = await stream.read()
            except ClientError as exc:
                raise StorageError(f"Failed to read s3://{bucket}/{key}: {exc}") from exc
        logger.debug("s3_read_location", bucket=bucket, key=key, size=len(data))
        return data

    def url_for(self, key: str) -> str:
        # Custom endpoints (MinIO, LocalStack) are addressed path-style
        if self._endpoint_url:
            return f"{self._endpoint_url}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"
