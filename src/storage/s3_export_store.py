# src/storage/s3_export_store.py — v1
"""S3-compatible export store (EXPORT_BACKEND=s3).

Supports AWS S3, MinIO, and other S3-compatible storage.
Requires 'boto3' package: pip install boto3.
"""

from __future__ import annotations

import logging

from masterchef.core.errors import StorageError
from masterchef.storage.base_export_store import BaseExportStore

logger = logging.getLogger(__name__)

_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


class S3ExportStore(BaseExportStore):
    """Write recipe exports to S3-compatible object storage."""

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize S3 export store.

        Args:
            bucket: S3 bucket name.
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.
        """
        try:
            import boto3
            from botocore.exceptions import BotoCoreError, ClientError
        except ImportError as e:
            raise ImportError(
                "boto3 package required for S3 export: pip install boto3"
            ) from e

        kwargs: dict = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket
        self._region = region
        self._client_error = ClientError
        self._errors: tuple[type[Exception], ...] = (ClientError, BotoCoreError)

    @property
    def bucket(self) -> str:
        return self._bucket

    async def initialize(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self._s3.head_bucket(Bucket=self._bucket)
            return
        except self._client_error as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code not in _MISSING_BUCKET_CODES:
                raise StorageError("S3 bucket initialization failed") from e
        except self._errors as e:
            raise StorageError("S3 bucket initialization failed") from e

        kwargs: dict = {"Bucket": self._bucket}
        if self._region and self._region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
        try:
            self._s3.create_bucket(**kwargs)
        except self._errors as e:
            raise StorageError("S3 bucket initialization failed") from e
        logger.info("Created S3 bucket %s", self._bucket)

    async def put(self, key: str, content: bytes | str, content_type: str) -> str:
        body = content.encode("utf-8") if isinstance(content, str) else content
        try:
            self._s3.put_object(
                Bucket=self._bucket, Key=key, Body=body, ContentType=content_type,
            )
        except self._errors as e:
            raise StorageError("Failed to upload to S3") from e
        logger.debug("S3 write: s3://%s/%s (%d bytes)", self._bucket, key, len(body))
        return key

    async def delete(self, key: str) -> None:
        try:
            self._s3.delete_object(Bucket=self._bucket, Key=key)
        except self._errors as e:
            raise StorageError("Failed to delete object from S3") from e

    async def head_check(self) -> bool:
        try:
            self._s3.head_bucket(Bucket=self._bucket)
        except self._errors as e:
            logger.warning("S3 health check failed for %s: %s", self._bucket, e)
            return False
        return True
