"""
S3 Storage Service — document blobs

All document files live flat in one bucket under a server-generated key:

    s3://<S3_BUCKET>/<uuid4><ext>

The key is never derived from client input beyond the file extension, so a
client cannot address another object. MinIO is reached through the same
aioboto3 client by pointing endpoint_url at it.

Object lifecycle:
  - put_object() is the only write path (called by the ingestion service).
  - delete_object() is a hard delete. Callers decide whether a failure is
    fatal: ingestion compensation and document removal only log it.
  - get_object() streams the body back for downloads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import aioboto3
from botocore.exceptions import ClientError

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("NoSuchKey", "404", "NotFound")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class S3Object:
    """Represents a stored object — returned by put_object / get_object."""
    key:          str
    bucket:       str
    size_bytes:   int
    content_type: str
    etag:         str = ""


@dataclass(frozen=True)
class S3Download:
    object: S3Object
    body:   bytes


# ---------------------------------------------------------------------------
# S3 Service
# ---------------------------------------------------------------------------

class S3StorageService:
    """
    Async S3 operations on the documents bucket.

    One instance is created at startup and shared; aioboto3 sessions are safe
    to share and each call opens its own short-lived client.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._cfg = config or default_settings
        self._session = aioboto3.Session()

    @property
    def bucket(self) -> str:
        return self._cfg.s3_bucket

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self):
        """Return a scoped async S3 client context manager."""
        return self._session.client(
            "s3",
            endpoint_url=self._cfg.s3_endpoint_url or None,
            region_name=self._cfg.s3_region,
            aws_access_key_id=self._cfg.s3_access_key_id or None,
            aws_secret_access_key=self._cfg.s3_secret_access_key or None,
        )

    # ------------------------------------------------------------------
    # Bucket provisioning
    # ------------------------------------------------------------------

    async def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet (called from lifespan)."""
        async with self._client() as s3:
            try:
                await s3.head_bucket(Bucket=self.bucket)
                return
            except ClientError as exc:
                if exc.response["Error"]["Code"] not in _NOT_FOUND_CODES:
                    raise
            await s3.create_bucket(Bucket=self.bucket)
        logger.info("S3 bucket created | bucket=%s", self.bucket)

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str,
    ) -> S3Object:
        """
        Upload an object under the given server-generated key.

        Args:
            key:          Object key, "<uuid4><ext>".
            body:         Raw file bytes.
            content_type: MIME type stored on the object.

        Returns:
            S3Object with key, size and etag.
        """
        async with self._client() as s3:
            resp = await s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )

        logger.info("S3 upload ok | key=%s size=%d", key, len(body))

        return S3Object(
            key=key,
            bucket=self.bucket,
            size_bytes=len(body),
            content_type=content_type,
            etag=resp.get("ETag", "").strip('"'),
        )

    async def get_object(self, key: str) -> S3Download:
        """
        Download an object.
        Raises FileNotFoundError if the key does not exist.
        """
        async with self._client() as s3:
            try:
                resp = await s3.get_object(Bucket=self.bucket, Key=key)
                body = await resp["Body"].read()
            except ClientError as exc:
                if exc.response["Error"]["Code"] in _NOT_FOUND_CODES:
                    raise FileNotFoundError(f"Object not found: {key}") from exc
                raise

        return S3Download(
            object=S3Object(
                key=key,
                bucket=self.bucket,
                size_bytes=len(body),
                content_type=resp.get("ContentType") or "application/octet-stream",
                etag=resp.get("ETag", "").strip('"'),
            ),
            body=body,
        )

    async def delete_object(self, key: str) -> None:
        """Permanently remove an object. Deleting a missing key is not an error."""
        async with self._client() as s3:
            await s3.delete_object(Bucket=self.bucket, Key=key)
        logger.info("S3 delete ok | key=%s", key)
