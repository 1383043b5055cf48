"""
Unit Tests — S3StorageService
══════════════════════════════
aioboto3.Session is patched; the S3 client is an AsyncMock context manager.

Coverage:
  ✅ put_object sends bucket / key / content type, strips ETag quotes
  ✅ get_object reads the body; NoSuchKey → FileNotFoundError
  ✅ Other ClientErrors propagate
  ✅ delete_object issues a single delete
  ✅ ensure_bucket: existing bucket untouched, missing bucket created,
     access errors propagate
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from app.core.config import settings
from app.storage.s3 import S3StorageService


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "test"}}, "operation")


def _build_s3_mock() -> AsyncMock:
    """Build a mock S3 client context manager."""
    s3 = AsyncMock()
    s3.__aenter__ = AsyncMock(return_value=s3)
    s3.__aexit__  = AsyncMock(return_value=None)
    s3.put_object    = AsyncMock(return_value={"ETag": '"abc123"'})
    s3.delete_object = AsyncMock(return_value={})
    s3.head_bucket   = AsyncMock(return_value={})
    s3.create_bucket = AsyncMock(return_value={})
    return s3


@pytest.fixture
def s3_mock() -> AsyncMock:
    return _build_s3_mock()


@pytest.fixture
def storage(s3_mock):
    with patch("app.storage.s3.aioboto3.Session") as mock_session:
        mock_session.return_value.client.return_value = s3_mock
        yield S3StorageService(settings.model_copy(update={"s3_bucket": "test-bucket"}))


@pytest.mark.unit
@pytest.mark.storage
class TestObjects:

    async def test_put_object(self, storage, s3_mock, sample_pdf_bytes):
        obj = await storage.put_object("1234.pdf", sample_pdf_bytes, "application/pdf")

        s3_mock.put_object.assert_awaited_once_with(
            Bucket="test-bucket",
            Key="1234.pdf",
            Body=sample_pdf_bytes,
            ContentType="application/pdf",
        )
        assert obj.etag == "abc123"
        assert obj.size_bytes == len(sample_pdf_bytes)
        assert obj.bucket == "test-bucket"

    async def test_get_object(self, storage, s3_mock):
        body = MagicMock()
        body.read = AsyncMock(return_value=b"hello")
        s3_mock.get_object = AsyncMock(
            return_value={"Body": body, "ContentType": "text/plain", "ETag": '"e1"'}
        )

        download = await storage.get_object("k.txt")

        assert download.body == b"hello"
        assert download.object.content_type == "text/plain"
        assert download.object.size_bytes == 5
        assert download.object.etag == "e1"

    async def test_get_missing_object(self, storage, s3_mock):
        s3_mock.get_object = AsyncMock(side_effect=_client_error("NoSuchKey"))
        with pytest.raises(FileNotFoundError):
            await storage.get_object("gone.pdf")

    async def test_get_object_other_error_propagates(self, storage, s3_mock):
        s3_mock.get_object = AsyncMock(side_effect=_client_error("AccessDenied"))
        with pytest.raises(ClientError):
            await storage.get_object("k.pdf")

    async def test_delete_object(self, storage, s3_mock):
        await storage.delete_object("k.pdf")
        s3_mock.delete_object.assert_awaited_once_with(Bucket="test-bucket", Key="k.pdf")


@pytest.mark.unit
@pytest.mark.storage
class TestEnsureBucket:

    async def test_existing_bucket(self, storage, s3_mock):
        await storage.ensure_bucket()
        s3_mock.head_bucket.assert_awaited_once_with(Bucket="test-bucket")
        s3_mock.create_bucket.assert_not_awaited()

    async def test_missing_bucket_is_created(self, storage, s3_mock):
        s3_mock.head_bucket = AsyncMock(side_effect=_client_error("404"))
        await storage.ensure_bucket()
        s3_mock.create_bucket.assert_awaited_once_with(Bucket="test-bucket")

    async def test_access_denied_propagates(self, storage, s3_mock):
        s3_mock.head_bucket = AsyncMock(side_effect=_client_error("403"))
        with pytest.raises(ClientError):
            await storage.ensure_bucket()
        s3_mock.create_bucket.assert_not_awaited()
