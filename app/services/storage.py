"""S3-compatible document storage for passport copies.

The boto3 client is synchronous, so calls are run in the default
thread-pool executor. The service is created lazily on first use by
``get_storage_service()``.
"""

import asyncio
import logging
import mimetypes
from functools import partial
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from app.core.config import Settings, get_settings
from app.core.utils import file_extension

logger = logging.getLogger(__name__)


class StorageService:
    """Thin wrapper around a boto3 S3 client.

    Building the client makes no network calls; the bucket is checked on
    the first upload, so an unreachable store only fails the upload step.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: str = "us-east-1",
        timeout: float = 15.0,
    ):
        self._bucket = bucket
        self._bucket_ready = False
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(
                signature_version="s3v4",
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 1, "mode": "standard"},
                s3={"addressing_style": "path"},
            ),
        )

    def _ensure_bucket(self) -> None:
        """Create the bucket if it doesn't already exist (dev convenience)."""
        if self._bucket_ready:
            return
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError:
            logger.info("Creating S3 bucket: %s", self._bucket)
            self._client.create_bucket(Bucket=self._bucket)
        self._bucket_ready = True

    def _put_object(self, file_data: bytes, object_key: str, content_type: str) -> None:
        self._ensure_bucket()
        self._client.put_object(
            Bucket=self._bucket,
            Key=object_key,
            Body=file_data,
            ContentType=content_type,
        )

    async def upload_file(
        self,
        file_data: bytes,
        object_key: str,
        content_type: str,
    ) -> str:
        """Upload bytes to S3 and return the object key."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            partial(self._put_object, file_data, object_key, content_type),
        )
        return object_key

    @staticmethod
    def build_document_key(application_id, filename: str) -> str:
        """Build the object key: {application_id}/passport.{ext}.

        Only the extension of the client-supplied name is used, so the key
        cannot escape the application's prefix.
        """
        ext = file_extension(filename) or "bin"
        return f"{application_id}/passport.{ext}"

    @staticmethod
    def guess_content_type(filename: str) -> str:
        content_type, _ = mimetypes.guess_type(filename or "")
        return content_type or "application/octet-stream"


_service: Optional[StorageService] = None


def init_storage_service(cfg: Settings) -> StorageService:
    """Create the singleton."""
    global _service
    _service = StorageService(
        endpoint=cfg.STORAGE_ENDPOINT,
        access_key=cfg.STORAGE_ACCESS_KEY,
        secret_key=cfg.STORAGE_SECRET_KEY,
        bucket=cfg.STORAGE_BUCKET,
        region=cfg.STORAGE_REGION,
        timeout=cfg.EXTERNAL_TIMEOUT_SECONDS,
    )
    logger.info("StorageService initialised (bucket=%s)", cfg.STORAGE_BUCKET)
    return _service


def get_storage_service() -> StorageService:
    """FastAPI dependency returning the StorageService singleton."""
    if _service is None:
        return init_storage_service(get_settings())
    return _service
