"""Remote object storage used as the backup destination."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from backuplit.errors import UploadError
from backuplit.models import GZIP_CONTENT_TYPE


class BlobSink(Protocol):
    """Anything that can durably store bytes under ``bucket`` / ``object_name``."""

    def put_object(
        self,
        bucket: str,
        object_name: str,
        data: bytes,
        content_type: str = GZIP_CONTENT_TYPE,
    ) -> None:
        ...


class S3BlobSink:
    """Upload backups to S3 (or any S3-compatible endpoint) with boto3.

    The client is created once and reused for every attempt; credentials come
    from boto3's default provider chain.
    """

    def __init__(
        self,
        *,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client or boto3.client("s3", region_name=region, endpoint_url=endpoint_url)
        self.logger = logger or logging.getLogger(__name__)

    def put_object(
        self,
        bucket: str,
        object_name: str,
        data: bytes,
        content_type: str = GZIP_CONTENT_TYPE,
    ) -> None:
        self.logger.debug("Uploading %s bytes to s3://%s/%s", len(data), bucket, object_name)
        try:
            self.client.put_object(
                Bucket=bucket,
                Key=object_name,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UploadError(f"Failed to upload {object_name} to bucket {bucket}: {exc}") from exc


__all__ = ["BlobSink", "S3BlobSink"]
