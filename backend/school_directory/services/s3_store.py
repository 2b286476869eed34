"""
School Directory Backend — S3 Blob Store
==========================================

What:  Stores school images as objects in an S3 (or S3-compatible) bucket.
How:   boto3 client; the blocking calls run in a worker thread through
       asyncio.to_thread so the event loop keeps serving other requests.
Who:   Selected when STORAGE_BACKEND=s3.

Object layout:
    <bucket>/schoolImages/<timestamp>-<original-filename-without-extension>

    The object key is persisted as School.image_key; the public URL handed to
    clients is School.image. Deletion always uses the persisted key.
"""

import asyncio
import logging
from pathlib import PurePath
from typing import Any, Optional

import boto3
import botocore.exceptions

from school_directory.exceptions import StorageWriteError
from school_directory.services.blob_store import (
    BlobStore,
    StoredImage,
    safe_filename,
    unique_timestamp,
)

logger = logging.getLogger(__name__)

_S3_ERRORS = (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError)


class S3BlobStore(BlobStore):
    """Blob Store backed by an S3 bucket."""

    name = "s3"

    def __init__(
        self,
        bucket_name: str,
        folder: str,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        client: Any = None,
    ):
        """
        Args:
            bucket_name: Target bucket
            folder: Key prefix for all images
            public_base_url: CDN/custom domain serving the bucket; when unset
                the path-style endpoint URL or the virtual-hosted AWS URL is used
            client: Pre-built boto3 S3 client (tests inject a mock)
        """
        self.bucket_name = bucket_name
        self.folder = folder.strip("/")
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self.s3 = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )
        logger.info("S3BlobStore initialized for bucket=%s folder=%s", bucket_name, self.folder)

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def save(self, filename: str, content: bytes, content_type: str) -> StoredImage:
        stem = PurePath(safe_filename(filename)).stem or "image"
        key = f"{self.folder}/{unique_timestamp()}-{stem}"

        try:
            await asyncio.to_thread(
                self.s3.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except _S3_ERRORS as e:
            logger.error("Failed to upload image %s to bucket %s: %s", key, self.bucket_name, str(e))
            raise StorageWriteError(
                message="Failed to upload image",
                details=str(e),
                context={"bucket": self.bucket_name, "key": key},
            )

        logger.info("Image uploaded: s3://%s/%s (%d bytes)", self.bucket_name, key, len(content))
        return StoredImage(key=key, url=self.public_url(key))

    async def delete(self, key: str) -> None:
        # S3 answers 204 for missing keys, so "already gone" needs no special case
        try:
            await asyncio.to_thread(
                self.s3.delete_object,
                Bucket=self.bucket_name,
                Key=key,
            )
        except _S3_ERRORS as e:
            raise StorageWriteError(
                message="Failed to delete image",
                details=str(e),
                context={"bucket": self.bucket_name, "key": key},
            )
        logger.info("Image deleted: s3://%s/%s", self.bucket_name, key)

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self.s3.head_bucket, Bucket=self.bucket_name)
        except _S3_ERRORS as e:
            logger.warning("S3 health check failed for bucket %s: %s", self.bucket_name, str(e))
            return False
        return True
