"""S3-compatible object storage for photo originals and thumbnails."""

from __future__ import annotations

import logging
import secrets
import time
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Optional
from uuid import UUID

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from eventpix.core.config import settings

logger = logging.getLogger(__name__)

# Photo.file_path values stored in object storage carry this prefix
S3_PREFIX = "s3:"


class StorageError(Exception):
    """Raised when object storage cannot complete a request."""


def storage_key(file_path: Optional[str]) -> Optional[str]:
    """Return the object key for an ``s3:`` file path, or None for local files."""
    if file_path and file_path.startswith(S3_PREFIX):
        return file_path[len(S3_PREFIX):]
    return None


def event_photos_prefix(event_id: UUID | str) -> str:
    return f"events/{event_id}/photos/"


def generate_photo_key(event_id: UUID | str, filename: str) -> str:
    suffix = PurePosixPath(filename).suffix.lower() or ".jpg"
    stamp = int(time.time() * 1000)
    return f"{event_photos_prefix(event_id)}{stamp}-{secrets.token_hex(6)}{suffix}"


def derive_thumb_key(key: str, size: str = "sm") -> str:
    directory, _, filename = key.rpartition("/")
    return f"{directory}/thumbs/{size}-{filename}"


@lru_cache
def get_s3_client():
    """
    Build the S3 client.

    A custom endpoint (MinIO, Hetzner and similar) requires path-style URLs.
    """
    kwargs = {
        "region_name": settings.S3_REGION,
        "aws_access_key_id": settings.S3_ACCESS_KEY_ID,
        "aws_secret_access_key": settings.S3_SECRET_ACCESS_KEY,
    }
    if settings.S3_ENDPOINT_URL:
        kwargs["endpoint_url"] = settings.S3_ENDPOINT_URL
        kwargs["config"] = Config(s3={"addressing_style": "path"})
    return boto3.client("s3", **kwargs)


class ObjectStorage:
    """Thin async wrapper over the blocking boto3 client."""

    def __init__(self, client=None, bucket: Optional[str] = None):
        self._client = client
        self.bucket = bucket or settings.S3_BUCKET

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3_client()
        return self._client

    def _signed_download_url(
        self, key: str, expires_in: int, filename: Optional[str]
    ) -> str:
        params = {"Bucket": self.bucket, "Key": key}
        if filename:
            params["ResponseContentDisposition"] = f'attachment; filename="{filename}"'
        return self.client.generate_presigned_url(
            "get_object", Params=params, ExpiresIn=expires_in
        )

    async def signed_download_url(
        self, key: str, expires_in: int, filename: Optional[str] = None
    ) -> str:
        try:
            return await run_in_threadpool(
                self._signed_download_url, key, expires_in, filename
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to sign download URL for {key}: {e}") from e

    async def signed_upload_url(self, key: str, expires_in: int) -> str:
        # ContentType is left out of the signature so browser headers cannot mismatch
        try:
            return await run_in_threadpool(
                self.client.generate_presigned_url,
                "put_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to sign upload URL for {key}: {e}") from e

    async def head_object(self, key: str) -> bool:
        try:
            await run_in_threadpool(self.client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to check {key}: {e}") from e

    def read_object_sync(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def read_object(self, key: str) -> bytes:
        return await run_in_threadpool(self.read_object_sync, key)

    def delete_object_sync(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

    async def delete_object(self, key: str) -> None:
        await run_in_threadpool(self.delete_object_sync, key)

    def list_keys_sync(self, prefix: str) -> list[str]:
        keys: list[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(item["Key"] for item in page.get("Contents", []))
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list {prefix}: {e}") from e
        return keys

    async def list_keys(self, prefix: str) -> list[str]:
        return await run_in_threadpool(self.list_keys_sync, prefix)


_storage: Optional[ObjectStorage] = None


def get_storage() -> ObjectStorage:
    global _storage
    if _storage is None:
        _storage = ObjectStorage()
    return _storage
