"""Object store adapters for photo bytes (S3/MinIO, or nothing at all)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from .errors import NotConfiguredError, StorageError
from .settings import DEFAULT_PHOTO_URL_TTL_SECONDS, Settings

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


# PUBLIC_INTERFACE
class ObjectStore(ABC):
    """Capability contract for the photo object store."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True when the store can actually perform I/O."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store ``data`` at ``key``. Raises StorageError on failure."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete ``key``. A key that does not exist counts as deleted."""

    @abstractmethod
    def signed_read_url(self, key: str, ttl: int = DEFAULT_PHOTO_URL_TTL_SECONDS) -> str:
        """Return a URL granting read access to ``key`` for ``ttl`` seconds."""


class UnconfiguredObjectStore(ObjectStore):
    """Stand-in used when no bucket is configured; every operation reports NotConfiguredError."""

    def is_configured(self) -> bool:
        return False

    def put(self, key: str, data: bytes, content_type: str) -> None:
        raise NotConfiguredError()

    def delete(self, key: str) -> None:
        raise NotConfiguredError()

    def signed_read_url(self, key: str, ttl: int = DEFAULT_PHOTO_URL_TTL_SECONDS) -> str:
        raise NotConfiguredError()


class S3ObjectStore(ObjectStore):
    """
    S3-compatible store backed by boto3.

    botocore failures are translated into StorageError so callers never see
    transport-specific exceptions.
    """

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        if client is None:
            session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            client = session.client("s3", endpoint_url=endpoint_url)
        self.client = client

    def is_configured(self) -> bool:
        return True

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError("Failed to upload photo") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_KEY_CODES:
                logger.debug("Photo {key} already absent from bucket", key=key)
                return
            raise StorageError("Failed to delete photo") from exc
        except BotoCoreError as exc:
            raise StorageError("Failed to delete photo") from exc

    def signed_read_url(self, key: str, ttl: int = DEFAULT_PHOTO_URL_TTL_SECONDS) -> str:
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError("Failed to generate photo URL") from exc


# PUBLIC_INTERFACE
def get_object_store(settings: Settings) -> ObjectStore:
    """Return the S3 store when a bucket is configured, otherwise the unconfigured stand-in."""
    if not settings.photo_storage_configured:
        logger.warning("PHOTO_BUCKET is not set; photo uploads are disabled")
        return UnconfiguredObjectStore()
    return S3ObjectStore(
        settings.photo_bucket,  # type: ignore[arg-type]
        region=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
    )
