"""Object storage abstraction for uploaded document files."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from google.api_core.exceptions import NotFound as GCSNotFound
from google.cloud import storage as gcs_storage
from google.cloud.exceptions import GoogleCloudError

from docvault.core.config import Settings
from docvault.core.exceptions import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")


@dataclass
class SignedUrl:
    url: str
    expires_at: datetime
    expires_in: int


class ObjectStorageClient:
    """Persist raw document files to S3, GCS, or local disk."""

    def __init__(self, config: Settings) -> None:
        self.backend = (config.STORAGE_BACKEND or "local").lower()
        self.default_ttl = int(config.SIGNED_URL_TTL_SECONDS)
        self._s3 = None
        self._s3_bucket = config.S3_BUCKET_NAME
        self._gcs_bucket = None

        if self.backend == "s3":
            if not self._s3_bucket:
                raise StorageError("S3_BUCKET_NAME required for S3 storage backend")
            self._s3 = boto3.client(
                "s3",
                region_name=config.S3_REGION,
                endpoint_url=str(config.S3_ENDPOINT_URL) if config.S3_ENDPOINT_URL else None,
            )
        elif self.backend == "gcs":
            if not config.GOOGLE_SERVICE_ACCOUNT_FILE or not config.GCS_BUCKET_NAME:
                raise StorageError("GOOGLE_SERVICE_ACCOUNT_FILE and GCS_BUCKET_NAME required for GCS storage backend")
            client = gcs_storage.Client.from_service_account_json(str(config.GOOGLE_SERVICE_ACCOUNT_FILE))
            self._gcs_bucket = client.bucket(config.GCS_BUCKET_NAME)
        else:
            self.backend = "local"
            self._local_root = Path(config.LOCAL_STORAGE_PATH)
            self._local_root.mkdir(parents=True, exist_ok=True)

    async def upload(self, content: bytes, filename: str, content_type: str = "application/octet-stream") -> str:
        """Store `content` under a fresh unique path and return that path."""

        if not content:
            raise StorageError("Refusing to store empty file", details={"filename": filename})

        path = self.build_storage_path(filename)

        if self.backend == "s3":

            def put() -> None:
                self._s3.put_object(Bucket=self._s3_bucket, Key=path, Body=content, ContentType=content_type)

            await self._run("upload", path, put)
        elif self.backend == "gcs":

            def put() -> None:
                self._gcs_bucket.blob(path).upload_from_string(content, content_type=content_type)

            await self._run("upload", path, put)
        else:
            destination = self._local_path(path)

            def write() -> None:
                destination.parent.mkdir(parents=True, exist_ok=True)
                with open(destination, "wb") as handle:
                    handle.write(content)

            await self._run("upload", path, write)

        logger.info("Stored %s bytes at %s (%s backend)", len(content), path, self.backend)
        return path

    async def download(self, path: str) -> bytes:
        if not path or not path.strip():
            raise StorageError("Storage path is required for file download")

        if self.backend == "s3":

            def fetch() -> bytes:
                response = self._s3.get_object(Bucket=self._s3_bucket, Key=path)
                return response["Body"].read()

        elif self.backend == "gcs":

            def fetch() -> bytes:
                return self._gcs_bucket.blob(path).download_as_bytes()

        else:
            source = self._local_path(path)

            def fetch() -> bytes:
                with open(source, "rb") as handle:
                    return handle.read()

        content = await self._run("download", path, fetch)
        if content is None:
            raise StorageError("File download returned no data. File may not exist.", details={"path": path})
        logger.info("Downloaded %s bytes from %s", len(content), path)
        return content

    async def delete(self, path: str) -> None:
        """Remove the object at `path`. Deleting a missing object succeeds."""

        if self.backend == "s3":

            def remove() -> None:
                self._s3.delete_object(Bucket=self._s3_bucket, Key=path)

        elif self.backend == "gcs":

            def remove() -> None:
                try:
                    self._gcs_bucket.blob(path).delete()
                except GCSNotFound:
                    logger.debug("GCS object %s already absent", path)

        else:
            target = self._local_path(path)

            def remove() -> None:
                target.unlink(missing_ok=True)

        await self._run("delete", path, remove)

    async def signed_url(self, path: str, ttl_seconds: Optional[int] = None) -> SignedUrl:
        expires_in = int(ttl_seconds or self.default_ttl)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

        if self.backend == "s3":

            def sign() -> str:
                return self._s3.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self._s3_bucket, "Key": path},
                    ExpiresIn=expires_in,
                )

        elif self.backend == "gcs":

            def sign() -> str:
                return self._gcs_bucket.blob(path).generate_signed_url(
                    version="v4",
                    expiration=timedelta(seconds=expires_in),
                    method="GET",
                )

        else:
            target = self._local_path(path)

            def sign() -> str:
                if not target.exists():
                    raise FileNotFoundError(str(target))
                return target.resolve().as_uri()

        url = await self._run("signed_url", path, sign)
        return SignedUrl(url=url, expires_at=expires_at, expires_in=expires_in)

    @staticmethod
    def build_storage_path(filename: str) -> str:
        base, extension = os.path.splitext(os.path.basename(filename or "file"))
        safe_base = _UNSAFE_CHARS.sub("_", base) or "file"
        return f"{uuid.uuid4()}-{safe_base}{extension.lower()}"

    def _local_path(self, path: str) -> Path:
        root = self._local_root.resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise StorageError("Storage path escapes the storage root", details={"path": path})
        return target

    async def _run(self, operation: str, path: str, func):
        try:
            return await asyncio.to_thread(func)
        except (ClientError, BotoCoreError, GoogleCloudError, OSError) as exc:
            logger.error("Storage %s failed for %s: %s", operation, path, exc)
            raise StorageError(f"Storage {operation} failed: {exc}", details={"path": path}) from exc
