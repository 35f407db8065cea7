# recipe_archive/app/infra/storage/r2_provider.py
"""
Cloudflare R2 file store implementation.
R2 is S3-compatible, so we use boto3 with custom endpoint.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from recipe_archive.app.domain.errors import StorageError, StorageNotConfiguredError
from recipe_archive.app.infra.storage.base import FileStore, StoredFile

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "images"
JSON_PREFIX = "jsonFiles"


class R2FileStore(FileStore):
    """
    Cloudflare R2 file store using boto3 (S3-compatible).

    Environment variables required:
    - R2_ACCOUNT_ID: Cloudflare account ID
    - R2_ACCESS_KEY_ID: R2 access key ID
    - R2_SECRET_ACCESS_KEY: R2 secret access key
    - R2_BUCKET_NAME: Name of the R2 bucket

    Images are kept under ``images/<key>`` with the original file name in
    the object metadata; executable descriptors under ``jsonFiles/<key>``.
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        bucket_name: Optional[str] = None,
        client: Any = None,
    ):
        self.account_id = account_id or os.getenv("R2_ACCOUNT_ID")
        self.access_key_id = access_key_id or os.getenv("R2_ACCESS_KEY_ID")
        self.secret_access_key = secret_access_key or os.getenv("R2_SECRET_ACCESS_KEY")
        self.bucket_name = bucket_name or os.getenv("R2_BUCKET_NAME")

        if client is not None:
            if not self.bucket_name:
                raise StorageNotConfiguredError("R2", ["R2_BUCKET_NAME"])
            self._client = client
            return

        missing = [
            name
            for name, value in (
                ("R2_ACCOUNT_ID", self.account_id),
                ("R2_ACCESS_KEY_ID", self.access_key_id),
                ("R2_SECRET_ACCESS_KEY", self.secret_access_key),
                ("R2_BUCKET_NAME", self.bucket_name),
            )
            if not value
        ]
        if missing:
            raise StorageNotConfiguredError("R2", missing)

        self.endpoint_url = f"https://{self.account_id}.r2.cloudflarestorage.com"

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
            region_name="auto",  # R2 uses 'auto' as region
        )

        logger.info(
            "R2FileStore initialized: bucket=%s, endpoint=%s",
            self.bucket_name,
            self.endpoint_url,
        )

    def _get(self, object_key: str) -> Optional[StoredFile]:
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=object_key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "404" or error_code == "NoSuchKey":
                return None
            logger.error("Failed to read object from R2: %s", e)
            raise StorageError(f"Failed to read {object_key}: {e}") from e

        metadata = response.get("Metadata") or {}
        return StoredFile(
            name=metadata.get("filename") or object_key.rsplit("/", 1)[-1],
            content=response["Body"].read(),
            content_type=response.get("ContentType") or "application/octet-stream",
        )

    def _put(self, object_key: str, file: StoredFile) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=object_key,
                Body=file.content,
                ContentType=file.content_type,
                Metadata={"filename": file.name},
            )
        except ClientError as e:
            logger.error("Failed to write object to R2: %s", e)
            raise StorageError(f"Failed to write {object_key}: {e}") from e
        logger.info("Stored object in R2: key=%s, size=%d bytes", object_key, len(file.content))

    async def get_image(self, key: str) -> Optional[StoredFile]:
        return await asyncio.to_thread(self._get, f"{IMAGE_PREFIX}/{self.safe_key(key)}")

    async def store_image(self, key: str, file: StoredFile) -> str:
        await asyncio.to_thread(self._put, f"{IMAGE_PREFIX}/{self.safe_key(key)}", file)
        return key

    async def get_json_file(self, key: str) -> Optional[StoredFile]:
        return await asyncio.to_thread(self._get, f"{JSON_PREFIX}/{self.safe_key(key)}")

    async def store_json_file(self, key: str, file: StoredFile) -> str:
        await asyncio.to_thread(self._put, f"{JSON_PREFIX}/{self.safe_key(key)}", file)
        return key
