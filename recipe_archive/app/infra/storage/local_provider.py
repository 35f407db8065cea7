# recipe_archive/app/infra/storage/local_provider.py
"""
Directory-backed file store.

Layout:
    <root>/images/<key>/<original file name>
    <root>/jsonFiles/<key>
"""
from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Optional

from recipe_archive.app.domain.errors import StorageError
from recipe_archive.app.infra.storage.base import FileStore, StoredFile

logger = logging.getLogger(__name__)


class LocalFileStore(FileStore):
    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.images_dir = self.root / "images"
        self.json_dir = self.root / "jsonFiles"
        logger.info("LocalFileStore initialized: root=%s", self.root)

    def _read_image(self, key: str) -> Optional[StoredFile]:
        folder = self.images_dir / self.safe_key(key)
        if not folder.is_dir():
            return None
        files = sorted(p for p in folder.iterdir() if p.is_file())
        if not files:
            return None
        path = files[0]
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return StoredFile(name=path.name, content=path.read_bytes(), content_type=content_type)

    def _write_image(self, key: str, file: StoredFile) -> str:
        folder = self.images_dir / self.safe_key(key)
        folder.mkdir(parents=True, exist_ok=True)
        for stale in folder.iterdir():
            if stale.is_file():
                stale.unlink()
        (folder / self.safe_key(file.name)).write_bytes(file.content)
        return key

    def _read_json(self, key: str) -> Optional[StoredFile]:
        path = self.json_dir / self.safe_key(key)
        if not path.is_file():
            return None
        return StoredFile(name=key, content=path.read_bytes(), content_type="application/json")

    def _write_json(self, key: str, file: StoredFile) -> str:
        self.json_dir.mkdir(parents=True, exist_ok=True)
        (self.json_dir / self.safe_key(key)).write_bytes(file.content)
        return key

    async def get_image(self, key: str) -> Optional[StoredFile]:
        try:
            return await asyncio.to_thread(self._read_image, key)
        except OSError as e:
            logger.error("Failed to read image %s: %s", key, e)
            raise StorageError(f"Failed to read image {key}: {e}") from e

    async def store_image(self, key: str, file: StoredFile) -> str:
        try:
            await asyncio.to_thread(self._write_image, key, file)
        except OSError as e:
            logger.error("Failed to store image %s: %s", key, e)
            raise StorageError(f"Failed to store image {key}: {e}") from e
        logger.debug("Image stored successfully: %s", key)
        return key

    async def get_json_file(self, key: str) -> Optional[StoredFile]:
        try:
            return await asyncio.to_thread(self._read_json, key)
        except OSError as e:
            logger.error("Failed to read JSON file %s: %s", key, e)
            raise StorageError(f"Failed to read JSON file {key}: {e}") from e

    async def store_json_file(self, key: str, file: StoredFile) -> str:
        try:
            await asyncio.to_thread(self._write_json, key, file)
        except OSError as e:
            logger.error("Failed to store JSON file %s: %s", key, e)
            raise StorageError(f"Failed to store JSON file {key}: {e}") from e
        logger.debug("JSON file stored successfully: %s", key)
        return key
