"""
In-process file store. Used by default for local runs and in tests.
"""
from __future__ import annotations

import logging
from typing import Optional

from recipe_archive.app.infra.storage.base import FileStore, StoredFile

logger = logging.getLogger(__name__)


class InMemoryFileStore(FileStore):
    def __init__(self) -> None:
        self.images: dict[str, StoredFile] = {}
        self.json_files: dict[str, StoredFile] = {}

    async def get_image(self, key: str) -> Optional[StoredFile]:
        return self.images.get(key)

    async def store_image(self, key: str, file: StoredFile) -> str:
        self.images[key] = file
        logger.debug("Image stored successfully: %s", key)
        return key

    async def get_json_file(self, key: str) -> Optional[StoredFile]:
        return self.json_files.get(key)

    async def store_json_file(self, key: str, file: StoredFile) -> str:
        self.json_files[key] = file
        logger.debug("JSON file stored successfully: %s", key)
        return key
