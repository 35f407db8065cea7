# recipe_archive/app/infra/storage/base.py
"""
Abstract base class for the editable attachment store.
This interface allows easy swapping between different storage backends (memory, local disk, R2).
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class StoredFile:
    """An attachment held by a file store."""
    name: str
    content: bytes
    content_type: str = "application/octet-stream"


class FileStore(ABC):
    """
    Abstract interface for attachment storage.

    Two logical sides are kept apart: images and JSON files
    (downloadable executable descriptors). A missing key is a normal
    outcome and is reported as ``None``, never as an exception.

    Implementations:
    - InMemoryFileStore: process-local dictionaries
    - LocalFileStore: one directory per side on local disk
    - R2FileStore: Cloudflare R2 (S3-compatible)
    """

    @abstractmethod
    async def get_image(self, key: str) -> Optional[StoredFile]:
        """
        Look up an image by its attachment key.

        Args:
            key: The attachment key (``prefix_timestamp_random``)

        Returns:
            The stored image, or None if not present
        """
        pass

    @abstractmethod
    async def store_image(self, key: str, file: StoredFile) -> str:
        """
        Store (or replace) an image.

        Args:
            key: The attachment key
            file: The image content

        Returns:
            The key under which the image was stored
        """
        pass

    @abstractmethod
    async def get_json_file(self, key: str) -> Optional[StoredFile]:
        """
        Look up an executable descriptor by file name.

        Args:
            key: The file name, e.g. ``batch-job.json``

        Returns:
            The stored file, or None if not present
        """
        pass

    @abstractmethod
    async def store_json_file(self, key: str, file: StoredFile) -> str:
        """
        Store (or replace) an executable descriptor.

        Args:
            key: The file name
            file: The JSON content

        Returns:
            The key under which the file was stored
        """
        pass

    @staticmethod
    def safe_key(key: str) -> str:
        """Sanitize a key for backends that map keys onto paths."""
        return re.sub(r"[^a-zA-Z0-9._-]", "_", key)
