# recipe_archive/app/infra/bundle/static_bundle.py
"""
Read-only access to the static recipe bundle shipped with the application.

Every asset lives at ``assets/recipes/<folderId>/<relativePath>``. The bundle
is either served over HTTP or read from a local checkout of the assets tree.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from recipe_archive.app.domain.errors import BundleFetchError

logger = logging.getLogger(__name__)

BUNDLE_ROOT = "assets/recipes"


def bundle_path(folder_id: str, relative_path: str) -> str:
    return f"{BUNDLE_ROOT}/{folder_id}/{relative_path}"


class StaticBundle(ABC):
    @abstractmethod
    async def fetch(self, path: str) -> bytes:
        """
        Fetch one asset.

        Raises:
            BundleFetchError: If the asset cannot be read
        """
        pass


class HttpStaticBundle(StaticBundle):
    """Fetches assets relative to a base URL with httpx."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def fetch(self, path: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(path)
                response.raise_for_status()
                return response.content
        except httpx.TimeoutException as e:
            raise BundleFetchError(path, f"timeout after {self.timeout_seconds}s") from e
        except httpx.HTTPStatusError as e:
            raise BundleFetchError(path, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise BundleFetchError(path, str(e)) from e


class DirectoryStaticBundle(StaticBundle):
    """Reads assets from a directory that contains ``assets/recipes``."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _read(self, path: str) -> bytes:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise BundleFetchError(path, "outside bundle root")
        if not target.is_file():
            raise BundleFetchError(path, "not found")
        return target.read_bytes()

    async def fetch(self, path: str) -> bytes:
        try:
            return await asyncio.to_thread(self._read, path)
        except OSError as e:
            raise BundleFetchError(path, str(e)) from e


class EmptyStaticBundle(StaticBundle):
    """A bundle with no assets, used when none is configured."""

    async def fetch(self, path: str) -> bytes:
        raise BundleFetchError(path, "no static bundle configured")
