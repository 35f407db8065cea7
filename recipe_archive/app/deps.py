# recipe_archive/app/deps.py
from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status

from recipe_archive.app.config import Settings, get_settings
from recipe_archive.app.domain.errors import StorageError
from recipe_archive.app.infra.bundle.static_bundle import (
    DirectoryStaticBundle,
    EmptyStaticBundle,
    HttpStaticBundle,
    StaticBundle,
)
from recipe_archive.app.infra.storage.base import FileStore
from recipe_archive.app.infra.storage.local_provider import LocalFileStore
from recipe_archive.app.infra.storage.memory_provider import InMemoryFileStore
from recipe_archive.services.file_resolver import FileResolver
from recipe_archive.services.packager import ArchivePackager
from recipe_archive.services.unpacker import ArchiveUnpacker

logger = logging.getLogger(__name__)

# One store per process; the core assumes a single writer per operation
_file_store: FileStore | None = None


def build_file_store(config: Settings) -> FileStore:
    if config.FILE_STORE_BACKEND == "local":
        return LocalFileStore(config.FILE_STORE_DIR)
    if config.FILE_STORE_BACKEND == "r2":
        from recipe_archive.app.infra.storage.r2_provider import R2FileStore

        return R2FileStore(
            account_id=config.R2_ACCOUNT_ID,
            access_key_id=config.R2_ACCESS_KEY_ID,
            secret_access_key=config.R2_SECRET_ACCESS_KEY,
            bucket_name=config.R2_BUCKET_NAME,
        )
    return InMemoryFileStore()


def build_static_bundle(config: Settings) -> StaticBundle:
    if config.STATIC_BUNDLE_DIR:
        return DirectoryStaticBundle(config.STATIC_BUNDLE_DIR)
    if config.STATIC_BUNDLE_BASE_URL:
        return HttpStaticBundle(
            config.STATIC_BUNDLE_BASE_URL,
            timeout_seconds=config.STATIC_BUNDLE_TIMEOUT_SECONDS,
        )
    return EmptyStaticBundle()


def get_file_store(config: Settings = Depends(get_settings)) -> FileStore:
    global _file_store
    if _file_store is None:
        try:
            _file_store = build_file_store(config)
        except StorageError as e:
            logger.error("Failed to initialize file store: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="File store unavailable",
            )
    return _file_store


def get_packager(config: Settings = Depends(get_settings)) -> ArchivePackager:
    resolver = FileResolver(build_static_bundle(config), config.FOLDER_ID_OVERRIDES)
    return ArchivePackager(resolver, compression_level=config.EXPORT_COMPRESSION_LEVEL)


def get_unpacker() -> ArchiveUnpacker:
    return ArchiveUnpacker()
