# recipe_archive/services/file_resolver.py
"""
Looks up attachment bytes for a recipe.

Resolvers are tried in priority order: the editable file store first
(attachments added or replaced since the static bundle was built), then the
static read-only bundle. The first hit wins. A resolver that misses or
fails only moves the lookup on to the next one.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Mapping, Optional

from recipe_archive.app.domain.models import Attachment, RecipeRecord
from recipe_archive.app.infra.bundle.static_bundle import (
    EmptyStaticBundle,
    StaticBundle,
    bundle_path,
)
from recipe_archive.app.infra.storage.base import FileStore, StoredFile
from recipe_archive.services.records import image_mime_type

logger = logging.getLogger(__name__)

Resolver = Callable[[Attachment], Awaitable[Optional[StoredFile]]]

FOLDER_HINT_KEY = "__folderId"


class FileResolver:
    def __init__(
        self,
        bundle: Optional[StaticBundle] = None,
        folder_overrides: Optional[Mapping[str, str]] = None,
    ):
        self.bundle = bundle or EmptyStaticBundle()
        self.folder_overrides = dict(folder_overrides or {})

    def folder_id_for(self, recipe: RecipeRecord) -> str:
        """Folder of ``recipe`` inside the static bundle."""
        hint = recipe.get(FOLDER_HINT_KEY)
        if hint:
            return hint
        recipe_id = recipe.get("id", "")
        return self.folder_overrides.get(recipe_id, recipe_id)

    def resolvers(self, file_store: FileStore, recipe: RecipeRecord) -> list[Resolver]:
        async def from_store(attachment: Attachment) -> Optional[StoredFile]:
            if attachment.is_image:
                found = await file_store.get_image(attachment.file_key)
            else:
                found = await file_store.get_json_file(attachment.file_key)
            if found is not None:
                logger.debug("Retrieved %s from file store: %s", _kind(attachment), attachment.file_key)
            return found

        async def from_bundle(attachment: Attachment) -> Optional[StoredFile]:
            path = bundle_path(self.folder_id_for(recipe), attachment.relative_path)
            logger.debug("Falling back to static bundle: %s", path)
            content = await self.bundle.fetch(path)
            content_type = image_mime_type(attachment.file_name) if attachment.is_image else "application/json"
            return StoredFile(name=attachment.file_name, content=content, content_type=content_type)

        return [from_store, from_bundle]

    async def resolve(
        self,
        file_store: FileStore,
        attachment: Attachment,
        recipe: RecipeRecord,
    ) -> Optional[StoredFile]:
        """
        Bytes for ``attachment``, or None if no resolver has it.

        Never raises for a missing or unreadable attachment.
        """
        for resolver in self.resolvers(file_store, recipe):
            try:
                found = await resolver(attachment)
            except Exception as exc:
                logger.warning(
                    "Failed to get %s %s / %s: %s",
                    _kind(attachment),
                    attachment.file_key,
                    attachment.relative_path,
                    exc,
                )
                continue
            if found is not None:
                return found
        return None


def _kind(attachment: Attachment) -> str:
    return "image" if attachment.is_image else "JSON file"
