# recipe_archive/services/unpacker.py
"""
Reads a recipe ZIP archive back into validated records.

Attachments found in the archive are restored into the file store. Folders
without a usable recipe.json, and folders marked inactive in index.json,
are skipped without failing the import.
"""
from __future__ import annotations

import io
import json
import logging
import zipfile
from typing import Any, Optional

from recipe_archive.app.domain.errors import (
    ArchiveBackendUnavailableError,
    MalformedArchiveError,
    NoValidRecipesError,
)
from recipe_archive.app.domain.models import (
    ImportOutcome,
    Notice,
    NoticeLevel,
    ProgressCallback,
    RecipeRecord,
)
from recipe_archive.app.infra.storage.base import FileStore, StoredFile
from recipe_archive.services.packager import INDEX_FILE, RECIPE_FILE
from recipe_archive.services.progress import ProgressReporter
from recipe_archive.services.records import (
    EXECUTABLES_DIR,
    IMAGES_DIR,
    extract_attachment_id,
    image_mime_type,
)
from recipe_archive.services.validator import validate_recipe

logger = logging.getLogger(__name__)

PLATFORM_METADATA_PREFIX = "__MACOSX"


def read_index(zf: zipfile.ZipFile) -> Optional[list[dict[str, Any]]]:
    """Entries of a root index.json, or None if it is absent or unreadable."""
    try:
        raw = zf.read(INDEX_FILE)
    except KeyError:
        return None
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Failed to parse index.json: %s", e)
        return None

    entries = data.get("recipes", data) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        logger.warning("index.json has no recipe list, ignoring it")
        return None
    logger.debug("Found index.json with %d entries", len(entries))
    return [e for e in entries if isinstance(e, dict)]


def list_folders(names: list[str]) -> list[str]:
    """Top-level folders in archive order, without platform metadata."""
    folders: list[str] = []
    for name in names:
        if "/" not in name or name.startswith(PLATFORM_METADATA_PREFIX) or name.startswith(INDEX_FILE):
            continue
        folder = name.split("/", 1)[0]
        if folder and folder not in folders:
            folders.append(folder)
    return folders


def is_inactive(index: Optional[list[dict[str, Any]]], folder: str) -> bool:
    if not index:
        return False
    entry = next((e for e in index if e.get("folderId") == folder), None)
    return entry is not None and entry.get("active") is False


class ArchiveUnpacker:
    async def unpack(
        self,
        archive: bytes,
        file_store: Optional[FileStore],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportOutcome:
        try:
            if file_store is None:
                raise ArchiveBackendUnavailableError("File store")
            zf = self._open(archive)
        except (ArchiveBackendUnavailableError, MalformedArchiveError) as e:
            logger.error("Error importing from ZIP: %s", e)
            return ImportOutcome(
                records=[],
                notice=Notice(NoticeLevel.ERROR, "Failed to import from ZIP file"),
                error=e,
            )

        try:
            with zf:
                records, skipped = await self._import_folders(zf, file_store, on_progress)
        except Exception as e:
            logger.error("Error importing from ZIP: %s", e, exc_info=True)
            return ImportOutcome(
                records=[],
                notice=Notice(NoticeLevel.ERROR, "Failed to import from ZIP file"),
                error=e,
            )

        if not records:
            return ImportOutcome(
                records=[],
                notice=Notice(NoticeLevel.ERROR, "No valid recipes found in ZIP file"),
                skipped=skipped,
                error=NoValidRecipesError("ZIP file", skipped=len(skipped)),
            )

        message = f"Imported {len(records)} recipe{'s' if len(records) > 1 else ''} from ZIP"
        if skipped:
            logger.warning("ZIP import skipped %d folder(s): %s", len(skipped), ", ".join(skipped))
            message += f" ({len(skipped)} skipped)"
        return ImportOutcome(
            records=records,
            notice=Notice(NoticeLevel.SUCCESS, message),
            skipped=skipped,
        )

    @staticmethod
    def _open(archive: bytes) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(io.BytesIO(archive))
        except zipfile.BadZipFile as e:
            raise MalformedArchiveError(f"Not a ZIP archive: {e}") from e

    async def _import_folders(
        self,
        zf: zipfile.ZipFile,
        file_store: FileStore,
        on_progress: Optional[ProgressCallback],
    ) -> tuple[list[RecipeRecord], list[str]]:
        names = zf.namelist()
        index = read_index(zf)
        folders = list_folders(names)
        progress = ProgressReporter(total=len(folders), callback=on_progress)

        records: list[RecipeRecord] = []
        skipped: list[str] = []

        for folder in folders:
            progress.advance(f"Processing: {folder}")

            try:
                recipe = self._read_recipe(zf, folder)
                if recipe is None:
                    skipped.append(folder)
                    continue

                if is_inactive(index, folder):
                    logger.debug("Skipping inactive recipe: %s", folder)
                    continue

                await self._restore_attachments(zf, names, folder, file_store)
            except Exception as e:
                logger.warning("Error processing folder %s: %s", folder, e)
                skipped.append(folder)
                continue
            records.append(recipe)
            logger.debug("Successfully imported recipe: %s", recipe.get("title"))

        progress.finish("Import complete")
        return records, skipped

    @staticmethod
    def _read_recipe(zf: zipfile.ZipFile, folder: str) -> Optional[RecipeRecord]:
        try:
            raw = zf.read(f"{folder}/{RECIPE_FILE}")
        except KeyError:
            logger.warning("No recipe.json found in folder: %s", folder)
            return None
        except zipfile.BadZipFile as e:
            logger.warning("Corrupt recipe.json in folder %s: %s", folder, e)
            return None
        try:
            candidate = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Unreadable recipe.json in folder %s: %s", folder, e)
            return None

        recipe = validate_recipe(candidate)
        if recipe is None:
            logger.warning("Invalid recipe in folder: %s", folder)
        return recipe

    @staticmethod
    async def _restore_attachments(
        zf: zipfile.ZipFile,
        names: list[str],
        folder: str,
        file_store: FileStore,
    ) -> None:
        images_prefix = f"{folder}/{IMAGES_DIR}/"
        executables_prefix = f"{folder}/{EXECUTABLES_DIR}/"

        for path in names:
            if path.endswith("/"):
                continue
            file_name = path.rsplit("/", 1)[-1]
            try:
                if path.startswith(images_prefix):
                    await file_store.store_image(
                        extract_attachment_id(file_name),
                        StoredFile(
                            name=file_name,
                            content=zf.read(path),
                            content_type=image_mime_type(file_name),
                        ),
                    )
                    logger.debug("Stored image: %s", file_name)
                elif path.startswith(executables_prefix) and path.endswith(".json"):
                    await file_store.store_json_file(
                        file_name,
                        StoredFile(name=file_name, content=zf.read(path), content_type="application/json"),
                    )
                    logger.debug("Stored JSON file: %s", file_name)
            except Exception as e:
                logger.warning("Failed to import attachment %s: %s", path, e)
