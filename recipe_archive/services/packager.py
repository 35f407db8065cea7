# recipe_archive/services/packager.py
"""
Builds a ZIP archive from a set of recipes.

Layout:
    index.json
    DEPLOYMENT_INSTRUCTIONS.txt
    <folder>/recipe.json
    <folder>/images/<file>
    <folder>/downloadExecutables/<file>.json

Records and their attachments are processed strictly in input order so that
folder names and the index are reproducible.
"""
from __future__ import annotations

import io
import json
import logging
import zipfile
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from recipe_archive.app.domain.errors import ArchiveBackendUnavailableError
from recipe_archive.app.domain.models import (
    ArchiveIndexEntry,
    ExportOutcome,
    Notice,
    NoticeLevel,
    ProgressCallback,
    RecipeRecord,
)
from recipe_archive.app.infra.storage.base import FileStore
from recipe_archive.services.file_resolver import FileResolver
from recipe_archive.services.progress import ProgressReporter
from recipe_archive.services.records import (
    EXECUTABLES_DIR,
    IMAGES_DIR,
    clean_recipe_for_export,
    recipe_attachments,
)
from recipe_archive.services.slugify import allocate_folder_names
from recipe_archive.services.validator import validate_recipe

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
RECIPE_FILE = "recipe.json"
INSTRUCTIONS_FILE = "DEPLOYMENT_INSTRUCTIONS.txt"


def build_index(
    folder_map: Mapping[str, str],
    active_states: Optional[Mapping[str, bool]] = None,
) -> list[ArchiveIndexEntry]:
    """Index entries for the exported folders, sorted by folder id."""
    entries = [
        ArchiveIndexEntry(
            folderId=folder,
            active=(active_states or {}).get(recipe_id, True),
        )
        for recipe_id, folder in folder_map.items()
    ]
    return sorted(entries, key=lambda e: e.folderId)


def index_document(entries: Sequence[ArchiveIndexEntry]) -> dict:
    return {"recipes": [e.to_dict() for e in entries]}


def dump_json(data: object) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def deployment_instructions(recipes: Sequence[RecipeRecord], exported_at: datetime) -> str:
    categories = list(dict.fromkeys(str(r.get("category")) for r in recipes))
    recipe_list = "\n".join(
        f"{i}. {r.get('title')} ({r.get('id')})" for i, r in enumerate(recipes, start=1)
    )
    return f"""
Recipe Export Update Instructions
================================
Export Date: {exported_at.isoformat()}
Total Recipes: {len(recipes)}
Categories: {', '.join(categories)}

How to Deploy the Exported Recipes:
-----------------------------------

1. Recipe Data Structure:
   - index.json: Lists every exported recipe folder and whether it is active
   - [recipe-folder]/recipe.json: Individual recipe definitions
   - [recipe-folder]/images/: Recipe-specific images
   - [recipe-folder]/downloadExecutables/: JSON executable files

2. For Production Deployment:
   - Copy index.json to src/assets/recipes/
   - Copy all recipe folders to src/assets/recipes/
   - Ensure the directory structure matches: src/assets/recipes/[recipe-folder]/

3. Recipe System Integration:
   - index.json is loaded when the catalog starts
   - Only recipes marked as "active: true" in index.json will be displayed

4. Validation:
   - All recipes in the index must have corresponding folders
   - Each recipe folder must contain a recipe.json file
   - Image references in recipes must match actual image files

Exported Recipe List:
-------------------
{recipe_list}

Notes:
------
- Folder names are derived from recipe titles; duplicates get -2, -3, ... suffixes
- Image paths use relative references: "images/[filename]"
- All downloadable executables are stored in the downloadExecutables/ subdirectory
- Importing this archive again restores images and executables into the file store
"""


class ArchivePackager:
    def __init__(self, resolver: FileResolver, compression_level: int = 6):
        self.resolver = resolver
        self.compression_level = compression_level

    async def pack(
        self,
        recipes: Sequence[RecipeRecord],
        file_store: Optional[FileStore],
        all_recipes_for_index: Optional[Sequence[RecipeRecord]] = None,
        on_progress: Optional[ProgressCallback] = None,
        active_states: Optional[Mapping[str, bool]] = None,
    ) -> ExportOutcome:
        """
        Export ``recipes`` as a ZIP archive.

        ``all_recipes_for_index`` only feeds the total shown to the user;
        index.json always lists exactly the folders written to this archive.
        Any unexpected failure aborts the export and yields no archive.
        """
        exported_at = datetime.now(timezone.utc)
        filename = f"recipes_export_{exported_at.date().isoformat()}.zip"
        try:
            archive, exported, missing = await self._build(
                recipes, file_store, on_progress, active_states, exported_at
            )
        except Exception as e:
            logger.error("Error exporting recipes as ZIP: %s", e, exc_info=True)
            return ExportOutcome(
                archive=None,
                filename=filename,
                exported_count=0,
                index_total=0,
                notice=Notice(NoticeLevel.ERROR, "Failed to export recipes as ZIP"),
                error=e,
            )

        index_total = len(all_recipes_for_index) if all_recipes_for_index is not None else exported
        logger.info(
            "ZIP export complete: recipes=%d, missing_attachments=%d, bytes=%d",
            exported,
            len(missing),
            len(archive),
        )
        return ExportOutcome(
            archive=archive,
            filename=filename,
            exported_count=exported,
            index_total=index_total,
            notice=Notice(
                NoticeLevel.SUCCESS,
                f"{exported} edited recipes exported as ZIP with index.json "
                f"containing {index_total} total recipes",
            ),
            missing_attachments=missing,
        )

    async def _build(
        self,
        recipes: Sequence[RecipeRecord],
        file_store: Optional[FileStore],
        on_progress: Optional[ProgressCallback],
        active_states: Optional[Mapping[str, bool]],
        exported_at: datetime,
    ) -> tuple[bytes, int, list[str]]:
        if file_store is None:
            raise ArchiveBackendUnavailableError("File store")

        progress = ProgressReporter(total=len(recipes) + 2, callback=on_progress)

        prepared: list[tuple[RecipeRecord, RecipeRecord]] = []
        seen_ids: set[str] = set()
        for recipe in recipes:
            recipe_id = recipe.get("id")
            if not recipe_id or recipe_id in seen_ids:
                logger.warning("Skipping recipe without a unique id: %s", recipe.get("title"))
                progress.advance(f"Skipped recipe: {recipe.get('title')}")
                continue
            cleaned = validate_recipe(clean_recipe_for_export(recipe))
            if cleaned is None:
                logger.warning("Skipping invalid recipe: %s", recipe_id)
                progress.advance(f"Skipped recipe: {recipe.get('title')}")
                continue
            seen_ids.add(recipe_id)
            prepared.append((recipe, cleaned))

        folder_map = allocate_folder_names(cleaned for _, cleaned in prepared)
        missing: list[str] = []
        written: list[RecipeRecord] = []

        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=self.compression_level
        ) as zf:
            for original, cleaned in prepared:
                folder = folder_map[cleaned["id"]]

                zf.writestr(f"{folder}/{RECIPE_FILE}", dump_json(cleaned))
                missing.extend(await self._write_attachments(zf, folder, original, cleaned, file_store))
                written.append(cleaned)

                progress.advance(f"Processed recipe: {cleaned['title']}")

            entries = build_index(folder_map, active_states)
            zf.writestr(INDEX_FILE, dump_json(index_document(entries)))
            zf.writestr(INSTRUCTIONS_FILE, deployment_instructions(written, exported_at))
            progress.advance("Generated index.json and deployment instructions")

        archive = buffer.getvalue()
        progress.advance("Generated ZIP file")
        return archive, len(written), missing

    async def _write_attachments(
        self,
        zf: zipfile.ZipFile,
        folder: str,
        original: RecipeRecord,
        cleaned: RecipeRecord,
        file_store: FileStore,
    ) -> list[str]:
        missing: list[str] = []
        seen: set[str] = set()
        for attachment in recipe_attachments(cleaned):
            subdir = IMAGES_DIR if attachment.is_image else EXECUTABLES_DIR
            entry = f"{folder}/{subdir}/{attachment.file_name}"
            if entry in seen:
                continue
            seen.add(entry)

            found = await self.resolver.resolve(file_store, attachment, original)
            if found is None:
                logger.warning("Attachment not found, omitted from archive: %s", entry)
                missing.append(entry)
                continue
            zf.writestr(entry, found.content)
        return missing
