"""
Plain JSON export and import of recipe collections.

Accepted import shapes, checked in this order:
1. structured export: an object with truthy ``metadata``, ``recipes`` and ``index``
2. a bare array of recipes
3. a single recipe object
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from recipe_archive.app.domain.errors import MalformedDocumentError, NoValidRecipesError
from recipe_archive.app.domain.models import ImportOutcome, Notice, NoticeLevel, RecipeRecord
from recipe_archive.services.packager import build_index, dump_json, index_document
from recipe_archive.services.records import clean_recipe_for_export
from recipe_archive.services.slugify import allocate_folder_names
from recipe_archive.services.validator import validate_recipe

logger = logging.getLogger(__name__)

EXPORT_FORMAT = "recipe-collection"
EXPORT_VERSION = "1.0.0"


def export_single_recipe(recipe: RecipeRecord) -> tuple[str, bytes]:
    cleaned = clean_recipe_for_export(recipe)
    filename = f"{cleaned.get('id') or 'recipe'}.json"
    return filename, dump_json(cleaned).encode("utf-8")


def build_export_document(
    recipes: Sequence[RecipeRecord],
    active_states: Optional[Mapping[str, bool]] = None,
    exported_at: Optional[datetime] = None,
) -> dict[str, Any]:
    exported_at = exported_at or datetime.now(timezone.utc)
    folder_map = allocate_folder_names(r for r in recipes if r.get("title"))
    return {
        "metadata": {
            "exportDate": exported_at.isoformat(),
            "version": EXPORT_VERSION,
            "recipeCount": len(recipes),
            "format": EXPORT_FORMAT,
        },
        "index": index_document(build_index(folder_map, active_states)),
        "recipes": list(recipes),
    }


def export_as_json(
    recipes: Sequence[RecipeRecord],
    active_states: Optional[Mapping[str, bool]] = None,
) -> tuple[str, bytes]:
    exported_at = datetime.now(timezone.utc)
    document = build_export_document(recipes, active_states, exported_at)
    filename = f"recipes_{exported_at.date().isoformat()}.json"
    logger.info("JSON export: recipes=%d", len(recipes))
    return filename, dump_json(document).encode("utf-8")


def _is_set(value: Any) -> bool:
    # Empty containers count as set; only null, false, 0 and "" do not
    if isinstance(value, (dict, list)):
        return True
    return value is not None and value is not False and value != 0 and value != ""


def is_structured_document(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and _is_set(data.get("metadata"))
        and _is_set(data.get("recipes"))
        and _is_set(data.get("index"))
    )


def extract_candidates(data: Any) -> list[Any]:
    """
    Normalize any accepted payload shape to a list of recipe candidates.

    Raises:
        MalformedDocumentError: If the payload matches none of the shapes
    """
    if is_structured_document(data):
        recipes = data["recipes"]
        if not isinstance(recipes, list):
            raise MalformedDocumentError("Structured export 'recipes' must be an array")
        index = data["index"]
        if isinstance(index, dict) and isinstance(index.get("recipes"), list):
            logger.debug("Index contains %d recipes", len(index["recipes"]))
        return recipes
    if isinstance(data, list):
        return data
    if validate_recipe(data) is not None:
        return [data]
    raise MalformedDocumentError()


def parse_document(payload: bytes | str) -> Any:
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(f"Document is not UTF-8: {e}") from e
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"Document is not valid JSON: {e}") from e


def import_recipes(payload: bytes | str) -> ImportOutcome:
    try:
        candidates = extract_candidates(parse_document(payload))
    except MalformedDocumentError as e:
        logger.error("Error parsing recipes JSON: %s", e)
        return ImportOutcome(
            records=[],
            notice=Notice(NoticeLevel.ERROR, "Failed to parse recipes file"),
            error=e,
        )

    records = [r for r in (validate_recipe(c) for c in candidates) if r is not None]
    invalid = len(candidates) - len(records)

    if not records:
        return ImportOutcome(
            records=[],
            notice=Notice(NoticeLevel.ERROR, "No valid recipes found in file"),
            error=NoValidRecipesError("file", skipped=invalid),
        )

    logger.info("Successfully imported %d recipes from JSON", len(records))
    if invalid:
        return ImportOutcome(
            records=records,
            notice=Notice(NoticeLevel.WARNING, f"{invalid} invalid recipes skipped"),
        )
    return ImportOutcome(
        records=records,
        notice=Notice(NoticeLevel.SUCCESS, f"Imported {len(records)} recipes from file"),
    )
