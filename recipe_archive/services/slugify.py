# recipe_archive/services/slugify.py
from __future__ import annotations

import logging
import re
from typing import AbstractSet, Iterable, Optional

from recipe_archive.app.domain.models import RecipeRecord

logger = logging.getLogger(__name__)

FOLDER_NAME_MAX_LENGTH = 50
FOLDER_NAME_FALLBACK = "unnamed-recipe"

_ILLEGAL_PATH_CHARS = re.compile(r'[/\\?<>:*|"]')
_NON_WORD = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def sanitize_file_name(
    text: str,
    max_length: Optional[int] = None,
    fallback: str = "unnamed",
) -> str:
    """Turn text into a lower-case, hyphenated name that is safe on any filesystem."""
    if not text or not isinstance(text, str):
        return fallback

    t = text.strip().lower()
    t = _ILLEGAL_PATH_CHARS.sub("", t)
    t = _NON_WORD.sub("", t)
    t = _WHITESPACE.sub("-", t)
    t = _HYPHENS.sub("-", t).strip("-")
    if max_length and max_length > 0:
        t = t[:max_length]
    return t or fallback


def generate_folder_name(
    title: str,
    used: Optional[AbstractSet[str]] = None,
    max_length: int = FOLDER_NAME_MAX_LENGTH,
) -> str:
    """
    Slug for ``title`` that does not collide with ``used``.

    Collisions get ``-2``, ``-3``, ... appended. ``used`` is only read.
    """
    base = sanitize_file_name(title, max_length=max_length, fallback=FOLDER_NAME_FALLBACK)
    if not used:
        return base

    name = base
    counter = 2
    while name in used:
        name = f"{base}-{counter}"
        counter += 1
    return name


def allocate_folder_names(recipes: Iterable[RecipeRecord]) -> dict[str, str]:
    """
    Map recipe id -> folder name for one export run, in input order.

    Recipes without a title fall back to their id as the folder key.
    Recipes without an id cannot be addressed and are left out.
    """
    used: set[str] = set()
    folders: dict[str, str] = {}
    for recipe in recipes:
        recipe_id = recipe.get("id")
        if not recipe_id or recipe_id in folders:
            continue
        title = recipe.get("title")
        if title:
            name = generate_folder_name(title, used)
        else:
            name = generate_folder_name(str(recipe_id), used)
            logger.debug("Recipe %s has no title, using its id as folder name", recipe_id)
        used.add(name)
        folders[recipe_id] = name
    return folders
