"""
Cleaning of recipe records before they leave the application.
"""
from __future__ import annotations

import copy
import re
from typing import Any, Optional

from recipe_archive.app.domain.models import Attachment, RecipeRecord

IMAGES_DIR = "images"
EXECUTABLES_DIR = "downloadExecutables"

RUNTIME_KEYS = ("displayUrl", "imageKey")
INTERNAL_KEYS = ("internalId", "editorState", "__folderId")

_ASSET_IMAGE_PATH = re.compile(r"assets/recipes/[^/]+/(images/[^/]+)$")
_ASSET_EXECUTABLE_PATH = re.compile(r"assets/recipes/[^/]+/(downloadExecutables/[^/]+)$")


def normalize_image_url(url: str) -> str:
    """``assets/recipes/<folder>/images/x.png`` -> ``images/x.png``; anything else unchanged."""
    if not url or url.startswith(f"{IMAGES_DIR}/"):
        return url
    match = _ASSET_IMAGE_PATH.search(url)
    return match.group(1) if match else url


def normalize_executable_path(path: str) -> str:
    if not path or path.startswith(f"{EXECUTABLES_DIR}/"):
        return path
    match = _ASSET_EXECUTABLE_PATH.search(path)
    return match.group(1) if match else path


def _clean_media(items: Any) -> None:
    if not isinstance(items, list):
        return
    for item in items:
        if not isinstance(item, dict):
            continue
        for key in RUNTIME_KEYS:
            item.pop(key, None)
        if isinstance(item.get("url"), str):
            item["url"] = normalize_image_url(item["url"])


def clean_recipe_for_export(recipe: RecipeRecord) -> RecipeRecord:
    """
    Deep copy of ``recipe`` with runtime and editor-only keys removed and
    attachment paths made relative to the recipe folder.
    """
    cleaned = copy.deepcopy(recipe)
    for key in INTERNAL_KEYS:
        cleaned.pop(key, None)

    walkthrough = cleaned.get("walkthrough")
    if isinstance(walkthrough, list):
        for step in walkthrough:
            if isinstance(step, dict):
                _clean_media(step.get("media"))

    _clean_media(cleaned.get("generalImages"))

    executables = cleaned.get("downloadableExecutables")
    if isinstance(executables, list):
        for executable in executables:
            if isinstance(executable, dict) and isinstance(executable.get("filePath"), str):
                executable["filePath"] = normalize_executable_path(executable["filePath"])

    return cleaned


def extract_attachment_id(file_name: str) -> str:
    """
    Blob store key for an attachment file name.

    ``img_1690000000_ab12_myphoto.png`` -> ``img_1690000000_ab12``;
    names with fewer than three ``_`` segments are used as-is.
    """
    parts = file_name.split("_")
    if len(parts) >= 3:
        return "_".join(parts[:3])
    return file_name


def image_attachment(url: Any) -> Optional[Attachment]:
    """Attachment for an ``images/...`` media URL; other URLs are not attachments."""
    if not isinstance(url, str):
        return None
    relative_path = normalize_image_url(url)
    if not relative_path.startswith(f"{IMAGES_DIR}/"):
        return None
    file_name = relative_path.rsplit("/", 1)[-1]
    if not file_name:
        return None
    return Attachment(
        file_key=extract_attachment_id(file_name),
        file_name=file_name,
        relative_path=relative_path,
        is_image=True,
    )


def executable_attachment(file_path: Any) -> Optional[Attachment]:
    if not isinstance(file_path, str) or not file_path:
        return None
    relative_path = normalize_executable_path(file_path)
    file_key = relative_path.removeprefix(f"{EXECUTABLES_DIR}/")
    file_name = file_key.rsplit("/", 1)[-1]
    if not file_name:
        return None
    return Attachment(
        file_key=file_key,
        file_name=file_name,
        relative_path=relative_path,
        is_image=False,
    )


def recipe_attachments(recipe: RecipeRecord) -> list[Attachment]:
    """
    Every attachment a recipe references, in document order: walkthrough
    images first, then general images, then executable descriptors.
    """
    attachments: list[Attachment] = []

    for step in recipe.get("walkthrough") or []:
        if not isinstance(step, dict):
            continue
        for media in step.get("media") or []:
            if isinstance(media, dict) and media.get("type") == "image":
                attachment = image_attachment(media.get("url"))
                if attachment:
                    attachments.append(attachment)

    for image in recipe.get("generalImages") or []:
        if isinstance(image, dict):
            attachment = image_attachment(image.get("url"))
            if attachment:
                attachments.append(attachment)

    for executable in recipe.get("downloadableExecutables") or []:
        if isinstance(executable, dict):
            attachment = executable_attachment(executable.get("filePath"))
            if attachment:
                attachments.append(attachment)

    return attachments


IMAGE_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}


def image_mime_type(file_name: str) -> str:
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return IMAGE_MIME_TYPES.get(ext, "image/png")
