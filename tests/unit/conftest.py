from __future__ import annotations

import io
import json
import zipfile
from typing import Any, Callable

import pytest

from recipe_archive.app.infra.storage.memory_provider import InMemoryFileStore


def build_recipe(**overrides: Any) -> dict[str, Any]:
    recipe: dict[str, Any] = {
        "id": "nightly-cleanup",
        "title": "Nightly Cleanup",
        "category": "Batch",
        "DSPVersions": ["23.1"],
        "overview": "Purge stale rows every night.",
        "generalImages": [],
        "prerequisites": [],
        "walkthrough": [
            {
                "step": "Create the job",
                "config": [{"field": "Schedule", "value": "0 2 * * *"}],
                "media": [
                    {"type": "image", "url": "images/img_1690000000_ab12_setup.png", "alt": "setup"},
                    {"type": "link", "url": "https://example.com/docs", "alt": "docs"},
                ],
            }
        ],
        "downloadableExecutables": [
            {"title": "Job definition", "filePath": "downloadExecutables/nightly-cleanup.json"}
        ],
        "relatedRecipes": [],
        "keywords": ["batch", "cleanup"],
    }
    recipe.update(overrides)
    return recipe


def build_zip(files: dict[str, Any]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            if isinstance(content, (dict, list)):
                content = json.dumps(content)
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_recipe() -> Callable[..., dict[str, Any]]:
    return build_recipe


@pytest.fixture
def make_zip() -> Callable[[dict[str, Any]], bytes]:
    return build_zip


@pytest.fixture
def file_store() -> InMemoryFileStore:
    return InMemoryFileStore()
