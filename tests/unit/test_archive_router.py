from __future__ import annotations

import io
import json
import zipfile

import pytest
from fastapi.testclient import TestClient

from recipe_archive.app.deps import get_file_store, get_packager
from recipe_archive.app.infra.storage.memory_provider import InMemoryFileStore
from recipe_archive.app.main import app
from recipe_archive.services.file_resolver import FileResolver
from recipe_archive.services.packager import ArchivePackager


@pytest.fixture
def store() -> InMemoryFileStore:
    return InMemoryFileStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_file_store] = lambda: store
    app.dependency_overrides[get_packager] = lambda: ArchivePackager(FileResolver())
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestExportRoute:
    def test_returns_zip(self, client, make_recipe) -> None:
        response = client.post("/v1/archive/export", json={"recipes": [make_recipe()]})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert "recipes_export_" in response.headers["content-disposition"]
        assert response.headers["x-notice"].startswith("1 edited recipes exported as ZIP")
        names = zipfile.ZipFile(io.BytesIO(response.content)).namelist()
        assert "nightly-cleanup/recipe.json" in names

    def test_export_json(self, client, make_recipe) -> None:
        response = client.post("/v1/archive/export-json", json={"recipes": [make_recipe()]})

        assert response.status_code == 200
        assert json.loads(response.content)["metadata"]["recipeCount"] == 1


class TestImportRoute:
    def test_returns_records(self, client, make_zip) -> None:
        archive = make_zip({"a/recipe.json": {"id": "1", "title": "A", "category": "Triggers"}})

        response = client.post("/v1/archive/import", content=archive)

        assert response.status_code == 200
        body = response.json()
        assert [r["id"] for r in body["recipes"]] == ["1"]
        assert body["notice"]["level"] == "success"

    def test_bad_zip(self, client) -> None:
        response = client.post("/v1/archive/import", content=b"not a zip")

        assert response.status_code == 400
        assert response.json()["detail"] == "Failed to import from ZIP file"

    def test_no_valid_recipes(self, client, make_zip) -> None:
        archive = make_zip({"a/readme.txt": "hello"})

        response = client.post("/v1/archive/import", content=archive)

        assert response.status_code == 422

    def test_empty_body(self, client) -> None:
        assert client.post("/v1/archive/import", content=b"").status_code == 400

    def test_import_json(self, client) -> None:
        payload = json.dumps([{"id": "1", "title": "A", "category": "Data List"}])

        response = client.post("/v1/archive/import-json", content=payload)

        assert response.status_code == 200
        assert response.json()["recipes"][0]["walkthrough"] == []


class TestHealth:
    def test_health(self, client) -> None:
        assert client.get("/health").json() == {"ok": True}
