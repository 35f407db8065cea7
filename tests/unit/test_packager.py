from __future__ import annotations

import asyncio
import io
import json
import zipfile

from recipe_archive.app.domain.errors import ArchiveBackendUnavailableError
from recipe_archive.app.domain.models import ExportProgress, NoticeLevel
from recipe_archive.app.infra.storage.base import StoredFile
from recipe_archive.services.file_resolver import FileResolver
from recipe_archive.services.packager import ArchivePackager, build_index


def _open(archive: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(archive))


def _index(archive: bytes) -> list[dict]:
    return json.loads(_open(archive).read("index.json"))["recipes"]


def _pack(recipes, file_store, **kwargs):
    return asyncio.run(ArchivePackager(FileResolver()).pack(recipes, file_store, **kwargs))


class TestPackLayout:
    def test_writes_recipe_attachments_index_and_instructions(self, make_recipe, file_store) -> None:
        asyncio.run(file_store.store_image("img_1690000000_ab12", StoredFile("x.png", b"PNG", "image/png")))
        asyncio.run(file_store.store_json_file("nightly-cleanup.json", StoredFile("j", b"{}", "application/json")))

        outcome = _pack([make_recipe()], file_store)

        assert outcome.ok
        assert outcome.notice.level == NoticeLevel.SUCCESS
        assert outcome.filename.startswith("recipes_export_") and outcome.filename.endswith(".zip")
        names = set(_open(outcome.archive).namelist())
        assert names == {
            "index.json",
            "DEPLOYMENT_INSTRUCTIONS.txt",
            "nightly-cleanup/recipe.json",
            "nightly-cleanup/images/img_1690000000_ab12_setup.png",
            "nightly-cleanup/downloadExecutables/nightly-cleanup.json",
        }
        zf = _open(outcome.archive)
        assert zf.read("nightly-cleanup/images/img_1690000000_ab12_setup.png") == b"PNG"
        written = json.loads(zf.read("nightly-cleanup/recipe.json"))
        assert written["title"] == "Nightly Cleanup"
        assert "Nightly Cleanup (nightly-cleanup)" in zf.read("DEPLOYMENT_INSTRUCTIONS.txt").decode()

    def test_recipe_json_is_pretty_printed(self, make_recipe, file_store) -> None:
        outcome = _pack([make_recipe()], file_store)

        text = _open(outcome.archive).read("nightly-cleanup/recipe.json").decode()

        assert text.startswith('{\n  "id"')

    def test_missing_attachments_are_skipped(self, make_recipe, file_store) -> None:
        outcome = _pack([make_recipe()], file_store)

        assert outcome.ok
        assert set(outcome.missing_attachments) == {
            "nightly-cleanup/images/img_1690000000_ab12_setup.png",
            "nightly-cleanup/downloadExecutables/nightly-cleanup.json",
        }
        assert "nightly-cleanup/recipe.json" in _open(outcome.archive).namelist()


class TestIndex:
    def test_index_lists_exported_folders_sorted(self, make_recipe, file_store) -> None:
        recipes = [
            make_recipe(id="b", title="Zeta"),
            make_recipe(id="a", title="Alpha"),
            make_recipe(id="c", title="Alpha"),
        ]

        outcome = _pack(recipes, file_store)

        assert _index(outcome.archive) == [
            {"folderId": "alpha", "active": True},
            {"folderId": "alpha-2", "active": True},
            {"folderId": "zeta", "active": True},
        ]

    def test_index_ignores_wider_recipe_set(self, make_recipe, file_store) -> None:
        everything = [make_recipe(id=str(i), title=f"Recipe {i}") for i in range(5)]

        outcome = _pack(everything[:2], file_store, all_recipes_for_index=everything)

        assert len(_index(outcome.archive)) == 2
        assert outcome.exported_count == 2
        assert outcome.index_total == 5
        assert "index.json containing 5 total recipes" in outcome.notice.message

    def test_active_states(self, make_recipe, file_store) -> None:
        outcome = _pack([make_recipe()], file_store, active_states={"nightly-cleanup": False})

        assert _index(outcome.archive) == [{"folderId": "nightly-cleanup", "active": False}]

    def test_invalid_recipes_are_not_exported(self, make_recipe, file_store) -> None:
        recipes = [make_recipe(), make_recipe(id="bad", title="Bad", category="Unknown")]

        outcome = _pack(recipes, file_store)

        assert outcome.exported_count == 1
        assert [e["folderId"] for e in _index(outcome.archive)] == ["nightly-cleanup"]

    def test_same_input_same_index(self, make_recipe, file_store) -> None:
        recipes = [make_recipe(id="a", title="Sync"), make_recipe(id="b", title="Sync")]

        first = _open(_pack(recipes, file_store).archive).read("index.json")
        second = _open(_pack(recipes, file_store).archive).read("index.json")

        assert first == second

    def test_build_index_defaults_active(self) -> None:
        entries = build_index({"x": "b-folder", "y": "a-folder"}, {"x": False})

        assert [(e.folderId, e.active) for e in entries] == [("a-folder", True), ("b-folder", False)]


class TestProgressAndFailures:
    def test_progress_ticks(self, make_recipe, file_store) -> None:
        ticks: list[ExportProgress] = []

        _pack([make_recipe(id="a"), make_recipe(id="b", title="Other")], file_store, on_progress=ticks.append)

        assert [t.current for t in ticks] == [1, 2, 3, 4]
        assert all(t.total == 4 for t in ticks)
        assert ticks[-1].percentage == 100

    def test_missing_file_store_aborts(self, make_recipe) -> None:
        outcome = _pack([make_recipe()], None)

        assert not outcome.ok
        assert outcome.archive is None
        assert outcome.notice.level == NoticeLevel.ERROR
        assert isinstance(outcome.error, ArchiveBackendUnavailableError)

    def test_does_not_mutate_input(self, make_recipe, file_store) -> None:
        recipe = {"id": "m", "title": "Minimal", "category": "Batch", "internalId": "tmp"}

        _pack([recipe], file_store)

        assert recipe == {"id": "m", "title": "Minimal", "category": "Batch", "internalId": "tmp"}
