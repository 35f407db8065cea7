from __future__ import annotations

import asyncio
import io
import struct
import zipfile

from recipe_archive.app.domain.errors import MalformedArchiveError, NoValidRecipesError
from recipe_archive.app.domain.models import ExportProgress, NoticeLevel
from recipe_archive.app.infra.storage.base import StoredFile
from recipe_archive.app.infra.storage.memory_provider import InMemoryFileStore
from recipe_archive.services.file_resolver import FileResolver
from recipe_archive.services.packager import ArchivePackager
from recipe_archive.services.unpacker import ArchiveUnpacker, list_folders


def _unpack(archive, file_store, **kwargs):
    return asyncio.run(ArchiveUnpacker().unpack(archive, file_store, **kwargs))


def _recipe_json(recipe_id: str, title: str) -> dict:
    return {"id": recipe_id, "title": title, "category": "Batch"}


def _corrupt_entry(archive: bytes, name: str) -> bytes:
    """Overwrite the first compressed byte of ``name`` with an invalid deflate block."""
    info = zipfile.ZipFile(io.BytesIO(archive)).getinfo(name)
    name_len, extra_len = struct.unpack("<HH", archive[info.header_offset + 26:info.header_offset + 30])
    data_start = info.header_offset + 30 + name_len + extra_len
    return archive[:data_start] + b"\xff" + archive[data_start + 1:]


class TestRoundTrip:
    def test_minimal_recipe_round_trips_with_defaults(self, file_store) -> None:
        recipe = {"id": "min", "title": "Minimal", "category": "Batch"}
        outcome = asyncio.run(ArchivePackager(FileResolver()).pack([recipe], file_store))

        result = _unpack(outcome.archive, InMemoryFileStore())

        assert len(result.records) == 1
        imported = result.records[0]
        assert (imported["id"], imported["title"], imported["category"]) == ("min", "Minimal", "Batch")
        assert imported["walkthrough"] == []
        assert imported["keywords"] == []
        assert result.notice.level == NoticeLevel.SUCCESS

    def test_attachments_are_restored(self, make_recipe, file_store) -> None:
        asyncio.run(file_store.store_image("img_1690000000_ab12", StoredFile("x.png", b"PNG", "image/png")))
        asyncio.run(file_store.store_json_file("nightly-cleanup.json", StoredFile("j", b"{}", "application/json")))
        archive = asyncio.run(ArchivePackager(FileResolver()).pack([make_recipe()], file_store)).archive
        target = InMemoryFileStore()

        result = _unpack(archive, target)

        assert result.records[0]["walkthrough"][0]["step"] == "Create the job"
        image = target.images["img_1690000000_ab12"]
        assert image.content == b"PNG"
        assert image.name == "img_1690000000_ab12_setup.png"
        assert image.content_type == "image/png"
        assert target.json_files["nightly-cleanup.json"].content == b"{}"


class TestSkipping:
    def test_folder_without_recipe_json_is_skipped(self, make_zip, file_store) -> None:
        archive = make_zip({
            "one/recipe.json": _recipe_json("1", "One"),
            "two/recipe.json": _recipe_json("2", "Two"),
            "three/images/logo.png": b"PNG",
        })

        result = _unpack(archive, file_store)

        assert [r["id"] for r in result.records] == ["1", "2"]
        assert result.skipped == ["three"]
        assert result.ok
        assert result.notice.level == NoticeLevel.SUCCESS
        assert result.error is None
        assert file_store.images == {}

    def test_invalid_and_unreadable_recipes_are_skipped(self, make_zip, file_store) -> None:
        archive = make_zip({
            "good/recipe.json": _recipe_json("1", "Good"),
            "bad/recipe.json": {"id": "2", "title": "Bad", "category": "Unknown"},
            "broken/recipe.json": "{not json",
        })

        result = _unpack(archive, file_store)

        assert [r["id"] for r in result.records] == ["1"]
        assert sorted(result.skipped) == ["bad", "broken"]

    def test_corrupt_entry_skips_only_its_folder(self, make_zip, file_store) -> None:
        archive = make_zip({
            "bad/recipe.json": _recipe_json("2", "Bad"),
            "good/recipe.json": _recipe_json("1", "Good"),
        })

        result = _unpack(_corrupt_entry(archive, "bad/recipe.json"), file_store)

        assert [r["id"] for r in result.records] == ["1"]
        assert result.skipped == ["bad"]
        assert result.notice.level == NoticeLevel.SUCCESS
        assert result.error is None

    def test_inactive_folder_is_excluded(self, make_zip, file_store) -> None:
        archive = make_zip({
            "index.json": {"recipes": [
                {"folderId": "kept", "active": True},
                {"folderId": "retired", "active": False},
            ]},
            "kept/recipe.json": _recipe_json("1", "Kept"),
            "retired/recipe.json": _recipe_json("2", "Retired"),
            "retired/images/img_1_2_a.png": b"PNG",
        })

        result = _unpack(archive, file_store)

        assert [r["id"] for r in result.records] == ["1"]
        assert result.skipped == []
        assert file_store.images == {}

    def test_unparseable_index_is_ignored(self, make_zip, file_store) -> None:
        archive = make_zip({
            "index.json": "{oops",
            "kept/recipe.json": _recipe_json("1", "Kept"),
        })

        assert len(_unpack(archive, file_store).records) == 1

    def test_platform_metadata_is_ignored(self) -> None:
        names = ["__MACOSX/a/._recipe.json", "index.json", "a/recipe.json", "a/images/x.png", "b/"]

        assert list_folders(names) == ["a", "b"]


class TestFailures:
    def test_not_a_zip(self, file_store) -> None:
        result = _unpack(b"definitely not a zip", file_store)

        assert result.records == []
        assert result.notice.level == NoticeLevel.ERROR
        assert isinstance(result.error, MalformedArchiveError)

    def test_no_valid_recipes(self, make_zip, file_store) -> None:
        archive = make_zip({"only/readme.txt": "nothing here"})

        result = _unpack(archive, file_store)

        assert not result.ok
        assert result.notice.message == "No valid recipes found in ZIP file"
        assert isinstance(result.error, NoValidRecipesError)

    def test_progress_reaches_total(self, make_zip, file_store) -> None:
        archive = make_zip({
            "one/recipe.json": _recipe_json("1", "One"),
            "two/recipe.json": _recipe_json("2", "Two"),
        })
        ticks: list[ExportProgress] = []

        _unpack(archive, file_store, on_progress=ticks.append)

        assert [t.current for t in ticks] == [1, 2, 2]
        assert ticks[-1].step == "Import complete"
