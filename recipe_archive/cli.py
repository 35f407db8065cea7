# recipe_archive/cli.py
"""
Command-line export/import of recipe archives against local directories.

    recipe-archive export recipes.json --out recipes.zip --store .recipe-store --bundle ./web
    recipe-archive import recipes.zip --store .recipe-store --out imported.json
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from recipe_archive.app.config import get_settings
from recipe_archive.app.domain.errors import MalformedDocumentError
from recipe_archive.app.domain.models import ExportProgress, NoticeLevel
from recipe_archive.app.infra.bundle.static_bundle import DirectoryStaticBundle, EmptyStaticBundle
from recipe_archive.app.infra.storage.local_provider import LocalFileStore
from recipe_archive.services.file_resolver import FileResolver
from recipe_archive.services.json_io import extract_candidates, parse_document
from recipe_archive.services.packager import ArchivePackager, dump_json
from recipe_archive.services.unpacker import ArchiveUnpacker

logger = logging.getLogger("recipe-archive")


def _print_progress(progress: ExportProgress) -> None:
    print(f"[{progress.percentage:3d}%] {progress.step}", file=sys.stderr)


def run_export(args: argparse.Namespace) -> int:
    config = get_settings()
    try:
        recipes = extract_candidates(parse_document(Path(args.recipes).read_bytes()))
    except (OSError, MalformedDocumentError) as e:
        print(f"Failed to read recipes: {e}")
        return 1
    bundle = DirectoryStaticBundle(args.bundle) if args.bundle else EmptyStaticBundle()
    packager = ArchivePackager(
        FileResolver(bundle, config.FOLDER_ID_OVERRIDES),
        compression_level=config.EXPORT_COMPRESSION_LEVEL,
    )

    outcome = asyncio.run(
        packager.pack(recipes, LocalFileStore(args.store), on_progress=_print_progress)
    )
    print(outcome.notice.message)
    if not outcome.ok:
        return 1

    target = Path(args.out) if args.out else Path(outcome.filename)
    target.write_bytes(outcome.archive)
    for entry in outcome.missing_attachments:
        logger.warning("Missing attachment: %s", entry)
    logger.info("Archive written to %s", target)
    return 0


def run_import(args: argparse.Namespace) -> int:
    try:
        archive = Path(args.archive).read_bytes()
    except OSError as e:
        print(f"Failed to read archive: {e}")
        return 1

    unpacker = ArchiveUnpacker()
    outcome = asyncio.run(
        unpacker.unpack(
            archive,
            LocalFileStore(args.store),
            on_progress=_print_progress,
        )
    )
    print(outcome.notice.message)
    if outcome.notice.level == NoticeLevel.ERROR:
        return 1

    Path(args.out).write_text(dump_json(outcome.records), encoding="utf-8")
    logger.info("Accepted recipes written to %s", args.out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="recipe-archive", description="Recipe archive import/export")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Pack recipes into a ZIP archive")
    export.add_argument("recipes", help="JSON file: recipe array, single recipe or structured export")
    export.add_argument("--out", help="Archive path (default: recipes_export_<date>.zip)")
    export.add_argument("--store", default=".recipe-store", help="Local file store directory")
    export.add_argument("--bundle", help="Directory containing assets/recipes/")
    export.set_defaults(handler=run_export)

    imp = sub.add_parser("import", help="Unpack a ZIP archive")
    imp.add_argument("archive", help="ZIP archive to import")
    imp.add_argument("--store", default=".recipe-store", help="Local file store directory")
    imp.add_argument("--out", default="imported_recipes.json", help="Where to write accepted recipes")
    imp.set_defaults(handler=run_import)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
