# recipe_archive/app/domain/models.py
"""
Domain models for recipe archive import/export.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

# Recipes travel as plain JSON objects; validation normalizes them in place.
RecipeRecord = dict[str, Any]


class NoticeLevel(str, Enum):
    """Severity of the single user-visible message emitted per operation."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notice:
    level: NoticeLevel
    message: str


@dataclass
class ArchiveIndexEntry:
    """One entry of index.json."""
    folderId: str
    active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"folderId": self.folderId, "active": self.active}


@dataclass
class ExportProgress:
    """
    A single progress tick.

    Recreated on every report and never persisted.
    """
    step: str
    current: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.current / self.total * 100)


ProgressCallback = Callable[[ExportProgress], None]


@dataclass
class Attachment:
    """An attachment referenced by a record (image or executable descriptor)."""
    file_key: str
    file_name: str
    relative_path: str
    is_image: bool = True


@dataclass
class ExportOutcome:
    """Result of a ZIP export."""
    archive: Optional[bytes]
    filename: str
    exported_count: int
    index_total: int
    notice: Notice
    missing_attachments: list[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.archive is not None


@dataclass
class ImportOutcome:
    """Result of a ZIP or JSON import."""
    records: list[RecipeRecord]
    notice: Notice
    skipped: list[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return bool(self.records)
