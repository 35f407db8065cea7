from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class ExportRequest(BaseModel):
    recipes: list[dict[str, Any]] = Field(..., description="Recipes to export")
    allRecipesForIndex: Optional[list[dict[str, Any]]] = Field(
        None, description="Wider recipe set, only used for the reported total"
    )
    activeStates: Optional[dict[str, bool]] = Field(
        None, description="Recipe id -> active flag written to index.json"
    )


class NoticeSchema(BaseModel):
    level: Literal["success", "warning", "error"]
    message: str


class ImportResponse(BaseModel):
    recipes: list[dict[str, Any]] = Field(default_factory=list)
    notice: NoticeSchema
    skipped: list[str] = Field(default_factory=list)

