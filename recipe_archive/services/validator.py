"""
Structural validation of incoming recipe documents.

A candidate either validates completely or is rejected; there is no partial
acceptance. Validation backfills missing collection fields on the candidate
itself, so callers get a fully populated record back.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from recipe_archive.app.domain.errors import InvalidRecipeError
from recipe_archive.app.domain.models import RecipeRecord
from recipe_archive.services.categories import (
    ARRAY_FIELDS,
    OPTIONAL_ARRAY_FIELDS,
    VALID_CATEGORIES,
    is_valid_category,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "category")


def _check_step(index: int, step: Any) -> None:
    if not isinstance(step, dict):
        raise InvalidRecipeError(f"walkthrough[{index}]", "step must be an object")
    if not step.get("step"):
        raise InvalidRecipeError(f"walkthrough[{index}].step", "missing step label")
    for key in ("config", "media"):
        if not isinstance(step.get(key), list):
            raise InvalidRecipeError(f"walkthrough[{index}].{key}", "must be a list")


def validate_or_raise(candidate: Any) -> RecipeRecord:
    """
    Validate ``candidate`` and return it, normalized in place.

    Raises:
        InvalidRecipeError: naming the first offending field
    """
    if not isinstance(candidate, dict):
        raise InvalidRecipeError("recipe", "must be an object")

    for field in REQUIRED_FIELDS:
        if not candidate.get(field):
            raise InvalidRecipeError(field, "missing required field")

    if not isinstance(candidate["title"], str):
        raise InvalidRecipeError("title", "must be a string")
    if not is_valid_category(candidate["category"]):
        raise InvalidRecipeError(
            "category",
            f"'{candidate['category']}' is not one of {', '.join(VALID_CATEGORIES)}",
        )

    for field in ARRAY_FIELDS:
        if field not in candidate:
            candidate[field] = []
        elif not isinstance(candidate[field], list):
            raise InvalidRecipeError(field, "should be an array")

    for field in OPTIONAL_ARRAY_FIELDS:
        if candidate.get(field) is not None and not isinstance(candidate[field], list):
            raise InvalidRecipeError(field, "should be an array")

    for index, step in enumerate(candidate["walkthrough"]):
        _check_step(index, step)

    return candidate


def validate_recipe(candidate: Any) -> Optional[RecipeRecord]:
    """Return the normalized record, or None (with a warning logged) if invalid."""
    try:
        return validate_or_raise(candidate)
    except InvalidRecipeError as e:
        logger.warning("Recipe rejected: %s", e)
        return None
