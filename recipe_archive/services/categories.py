from typing import Literal, get_args

RecipeCategory = Literal["Batch", "Triggers", "Data List", "Action Button", "Data Loader"]

VALID_CATEGORIES: tuple[str, ...] = get_args(RecipeCategory)

# Collection fields every stored recipe carries, defaulted to [] when absent
ARRAY_FIELDS: tuple[str, ...] = (
    "DSPVersions",
    "prerequisites",
    "walkthrough",
    "downloadableExecutables",
    "relatedRecipes",
    "keywords",
)

OPTIONAL_ARRAY_FIELDS: tuple[str, ...] = ("generalImages",)


def is_valid_category(value: object) -> bool:
    return isinstance(value, str) and value in VALID_CATEGORIES
