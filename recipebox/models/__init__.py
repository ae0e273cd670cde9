"""
RecipeBox — ORM Models Package

Importing this package registers every table on `Base.metadata`
(used by create_all at startup and by Alembic autogenerate).
"""

from recipebox.models.app_config import AppConfiguration
from recipebox.models.recipe import (
    Recipe,
    RecipeImage,
    RecipeLink,
    RecipeNote,
    RecipeRating,
    RecipeTag,
)
from recipebox.models.user import (
    AppUser,
    AppUserFavoriteTag,
    AppUserSettings,
    SearchFilterField,
    SearchFilterRecord,
    SearchFilterState,
    SearchFilterTag,
)

__all__ = [
    "AppConfiguration",
    "AppUser",
    "AppUserFavoriteTag",
    "AppUserSettings",
    "Recipe",
    "RecipeImage",
    "RecipeLink",
    "RecipeNote",
    "RecipeRating",
    "RecipeTag",
    "SearchFilterField",
    "SearchFilterRecord",
    "SearchFilterState",
    "SearchFilterTag",
]
