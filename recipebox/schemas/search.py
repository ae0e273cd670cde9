"""
RecipeBox — Search Schemas
==========================

What:  The search filter, its enums, and the compact recipe rows it returns.
Who:   Built by GET /api/v1/recipes from query params, persisted as saved
       filters, and consumed by SearchService.

Enum policy:
    SortBy / SortDir are NOT validated as enums on the way in.
    Unknown sort values are legal and fall back to name ascending, so they
    are kept as plain strings and normalised by the search service.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class RecipeState(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class SearchField(str, Enum):
    NAME = "name"
    INGREDIENTS = "ingredients"
    DIRECTIONS = "directions"


# Fields the text predicate can target, in SQL emission order
SUPPORTED_SEARCH_FIELDS = (SearchField.NAME, SearchField.INGREDIENTS, SearchField.DIRECTIONS)


class SortBy(str, Enum):
    NAME = "name"
    ID = "id"
    CREATED = "created"
    MODIFIED = "modified"
    RATING = "rating"
    RANDOM = "random"


class SortDir(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SearchFilter(BaseModel):
    """
    What:  Everything that narrows and orders a recipe search.

    Fields:
        query:         Free text; empty disables the text predicate
        fields:        Which columns the text is matched against (empty = all)
        tags:          Recipe must carry at least one of these
        with_pictures: True = has images, False = has none, None = don't care
        states:        Allowed states (empty = active only)
        sort_by / sort_dir: Ordering; unknown values fall back to name / asc
    """
    query: str = Field(default="", description="Free-text search")
    fields: List[str] = Field(default_factory=list, description="Fields to search")
    tags: List[str] = Field(default_factory=list, description="Match any of these tags")
    with_pictures: Optional[bool] = Field(default=None, description="Picture presence filter")
    states: List[RecipeState] = Field(default_factory=list, description="Allowed recipe states")
    sort_by: str = Field(default=SortBy.NAME.value, description="Sort key")
    sort_dir: str = Field(default=SortDir.ASC.value, description="Sort direction")


class RecipeCompact(BaseModel):
    """Summary row returned by searches and link listings."""
    id: int
    name: str
    state: RecipeState
    created_at: datetime
    modified_at: datetime
    average_rating: float = Field(default=0.0, description="0 when unrated")
    thumbnail_url: str = Field(default="", description="Main image thumbnail, '' when none")

    model_config = {"from_attributes": True}


class SearchResult(BaseModel):
    recipes: List[RecipeCompact] = Field(description="The requested page")
    total: int = Field(description="Matches across all pages")


class SavedSearchFilter(SearchFilter):
    """A SearchFilter stored under a name for one user."""
    id: Optional[int] = None
    user_id: Optional[int] = None
    name: str = Field(min_length=1, description="Display name")


class SavedSearchFilterCompact(BaseModel):
    id: int
    user_id: int
    name: str

    model_config = {"from_attributes": True}
