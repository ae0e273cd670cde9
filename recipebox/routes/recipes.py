"""
RecipeBox — Recipe Route Handlers
=================================

What:  GET /recipes (search), recipe CRUD, state and rating.
Who:   Called by the front end's search, recipe view and recipe editor.

Search query parameters:
    q         free text
    fields    repeatable: name, ingredients, directions
    tags      repeatable; a recipe matches if it has any of them
    pictures  yes | no (anything else: don't care)
    states    repeatable: active, archived, deleted (default: active)
    sort/dir  see SearchService; unknown values fall back to name / asc
    page      1-based
    count     page size

The page of results is the body; the unpaged total is repeated in
X-Total-Count for list UIs that only read headers.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.dependencies import get_current_user, require_editor
from recipebox.routes import API_PREFIX, ensure_matching_id
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.recipe import RecipeRequest, RecipeResponse
from recipebox.schemas.search import RecipeState, SearchFilter, SearchResult
from recipebox.schemas.user import UserResponse
from recipebox.services.recipe_service import recipe_service
from recipebox.services.search_service import search_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/recipes", tags=["Recipes"])


def parse_pictures(value: Optional[str]) -> Optional[bool]:
    lowered = (value or "").strip().lower()
    if lowered == "yes":
        return True
    if lowered == "no":
        return False
    return None


@router.get(
    "",
    response_model=SearchResult,
    responses={400: {"description": "Invalid page or count", "model": ErrorResponse}},
    summary="Search recipes",
)
async def find_recipes(
    response: Response,
    q: str = Query(default="", description="Free-text search"),
    fields: List[str] = Query(default=[], description="Fields to search"),
    tags: List[str] = Query(default=[], description="Match any of these tags"),
    pictures: Optional[str] = Query(default=None, description="yes or no"),
    states: List[RecipeState] = Query(default=[], description="Allowed states"),
    sort: str = Query(default="name", description="name, id, created, modified, rating, random"),
    dir: str = Query(default="asc", description="asc or desc"),
    page: int = Query(default=1, description="1-based page number"),
    count: int = Query(default=20, description="Page size"),
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> SearchResult:
    search_filter = SearchFilter(
        query=q,
        fields=fields,
        tags=tags,
        with_pictures=parse_pictures(pictures),
        states=states,
        sort_by=sort,
        sort_dir=dir,
    )
    result = await search_service.find(db, search_filter, page=page, count=count)
    response.headers["X-Total-Count"] = str(result.total)
    return result


@router.post("", status_code=201, response_model=RecipeResponse, summary="Create a recipe")
async def create_recipe(
    data: RecipeRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> RecipeResponse:
    recipe = await recipe_service.create(db, data)
    response.headers["Location"] = f"{API_PREFIX}/recipes/{recipe.id}"
    return recipe


@router.get(
    "/{recipe_id}",
    response_model=RecipeResponse,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Get a recipe",
)
async def get_recipe(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> RecipeResponse:
    return await recipe_service.read(db, recipe_id)


@router.put(
    "/{recipe_id}",
    status_code=204,
    responses={400: {"description": "Body id does not match path", "model": ErrorResponse}},
    summary="Save a recipe",
)
async def save_recipe(
    recipe_id: int,
    data: RecipeRequest,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    ensure_matching_id(data.id, recipe_id)
    await recipe_service.update(db, data.model_copy(update={"id": recipe_id}))
    return Response(status_code=204)


@router.delete("/{recipe_id}", status_code=204, summary="Delete a recipe and its files")
async def delete_recipe(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await recipe_service.delete(db, recipe_id)
    return Response(status_code=204)


@router.put("/{recipe_id}/state", status_code=204, summary="Set a recipe's state")
async def set_state(
    recipe_id: int,
    state: RecipeState = Body(..., description="active, archived or deleted"),
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await recipe_service.set_state(db, recipe_id, state)
    return Response(status_code=204)


@router.get("/{recipe_id}/rating", response_model=float, summary="Get a recipe's rating")
async def get_rating(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> float:
    return await recipe_service.get_rating(db, recipe_id)


@router.put("/{recipe_id}/rating", status_code=204, summary="Rate a recipe (0 to 5)")
async def set_rating(
    recipe_id: int,
    rating: float = Body(..., description="0 to 5"),
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await recipe_service.set_rating(db, recipe_id, rating)
    return Response(status_code=204)
