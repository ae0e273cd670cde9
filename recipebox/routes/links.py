"""RecipeBox — Recipe link routes. A link shows up from both recipes."""

from typing import List

from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.dependencies import get_current_user, require_editor
from recipebox.routes import API_PREFIX
from recipebox.schemas.search import RecipeCompact
from recipebox.schemas.user import UserResponse
from recipebox.services.link_service import link_service

router = APIRouter(prefix=f"{API_PREFIX}/recipes/{{recipe_id}}/links", tags=["Links"])


@router.get("", response_model=List[RecipeCompact], summary="List linked recipes")
async def list_links(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> List[RecipeCompact]:
    return await link_service.list(db, recipe_id)


@router.post("", status_code=201, summary="Link another recipe")
async def add_link(
    recipe_id: int,
    response: Response,
    dest_recipe_id: int = Body(..., description="Id of the recipe to link to"),
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await link_service.create(db, recipe_id, dest_recipe_id)
    return Response(
        status_code=201,
        headers={"Location": f"{API_PREFIX}/recipes/{recipe_id}/links/{dest_recipe_id}"},
    )


@router.delete("/{dest_recipe_id}", status_code=204, summary="Remove a link")
async def delete_link(
    recipe_id: int,
    dest_recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await link_service.delete(db, recipe_id, dest_recipe_id)
    return Response(status_code=204)
