"""
RecipeBox — Recipe Note Route Handlers
======================================

What:  List, add, edit and delete the notes on a recipe.

Body ids are optional. When a client does send `id` or `recipe_id`, it
must agree with the path, otherwise the request is rejected with 400.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.dependencies import get_current_user, require_editor
from recipebox.routes import API_PREFIX, ensure_matching_id
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.recipe import NoteRequest, NoteResponse
from recipebox.schemas.user import UserResponse
from recipebox.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/recipes/{{recipe_id}}/notes", tags=["Notes"])


@router.get("", response_model=List[NoteResponse], summary="List notes, newest first")
async def list_notes(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> List[NoteResponse]:
    return await note_service.list(db, recipe_id)


@router.post(
    "",
    status_code=201,
    response_model=NoteResponse,
    responses={
        400: {"description": "Body recipe_id does not match path", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
    },
    summary="Add a note",
)
async def add_note(
    recipe_id: int,
    data: NoteRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> NoteResponse:
    ensure_matching_id(data.recipe_id, recipe_id, field="recipe_id")
    note = await note_service.create(db, recipe_id, data.text)
    response.headers["Location"] = f"{API_PREFIX}/recipes/{recipe_id}/notes/{note.id}"
    return note


@router.put("/{note_id}", status_code=204, summary="Edit a note")
async def save_note(
    recipe_id: int,
    note_id: int,
    data: NoteRequest,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    ensure_matching_id(data.recipe_id, recipe_id, field="recipe_id")
    ensure_matching_id(data.id, note_id)
    await note_service.update(db, recipe_id, note_id, data.text)
    return Response(status_code=204)


@router.delete("/{note_id}", status_code=204, summary="Delete a note")
async def delete_note(
    recipe_id: int,
    note_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await note_service.delete(db, recipe_id, note_id)
    return Response(status_code=204)
