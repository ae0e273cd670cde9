"""
RecipeBox — Note Service
========================

What:  Free-text notes attached to a recipe ("halve the salt next time").
How:   Every statement is scoped by recipe_id as well as the note id, so a
       note can only be reached through the recipe it belongs to.
"""

import logging
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.exceptions import NotFoundError
from recipebox.models import Recipe, RecipeNote
from recipebox.models.common import utcnow
from recipebox.schemas.recipe import NoteResponse
from recipebox.services import database_errors

logger = logging.getLogger(__name__)


def to_response(note: RecipeNote) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        recipe_id=note.recipe_id,
        text=note.note,
        created_at=note.created_at,
        modified_at=note.modified_at,
    )


class NoteService:
    """
    Business logic layer for recipe notes.

    Responsibilities:
        - create(): attach a note to an existing recipe
        - update() / delete(): recipe-scoped, NotFoundError when the pair doesn't exist
        - delete_all(): wipe a recipe's notes
        - list(): newest first
    """

    async def _get_row(self, db: AsyncSession, recipe_id: int, note_id: int) -> RecipeNote:
        result = await db.execute(
            select(RecipeNote).where(RecipeNote.recipe_id == recipe_id, RecipeNote.id == note_id)
        )
        note = result.scalar_one_or_none()
        if note is None:
            raise NotFoundError(resource="note", resource_id=note_id)
        return note

    async def create(self, db: AsyncSession, recipe_id: int, text: str) -> NoteResponse:
        with database_errors("create note"):
            if await db.get(Recipe, recipe_id) is None:
                raise NotFoundError(resource="recipe", resource_id=recipe_id)
            note = RecipeNote(recipe_id=recipe_id, note=text)
            db.add(note)
            await db.flush()

        logger.info("Note %d added to recipe %d", note.id, recipe_id)
        return to_response(note)

    async def update(self, db: AsyncSession, recipe_id: int, note_id: int, text: str) -> NoteResponse:
        with database_errors("update note"):
            note = await self._get_row(db, recipe_id, note_id)
            note.note = text
            note.modified_at = utcnow()
            await db.flush()
        return to_response(note)

    async def delete(self, db: AsyncSession, recipe_id: int, note_id: int) -> None:
        with database_errors("delete note"):
            note = await self._get_row(db, recipe_id, note_id)
            await db.delete(note)
            await db.flush()

    async def delete_all(self, db: AsyncSession, recipe_id: int) -> None:
        with database_errors("delete all notes"):
            await db.execute(delete(RecipeNote).where(RecipeNote.recipe_id == recipe_id))

    async def list(self, db: AsyncSession, recipe_id: int) -> List[NoteResponse]:
        with database_errors("list notes"):
            result = await db.execute(
                select(RecipeNote)
                .where(RecipeNote.recipe_id == recipe_id)
                .order_by(RecipeNote.created_at.desc(), RecipeNote.id.desc())
            )
            return [to_response(note) for note in result.scalars().all()]


note_service = NoteService()
