"""
RecipeBox — Link Service
========================

What:  "Goes well with" links between recipes.

    A link is stored once, in the direction it was created, but behaves as
    symmetric: listing finds it from either end and deleting removes both
    directions.
"""

import logging
from typing import List

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.exceptions import NotFoundError, ValidationError
from recipebox.models import Recipe, RecipeLink
from recipebox.schemas.search import RecipeCompact
from recipebox.services import database_errors
from recipebox.services.search_service import compact_select, to_compact

logger = logging.getLogger(__name__)


class LinkService:

    async def create(self, db: AsyncSession, recipe_id: int, dest_recipe_id: int) -> None:
        if recipe_id == dest_recipe_id:
            raise ValidationError(message="A recipe cannot be linked to itself", field="dest_recipe_id")

        with database_errors("create link"):
            for rid in (recipe_id, dest_recipe_id):
                if await db.get(Recipe, rid) is None:
                    raise NotFoundError(resource="recipe", resource_id=rid)

            existing = await db.execute(select(RecipeLink).where(self._either_direction(recipe_id, dest_recipe_id)))
            if existing.first() is not None:
                return

            db.add(RecipeLink(recipe_id=recipe_id, dest_recipe_id=dest_recipe_id))
            await db.flush()
        logger.info("Linked recipe %d → %d", recipe_id, dest_recipe_id)

    async def delete(self, db: AsyncSession, recipe_id: int, dest_recipe_id: int) -> None:
        with database_errors("delete link"):
            await db.execute(
                delete(RecipeLink)
                .where(self._either_direction(recipe_id, dest_recipe_id))
                .execution_options(synchronize_session=False)
            )

    async def list(self, db: AsyncSession, recipe_id: int) -> List[RecipeCompact]:
        """Recipes linked to `recipe_id` in either direction, by name."""
        outgoing = select(RecipeLink.dest_recipe_id).where(RecipeLink.recipe_id == recipe_id)
        incoming = select(RecipeLink.recipe_id).where(RecipeLink.dest_recipe_id == recipe_id)
        stmt = (
            compact_select()
            .where(or_(Recipe.id.in_(outgoing), Recipe.id.in_(incoming)))
            .order_by(Recipe.name.asc(), Recipe.id.asc())
        )
        with database_errors("list links"):
            rows = (await db.execute(stmt)).all()
        return [to_compact(row) for row in rows]

    @staticmethod
    def _either_direction(recipe_id: int, dest_recipe_id: int):
        return or_(
            and_(RecipeLink.recipe_id == recipe_id, RecipeLink.dest_recipe_id == dest_recipe_id),
            and_(RecipeLink.recipe_id == dest_recipe_id, RecipeLink.dest_recipe_id == recipe_id),
        )


link_service = LinkService()
