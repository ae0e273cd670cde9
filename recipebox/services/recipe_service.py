"""
RecipeBox — Recipe Service
==========================

What:  CRUD for recipes and the rows that belong directly to them
       (tags, rating, state).
How:   Each public method runs inside the caller's session, which the
       request dependency commits once at the end. A recipe and its tags are
       therefore always written together: update deletes and recreates the
       tag rows in the same transaction as the column update.

Delete semantics:
    The recipe row goes first; ON DELETE CASCADE clears tags, rating, images,
    notes and links. The recipe's upload directory is removed afterwards.
"""

import logging
from typing import Iterable, List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.exceptions import NotFoundError, ValidationError
from recipebox.models import Recipe, RecipeRating, RecipeTag
from recipebox.models.common import utcnow
from recipebox.schemas.recipe import RecipeRequest, RecipeResponse
from recipebox.schemas.search import RecipeState
from recipebox.services import database_errors
from recipebox.services.file_service import file_service
from recipebox.services.image_service import recipe_dir

logger = logging.getLogger(__name__)

MIN_RATING = 0.0
MAX_RATING = 5.0


def unique_tags(tags: Iterable[str]) -> List[str]:
    """Trimmed, de-duplicated tags in first-seen order."""
    seen = set()
    result = []
    for tag in tags:
        cleaned = tag.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


class RecipeService:
    """Business logic for recipes."""

    async def _get_row(self, db: AsyncSession, recipe_id: int) -> Recipe:
        recipe = await db.get(Recipe, recipe_id, populate_existing=True)
        if recipe is None:
            raise NotFoundError(resource="recipe", resource_id=recipe_id)
        return recipe

    async def _replace_tags(self, db: AsyncSession, recipe_id: int, tags: Iterable[str]) -> None:
        await db.execute(delete(RecipeTag).where(RecipeTag.recipe_id == recipe_id))
        for tag in unique_tags(tags):
            db.add(RecipeTag(recipe_id=recipe_id, tag=tag))
        await db.flush()

    async def _response(self, db: AsyncSession, recipe: Recipe) -> RecipeResponse:
        return RecipeResponse(
            id=recipe.id,
            name=recipe.name,
            serving_size=recipe.serving_size,
            nutrition_info=recipe.nutrition_info,
            ingredients=recipe.ingredients,
            directions=recipe.directions,
            storage_instructions=recipe.storage_instructions,
            source_url=recipe.source_url,
            tags=await self.list_tags(db, recipe.id),
            state=recipe.current_state,
            created_at=recipe.created_at,
            modified_at=recipe.modified_at,
        )

    async def create(self, db: AsyncSession, data: RecipeRequest) -> RecipeResponse:
        with database_errors("create recipe"):
            recipe = Recipe(
                name=data.name,
                serving_size=data.serving_size,
                nutrition_info=data.nutrition_info,
                ingredients=data.ingredients,
                directions=data.directions,
                storage_instructions=data.storage_instructions,
                source_url=data.source_url,
                current_state=RecipeState.ACTIVE.value,
            )
            db.add(recipe)
            await db.flush()
            await self._replace_tags(db, recipe.id, data.tags)
            response = await self._response(db, recipe)

        logger.info("Recipe %d created: %s", recipe.id, recipe.name)
        return response

    async def read(self, db: AsyncSession, recipe_id: int) -> RecipeResponse:
        with database_errors("read recipe"):
            recipe = await self._get_row(db, recipe_id)
            return await self._response(db, recipe)

    async def update(self, db: AsyncSession, data: RecipeRequest) -> RecipeResponse:
        """
        Overwrite a recipe's columns and tags.

        Raises:
            ValidationError: no id on the request
            NotFoundError:   the recipe does not exist
        """
        if data.id is None:
            raise ValidationError(message="recipe id is required", field="id")

        with database_errors("update recipe"):
            recipe = await self._get_row(db, data.id)
            recipe.name = data.name
            recipe.serving_size = data.serving_size
            recipe.nutrition_info = data.nutrition_info
            recipe.ingredients = data.ingredients
            recipe.directions = data.directions
            recipe.storage_instructions = data.storage_instructions
            recipe.source_url = data.source_url
            recipe.modified_at = utcnow()
            await db.flush()
            await self._replace_tags(db, recipe.id, data.tags)
            await db.refresh(recipe)
            response = await self._response(db, recipe)

        logger.info("Recipe %d updated", recipe.id)
        return response

    async def delete(self, db: AsyncSession, recipe_id: int) -> None:
        with database_errors("delete recipe"):
            recipe = await self._get_row(db, recipe_id)
            await db.delete(recipe)
            # Storage is only touched once the rows are committed
            await db.commit()

        await file_service.delete_all(recipe_dir(recipe_id))
        logger.info("Recipe %d deleted", recipe_id)

    async def set_state(self, db: AsyncSession, recipe_id: int, state: RecipeState) -> None:
        with database_errors("set recipe state"):
            recipe = await self._get_row(db, recipe_id)
            recipe.current_state = RecipeState(state).value
            await db.flush()

    async def get_rating(self, db: AsyncSession, recipe_id: int) -> float:
        with database_errors("get rating"):
            result = await db.execute(
                select(func.coalesce(RecipeRating.rating, 0))
                .select_from(Recipe)
                .outerjoin(RecipeRating, RecipeRating.recipe_id == Recipe.id)
                .where(Recipe.id == recipe_id)
            )
            rating = result.scalar_one_or_none()
        if rating is None:
            raise NotFoundError(resource="recipe", resource_id=recipe_id)
        return float(rating)

    async def set_rating(self, db: AsyncSession, recipe_id: int, rating: float) -> None:
        """Insert the rating row on first use, update it afterwards."""
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                message=f"rating must be between {MIN_RATING:g} and {MAX_RATING:g}",
                field="rating",
            )

        with database_errors("set rating"):
            await self._get_row(db, recipe_id)
            existing = await db.get(RecipeRating, recipe_id)
            if existing is None:
                db.add(RecipeRating(recipe_id=recipe_id, rating=rating))
            else:
                existing.rating = rating
            await db.flush()

    async def list_tags(self, db: AsyncSession, recipe_id: int) -> List[str]:
        with database_errors("list recipe tags"):
            result = await db.execute(
                select(RecipeTag.tag).where(RecipeTag.recipe_id == recipe_id).order_by(RecipeTag.tag)
            )
            return list(result.scalars().all())


recipe_service = RecipeService()
