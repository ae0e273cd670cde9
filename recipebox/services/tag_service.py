"""RecipeBox — Tag Service: tag frequencies across all recipes."""

import logging
from enum import Enum
from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.exceptions import ValidationError
from recipebox.models import RecipeTag
from recipebox.services import database_errors

logger = logging.getLogger(__name__)


class TagSortBy(str, Enum):
    TAG = "tag"
    FREQUENCY = "frequency"
    RANDOM = "random"


class TagService:

    async def list_all(
        self,
        db: AsyncSession,
        sort_by: str = TagSortBy.TAG.value,
        sort_dir: str = "asc",
        count: int = 100,
    ) -> Dict[str, int]:
        """
        Map of tag → number of recipes carrying it, at most `count` entries.

        Unknown sort keys fall back to alphabetical. The returned dict keeps
        the query's order.
        """
        if count < 1:
            raise ValidationError(message="count must be 1 or greater", field="count")

        try:
            key = TagSortBy(str(sort_by).lower())
        except ValueError:
            key = TagSortBy.TAG
        descending = str(sort_dir).lower() == "desc"

        frequency = func.count(RecipeTag.recipe_id).label("frequency")
        stmt = select(RecipeTag.tag, frequency).group_by(RecipeTag.tag)

        if key is TagSortBy.RANDOM:
            stmt = stmt.order_by(func.random())
        elif key is TagSortBy.FREQUENCY:
            stmt = stmt.order_by(
                frequency.desc() if descending else frequency.asc(),
                RecipeTag.tag.asc(),
            )
        else:
            stmt = stmt.order_by(RecipeTag.tag.desc() if descending else RecipeTag.tag.asc())

        with database_errors("list tags"):
            rows = (await db.execute(stmt.limit(count))).all()
        return {row.tag: row.frequency for row in rows}


tag_service = TagService()
