"""RecipeBox — GET /tags: tag → recipe count, for tag clouds and autocomplete."""

from typing import Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.dependencies import get_current_user
from recipebox.routes import API_PREFIX
from recipebox.schemas.user import UserResponse
from recipebox.services.tag_service import tag_service

router = APIRouter(prefix=API_PREFIX, tags=["Tags"])


@router.get("/tags", response_model=Dict[str, int], summary="List tags with frequencies")
async def list_tags(
    sort: str = Query(default="tag", description="tag, frequency or random"),
    dir: str = Query(default="asc", description="asc or desc"),
    count: int = Query(default=100, description="Maximum number of tags"),
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> Dict[str, int]:
    return await tag_service.list_all(db, sort_by=sort, sort_dir=dir, count=count)
