"""
RecipeBox — Application Info & Configuration Routes
===================================================

GET /app/info and GET /app/configuration are public so the front end can
render its title before anyone logs in. Changing the configuration is admin only.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox import __copyright__, __version__
from recipebox.database import get_db_session
from recipebox.dependencies import require_admin
from recipebox.routes import API_PREFIX
from recipebox.schemas.common import AppConfigurationSchema, AppInfo
from recipebox.schemas.user import UserResponse
from recipebox.services.app_config_service import app_config_service

router = APIRouter(prefix=f"{API_PREFIX}/app", tags=["App"])


@router.get("/info", response_model=AppInfo, summary="Version and copyright")
async def get_info() -> AppInfo:
    return AppInfo(version=__version__, copyright=__copyright__)


@router.get("/configuration", response_model=AppConfigurationSchema, summary="Read app configuration")
async def get_configuration(db: AsyncSession = Depends(get_db_session)) -> AppConfigurationSchema:
    return await app_config_service.read(db)


@router.put("/configuration", status_code=204, summary="Update app configuration")
async def save_configuration(
    data: AppConfigurationSchema,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin),
) -> Response:
    await app_config_service.update(db, data)
    return Response(status_code=204)
