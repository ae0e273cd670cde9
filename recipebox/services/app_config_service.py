"""RecipeBox — App Configuration Service (single row, created lazily with APP_TITLE)."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.models import AppConfiguration
from recipebox.models.app_config import CONFIGURATION_ROW_ID
from recipebox.schemas.common import AppConfigurationSchema
from recipebox.services import database_errors

logger = logging.getLogger(__name__)


class AppConfigService:

    async def _get_or_create(self, db: AsyncSession) -> AppConfiguration:
        row = await db.get(AppConfiguration, CONFIGURATION_ROW_ID)
        if row is None:
            row = AppConfiguration(id=CONFIGURATION_ROW_ID, title=settings.app_title)
            db.add(row)
            await db.flush()
            logger.info("Created application configuration (title=%r)", row.title)
        return row

    async def read(self, db: AsyncSession) -> AppConfigurationSchema:
        with database_errors("read app configuration"):
            row = await self._get_or_create(db)
        return AppConfigurationSchema.model_validate(row)

    async def update(self, db: AsyncSession, data: AppConfigurationSchema) -> AppConfigurationSchema:
        with database_errors("update app configuration"):
            row = await self._get_or_create(db)
            row.title = data.title
            await db.flush()
        return AppConfigurationSchema.model_validate(row)


app_config_service = AppConfigService()
