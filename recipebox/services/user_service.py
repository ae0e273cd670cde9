"""
RecipeBox — User Service
========================

What:  Accounts, passwords, per-user settings and saved search filters.
How:   Passwords are bcrypt hashes; hashing is CPU bound and runs in a
       worker thread. Settings and saved filters keep their list-valued parts in child tables that are deleted and recreated on
       every save.

Credential errors:
    authenticate() answers "username or password invalid" for both an unknown
    user and a wrong password, so the response doesn't reveal which usernames exist.
"""

import logging
from typing import List, Optional

import bcrypt
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from recipebox.config import settings
from recipebox.exceptions import AuthenticationError, NotFoundError, ValidationError
from recipebox.models import (
    AppUser,
    AppUserFavoriteTag,
    AppUserSettings,
    SearchFilterField,
    SearchFilterRecord,
    SearchFilterState,
    SearchFilterTag,
)
from recipebox.models.common import utcnow
from recipebox.schemas.search import (
    SUPPORTED_SEARCH_FIELDS,
    RecipeState,
    SavedSearchFilter,
    SavedSearchFilterCompact,
)
from recipebox.schemas.user import AccessLevel, UserResponse, UserSettings
from recipebox.services import database_errors
from recipebox.services.app_config_service import app_config_service
from recipebox.services.recipe_service import unique_tags

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "username or password invalid"

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


# ── Password hashing ──────────────────────────────────────────────────────

def _password_bytes(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            message=f"Password must be at most {MAX_PASSWORD_BYTES} bytes",
            field="password",
        )
    return encoded


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.password_hash_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValidationError:
        return False


class UserService:
    """Business logic for users, settings and saved filters."""

    # ── Accounts ──────────────────────────────────────────────────────────

    async def _get_row(self, db: AsyncSession, user_id: int) -> AppUser:
        user = await db.get(AppUser, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    async def _ensure_username_free(self, db: AsyncSession, username: str, user_id: Optional[int] = None) -> None:
        stmt = select(AppUser.id).where(func.lower(AppUser.username) == username.lower())
        if user_id is not None:
            stmt = stmt.where(AppUser.id != user_id)
        if (await db.execute(stmt)).first() is not None:
            raise ValidationError(message=f"Username '{username}' is already taken", field="username")

    async def authenticate(self, db: AsyncSession, username: str, password: str) -> UserResponse:
        with database_errors("authenticate"):
            result = await db.execute(select(AppUser).where(AppUser.username == username))
            user = result.scalar_one_or_none()

        if user is None or not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.warning("Failed login for username %r", username)
            raise AuthenticationError(message=INVALID_CREDENTIALS)
        return UserResponse.model_validate(user)

    async def create(
        self,
        db: AsyncSession,
        username: str,
        access_level: AccessLevel,
        password: str,
    ) -> UserResponse:
        password_hash = await run_in_threadpool(hash_password, password)
        with database_errors("create user"):
            await self._ensure_username_free(db, username)
            user = AppUser(
                username=username,
                password_hash=password_hash,
                access_level=AccessLevel(access_level).value,
            )
            db.add(user)
            await db.flush()

        logger.info("User %d created: %s (%s)", user.id, user.username, user.access_level)
        return UserResponse.model_validate(user)

    async def read(self, db: AsyncSession, user_id: int) -> UserResponse:
        with database_errors("read user"):
            return UserResponse.model_validate(await self._get_row(db, user_id))

    async def exists(self, db: AsyncSession, user_id: int) -> bool:
        with database_errors("check user"):
            return await db.get(AppUser, user_id) is not None

    async def update(
        self,
        db: AsyncSession,
        user_id: int,
        username: str,
        access_level: AccessLevel,
    ) -> UserResponse:
        with database_errors("update user"):
            user = await self._get_row(db, user_id)
            await self._ensure_username_free(db, username, user_id)
            user.username = username
            user.access_level = AccessLevel(access_level).value
            user.modified_at = utcnow()
            await db.flush()
        return UserResponse.model_validate(user)

    async def update_password(
        self,
        db: AsyncSession,
        user_id: int,
        new_password: str,
        current_password: Optional[str] = None,
        verify_current: bool = True,
    ) -> None:
        """
        Replace a user's password.

        With verify_current the old password must match; admins resetting
        another account pass verify_current=False.
        """
        with database_errors("update password"):
            user = await self._get_row(db, user_id)

        if verify_current:
            matches = current_password is not None and await run_in_threadpool(
                verify_password, current_password, user.password_hash
            )
            if not matches:
                raise AuthenticationError(message=INVALID_CREDENTIALS)

        new_hash = await run_in_threadpool(hash_password, new_password)
        with database_errors("update password"):
            user.password_hash = new_hash
            user.modified_at = utcnow()
            await db.flush()
        logger.info("Password changed for user %d", user_id)

    async def delete(self, db: AsyncSession, user_id: int) -> None:
        with database_errors("delete user"):
            user = await self._get_row(db, user_id)
            await db.delete(user)
            await db.flush()
        logger.info("User %d deleted", user_id)

    async def list(self, db: AsyncSession) -> List[UserResponse]:
        with database_errors("list users"):
            result = await db.execute(select(AppUser).order_by(AppUser.username.asc()))
            return [UserResponse.model_validate(u) for u in result.scalars().all()]

    async def ensure_initial_admin(self, db: AsyncSession) -> Optional[UserResponse]:
        """Create the configured admin when there are no users at all."""
        with database_errors("count users"):
            total = (await db.execute(select(func.count()).select_from(AppUser))).scalar_one()
        if total:
            return None
        logger.warning(
            "No users found; creating initial admin %r. Change its password after first login.",
            settings.initial_admin_username,
        )
        return await self.create(
            db,
            settings.initial_admin_username,
            AccessLevel.ADMIN,
            settings.initial_admin_password,
        )

    # ── Settings ──────────────────────────────────────────────────────────

    async def read_settings(self, db: AsyncSession, user_id: int) -> UserSettings:
        """Stored settings; home_title falls back to the application title."""
        with database_errors("read user settings"):
            await self._get_row(db, user_id)
            row = await db.get(AppUserSettings, user_id)
            result = await db.execute(
                select(AppUserFavoriteTag.tag)
                .where(AppUserFavoriteTag.user_id == user_id)
                .order_by(AppUserFavoriteTag.tag)
            )
            favorite_tags = list(result.scalars().all())

        home_title = row.home_title if row is not None else None
        if not home_title:
            home_title = (await app_config_service.read(db)).title

        return UserSettings(
            user_id=user_id,
            home_title=home_title,
            home_image_url=row.home_image_url if row is not None else None,
            favorite_tags=favorite_tags,
        )

    async def update_settings(self, db: AsyncSession, user_id: int, data: UserSettings) -> UserSettings:
        with database_errors("update user settings"):
            await self._get_row(db, user_id)
            row = await db.get(AppUserSettings, user_id)
            if row is None:
                row = AppUserSettings(user_id=user_id)
                db.add(row)
            row.home_title = data.home_title
            row.home_image_url = data.home_image_url

            await db.execute(delete(AppUserFavoriteTag).where(AppUserFavoriteTag.user_id == user_id))
            for tag in unique_tags(data.favorite_tags):
                db.add(AppUserFavoriteTag(user_id=user_id, tag=tag))
            await db.flush()

        return await self.read_settings(db, user_id)

    # ── Saved search filters ──────────────────────────────────────────────

    async def _get_filter_row(self, db: AsyncSession, user_id: int, filter_id: int) -> SearchFilterRecord:
        result = await db.execute(
            select(SearchFilterRecord).where(
                SearchFilterRecord.user_id == user_id, SearchFilterRecord.id == filter_id
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(resource="search filter", resource_id=filter_id)
        return record

    async def _write_filter_children(self, db: AsyncSession, filter_id: int, data: SavedSearchFilter) -> None:
        for model in (SearchFilterField, SearchFilterState, SearchFilterTag):
            await db.execute(delete(model).where(model.search_filter_id == filter_id))
        requested = {f.strip().lower() for f in data.fields}
        for field in SUPPORTED_SEARCH_FIELDS:
            if field.value in requested:
                db.add(SearchFilterField(search_filter_id=filter_id, field_name=field.value))
        for state in dict.fromkeys(RecipeState(s) for s in data.states):
            db.add(SearchFilterState(search_filter_id=filter_id, state=state.value))
        for tag in unique_tags(data.tags):
            db.add(SearchFilterTag(search_filter_id=filter_id, tag=tag))
        await db.flush()

    async def _filter_response(self, db: AsyncSession, record: SearchFilterRecord) -> SavedSearchFilter:
        fields = await db.execute(
            select(SearchFilterField.field_name).where(SearchFilterField.search_filter_id == record.id)
        )
        states = await db.execute(
            select(SearchFilterState.state).where(SearchFilterState.search_filter_id == record.id)
        )
        tags = await db.execute(
            select(SearchFilterTag.tag)
            .where(SearchFilterTag.search_filter_id == record.id)
            .order_by(SearchFilterTag.tag)
        )
        return SavedSearchFilter(
            id=record.id,
            user_id=record.user_id,
            name=record.name,
            query=record.query,
            fields=sorted(fields.scalars().all()),
            states=sorted(states.scalars().all()),
            tags=list(tags.scalars().all()),
            with_pictures=record.with_pictures,
            sort_by=record.sort_by,
            sort_dir=record.sort_dir,
        )

    async def list_filters(self, db: AsyncSession, user_id: int) -> List[SavedSearchFilterCompact]:
        with database_errors("list search filters"):
            await self._get_row(db, user_id)
            result = await db.execute(
                select(SearchFilterRecord)
                .where(SearchFilterRecord.user_id == user_id)
                .order_by(SearchFilterRecord.name.asc(), SearchFilterRecord.id.asc())
            )
            return [SavedSearchFilterCompact.model_validate(r) for r in result.scalars().all()]

    async def create_filter(self, db: AsyncSession, user_id: int, data: SavedSearchFilter) -> SavedSearchFilter:
        with database_errors("create search filter"):
            await self._get_row(db, user_id)
            record = SearchFilterRecord(
                user_id=user_id,
                name=data.name,
                query=data.query,
                with_pictures=data.with_pictures,
                sort_by=data.sort_by,
                sort_dir=data.sort_dir,
            )
            db.add(record)
            await db.flush()
            await self._write_filter_children(db, record.id, data)
            return await self._filter_response(db, record)

    async def read_filter(self, db: AsyncSession, user_id: int, filter_id: int) -> SavedSearchFilter:
        with database_errors("read search filter"):
            record = await self._get_filter_row(db, user_id, filter_id)
            return await self._filter_response(db, record)

    async def update_filter(self, db: AsyncSession, user_id: int, data: SavedSearchFilter) -> SavedSearchFilter:
        if data.id is None:
            raise ValidationError(message="search filter id is required", field="id")
        with database_errors("update search filter"):
            record = await self._get_filter_row(db, user_id, data.id)
            record.name = data.name
            record.query = data.query
            record.with_pictures = data.with_pictures
            record.sort_by = data.sort_by
            record.sort_dir = data.sort_dir
            await db.flush()
            await self._write_filter_children(db, record.id, data)
            return await self._filter_response(db, record)

    async def delete_filter(self, db: AsyncSession, user_id: int, filter_id: int) -> None:
        with database_errors("delete search filter"):
            record = await self._get_filter_row(db, user_id, filter_id)
            await db.delete(record)
            await db.flush()


user_service = UserService()
