"""
RecipeBox — User Route Handlers
===============================

What:  User management, passwords, settings and saved search filters.

Two parallel trees expose the same per-user operations:
    /users/{user_id}/...    admins, or the user themself
    /users/current/...      whoever the bearer token names

The /users/current routes are registered first. Otherwise "current" would
be captured by {user_id} and fail integer validation.

Guards:
    list / create / read              require_admin
    update / delete                   disallow_self (admins, never on themselves)
    password / settings / filters     require_admin_unless_self
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.dependencies import (
    disallow_self,
    get_current_user,
    require_admin,
    require_admin_unless_self,
)
from recipebox.routes import API_PREFIX, ensure_matching_id
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.search import SavedSearchFilter, SavedSearchFilterCompact
from recipebox.schemas.user import (
    PasswordChangeRequest,
    UserCreateRequest,
    UserRequest,
    UserResponse,
    UserSettings,
)
from recipebox.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/users", tags=["Users"])


# ── Shared handlers ───────────────────────────────────────────────────────
# Both trees funnel into these once the target user id is known.

async def _change_password(
    db: AsyncSession, caller: UserResponse, user_id: int, data: PasswordChangeRequest
) -> Response:
    await user_service.update_password(
        db,
        user_id,
        new_password=data.new_password,
        current_password=data.current_password,
        verify_current=caller.id == user_id,
    )
    return Response(status_code=204)


async def _save_settings(db: AsyncSession, user_id: int, data: UserSettings) -> Response:
    ensure_matching_id(data.user_id, user_id, field="user_id")
    await user_service.update_settings(db, user_id, data)
    return Response(status_code=204)


async def _add_filter(
    db: AsyncSession, user_id: int, data: SavedSearchFilter, response: Response, base: str
) -> SavedSearchFilter:
    ensure_matching_id(data.user_id, user_id, field="user_id")
    saved = await user_service.create_filter(db, user_id, data)
    response.headers["Location"] = f"{base}/filters/{saved.id}"
    return saved


async def _save_filter(
    db: AsyncSession, user_id: int, filter_id: int, data: SavedSearchFilter
) -> Response:
    ensure_matching_id(data.user_id, user_id, field="user_id")
    ensure_matching_id(data.id, filter_id)
    await user_service.update_filter(
        db, user_id, data.model_copy(update={"id": filter_id, "user_id": user_id})
    )
    return Response(status_code=204)


# ── /users/current ────────────────────────────────────────────────────────

@router.get("/current", response_model=UserResponse, summary="The logged-in user")
async def get_current(user: UserResponse = Depends(get_current_user)) -> UserResponse:
    return user


@router.put("/current/password", status_code=204, summary="Change my password")
async def change_current_password(
    data: PasswordChangeRequest,
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> Response:
    return await _change_password(db, user, user.id, data)


@router.get("/current/settings", response_model=UserSettings, summary="My settings")
async def get_current_settings(
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> UserSettings:
    return await user_service.read_settings(db, user.id)


@router.put("/current/settings", status_code=204, summary="Save my settings")
async def save_current_settings(
    data: UserSettings,
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> Response:
    return await _save_settings(db, user.id, data)


@router.get("/current/filters", response_model=List[SavedSearchFilterCompact], summary="My saved filters")
async def list_current_filters(
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> List[SavedSearchFilterCompact]:
    return await user_service.list_filters(db, user.id)


@router.post("/current/filters", status_code=201, response_model=SavedSearchFilter, summary="Save a filter")
async def add_current_filter(
    data: SavedSearchFilter,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> SavedSearchFilter:
    return await _add_filter(db, user.id, data, response, f"{API_PREFIX}/users/current")


@router.get("/current/filters/{filter_id}", response_model=SavedSearchFilter, summary="One of my filters")
async def get_current_filter(
    filter_id: int,
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> SavedSearchFilter:
    return await user_service.read_filter(db, user.id, filter_id)


@router.put("/current/filters/{filter_id}", status_code=204, summary="Update one of my filters")
async def save_current_filter(
    filter_id: int,
    data: SavedSearchFilter,
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> Response:
    return await _save_filter(db, user.id, filter_id, data)


@router.delete("/current/filters/{filter_id}", status_code=204, summary="Delete one of my filters")
async def delete_current_filter(
    filter_id: int,
    db: AsyncSession = Depends(get_db_session),
    user: UserResponse = Depends(get_current_user),
) -> Response:
    await user_service.delete_filter(db, user.id, filter_id)
    return Response(status_code=204)


# ── /users ────────────────────────────────────────────────────────────────

@router.get("", response_model=List[UserResponse], summary="List users")
async def list_users(
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin),
) -> List[UserResponse]:
    return await user_service.list(db)


@router.post(
    "",
    status_code=201,
    response_model=UserResponse,
    responses={400: {"description": "Username taken", "model": ErrorResponse}},
    summary="Create a user",
)
async def add_user(
    data: UserCreateRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin),
) -> UserResponse:
    user = await user_service.create(db, data.username, data.access_level, data.password)
    response.headers["Location"] = f"{API_PREFIX}/users/{user.id}"
    return user


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a user",
)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin),
) -> UserResponse:
    return await user_service.read(db, user_id)


@router.put(
    "/{user_id}",
    status_code=204,
    responses={403: {"description": "Cannot modify your own account", "model": ErrorResponse}},
    summary="Update a user",
)
async def save_user(
    user_id: int,
    data: UserRequest,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(disallow_self),
) -> Response:
    ensure_matching_id(data.id, user_id)
    await user_service.update(db, user_id, data.username, data.access_level)
    return Response(status_code=204)


@router.delete(
    "/{user_id}",
    status_code=204,
    responses={403: {"description": "Cannot delete your own account", "model": ErrorResponse}},
    summary="Delete a user",
)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(disallow_self),
) -> Response:
    await user_service.delete(db, user_id)
    return Response(status_code=204)


@router.put("/{user_id}/password", status_code=204, summary="Change a user's password")
async def change_password(
    user_id: int,
    data: PasswordChangeRequest,
    db: AsyncSession = Depends(get_db_session),
    caller: UserResponse = Depends(require_admin_unless_self),
) -> Response:
    return await _change_password(db, caller, user_id, data)


@router.get("/{user_id}/settings", response_model=UserSettings, summary="A user's settings")
async def get_settings(
    user_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin_unless_self),
) -> UserSettings:
    return await user_service.read_settings(db, user_id)


@router.put("/{user_id}/settings", status_code=204, summary="Save a user's settings")
async def save_settings(
    user_id: int,
    data: UserSettings,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin_unless_self),
) -> Response:
    return await _save_settings(db, user_id, data)


@router.get("/{user_id}/filters", response_model=List[SavedSearchFilterCompact], summary="A user's filters")
async def list_filters(
    user_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin_unless_self),
) -> List[SavedSearchFilterCompact]:
    return await user_service.list_filters(db, user_id)


@router.post("/{user_id}/filters", status_code=201, response_model=SavedSearchFilter, summary="Save a filter")
async def add_filter(
    user_id: int,
    data: SavedSearchFilter,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin_unless_self),
) -> SavedSearchFilter:
    return await _add_filter(db, user_id, data, response, f"{API_PREFIX}/users/{user_id}")


@router.get("/{user_id}/filters/{filter_id}", response_model=SavedSearchFilter, summary="One filter")
async def get_filter(
    user_id: int,
    filter_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin_unless_self),
) -> SavedSearchFilter:
    return await user_service.read_filter(db, user_id, filter_id)


@router.put("/{user_id}/filters/{filter_id}", status_code=204, summary="Update a filter")
async def save_filter(
    user_id: int,
    filter_id: int,
    data: SavedSearchFilter,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin_unless_self),
) -> Response:
    return await _save_filter(db, user_id, filter_id, data)


@router.delete("/{user_id}/filters/{filter_id}", status_code=204, summary="Delete a filter")
async def delete_filter(
    user_id: int,
    filter_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin_unless_self),
) -> Response:
    await user_service.delete_filter(db, user_id, filter_id)
    return Response(status_code=204)
