"""
RecipeBox — Request Dependencies
================================

What:  FastAPI dependencies that identify the caller and enforce access levels.
How:   `get_current_user` reads `Authorization: Bearer <token>`, verifies it,
       and loads the user it names. The guards build on it:

    require_editor              editor or admin
    require_admin               admin only
    require_admin_unless_self   admin, or the user named by {user_id} in the path
    disallow_self               403 when {user_id} is the caller's own id

Failures raise AuthenticationError (401) or ForbiddenError (403), which the
global handlers in main.py turn into the standard error envelope.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.exceptions import AuthenticationError, ForbiddenError
from recipebox.schemas.user import AccessLevel, UserResponse
from recipebox.services.auth_service import auth_service

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches our own 401 handler
bearer_scheme = HTTPBearer(auto_error=False)

_EDITOR_LEVELS = {AccessLevel.ADMIN, AccessLevel.EDITOR}


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Missing bearer token")
    return await auth_service.current_user(db, credentials.credentials)


async def require_editor(user: UserResponse = Depends(get_current_user)) -> UserResponse:
    if user.access_level not in _EDITOR_LEVELS:
        raise ForbiddenError(message="Editor access required")
    return user


async def require_admin(user: UserResponse = Depends(get_current_user)) -> UserResponse:
    if user.access_level != AccessLevel.ADMIN:
        raise ForbiddenError(message="Admin access required")
    return user


async def require_admin_unless_self(
    user_id: int,
    user: UserResponse = Depends(get_current_user),
) -> UserResponse:
    if user.id != user_id and user.access_level != AccessLevel.ADMIN:
        raise ForbiddenError(message="Admin access required to act on another user")
    return user


async def disallow_self(
    user_id: int,
    user: UserResponse = Depends(require_admin),
) -> UserResponse:
    if user.id == user_id:
        logger.warning("User %d attempted a self-restricted action", user.id)
        raise ForbiddenError(message="This action cannot be performed on your own account")
    return user
