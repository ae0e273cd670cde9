"""
RecipeBox — Auth Service
========================

What:  Issues and verifies bearer tokens.
How:   HS256 JWTs via PyJWT. The subject claim carries the user id. New
       tokens are signed with the first key in SECURE_KEYS, and a token is
       accepted if any configured key verifies it, so keys can be rotated by
       prepending a new one.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.exceptions import AuthenticationError
from recipebox.schemas.user import AuthenticationResponse, UserResponse
from recipebox.services.user_service import user_service

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class AuthService:

    def __init__(self, keys: Optional[List[str]] = None, lifetime_days: Optional[int] = None):
        self._keys = keys
        self._lifetime_days = lifetime_days

    @property
    def keys(self) -> List[str]:
        keys = self._keys if self._keys is not None else settings.secure_keys_list
        if not keys:
            raise AuthenticationError(message="No signing keys are configured")
        return keys

    @property
    def lifetime(self) -> timedelta:
        days = self._lifetime_days if self._lifetime_days is not None else settings.token_lifetime_days
        return timedelta(days=days)

    def issue_token(self, user_id: int) -> str:
        now = datetime.now(timezone.utc)
        claims = {"sub": str(user_id), "iat": now, "exp": now + self.lifetime}
        return jwt.encode(claims, self.keys[0], algorithm=ALGORITHM)

    def verify_token(self, token: str) -> int:
        """Return the user id in a valid token, else raise AuthenticationError."""
        for key in self.keys:
            try:
                claims = jwt.decode(token, key, algorithms=[ALGORITHM], options={"require": ["sub", "exp"]})
            except jwt.ExpiredSignatureError:
                raise AuthenticationError(message="Token has expired")
            except jwt.InvalidSignatureError:
                continue
            except jwt.InvalidTokenError as e:
                logger.debug("Rejected malformed token: %s", e)
                raise AuthenticationError(message="Invalid token")

            try:
                return int(claims["sub"])
            except (TypeError, ValueError):
                raise AuthenticationError(message="Invalid token subject")

        raise AuthenticationError(message="Invalid token")

    async def login(self, db: AsyncSession, username: str, password: str) -> AuthenticationResponse:
        user = await user_service.authenticate(db, username, password)
        logger.info("User %d authenticated", user.id)
        return AuthenticationResponse(token=self.issue_token(user.id), user=user)

    async def current_user(self, db: AsyncSession, token: str) -> UserResponse:
        user_id = self.verify_token(token)
        if not await user_service.exists(db, user_id):
            raise AuthenticationError(message="Token refers to an unknown user")
        return await user_service.read(db, user_id)


auth_service = AuthService()
