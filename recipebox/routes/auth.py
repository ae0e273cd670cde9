"""RecipeBox — POST /auth: exchange username and password for a bearer token."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.routes import API_PREFIX
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.user import AuthenticationResponse, Credentials
from recipebox.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["Auth"])


@router.post(
    "/auth",
    response_model=AuthenticationResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in",
)
async def authenticate(
    credentials: Credentials,
    db: AsyncSession = Depends(get_db_session),
) -> AuthenticationResponse:
    return await auth_service.login(db, credentials.username, credentials.password)
