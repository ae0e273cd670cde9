"""RecipeBox — Backup archives: create one, download one by name (admin only)."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.dependencies import require_admin
from recipebox.routes import API_PREFIX
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.user import UserResponse
from recipebox.services.backup_service import backup_service

router = APIRouter(prefix=API_PREFIX, tags=["Backups"])


@router.post("/backups", status_code=201, summary="Create a backup archive")
async def create_backup(
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_admin),
) -> Response:
    name = await backup_service.create(db)
    return Response(status_code=201, headers={"Location": f"{API_PREFIX}/backups/{name}"})


@router.get(
    "/backups/{name}",
    responses={404: {"description": "No such archive", "model": ErrorResponse}},
    summary="Download a backup archive",
)
async def download_backup(
    name: str,
    _: UserResponse = Depends(require_admin),
) -> FileResponse:
    return FileResponse(
        path=str(backup_service.archive_path(name)),
        media_type="application/zip",
        filename=name,
    )
