"""
RecipeBox — Upload Route Handlers
=================================

What:  POST /api/v1/uploads stores an arbitrary file (e.g. a home page
       background) and GET /uploads/{path} serves anything beneath uploads/.
Who:   <img> tags in the front end point straight at the URLs these return,
       so the file server needs no bearer token.

Security:
    - Stored names are UUIDs; the client's filename only contributes its extension
    - Served paths are resolved by FileService and must stay inside uploads/
    - Only regular files are served; directories are a 404
"""

import logging

from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.responses import FileResponse

from recipebox.dependencies import require_editor
from recipebox.exceptions import NotFoundError, ValidationError
from recipebox.routes import API_PREFIX
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.user import UserResponse
from recipebox.services.file_service import UPLOADS_DIR, file_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


@router.post(
    f"{API_PREFIX}/uploads",
    status_code=201,
    responses={400: {"description": "Empty or too large", "model": ErrorResponse}},
    summary="Upload a file",
)
async def upload_file(
    file: UploadFile = File(..., description="Any file, up to MAX_FILE_SIZE"),
    _: UserResponse = Depends(require_editor),
) -> Response:
    try:
        content = await file.read()
        url = await file_service.store_upload(file.filename, content, content_length=file.size)
    finally:
        await file.close()
    return Response(status_code=201, headers={"Location": url})


@router.get(
    f"/{UPLOADS_DIR}/{{file_path:path}}",
    responses={404: {"description": "File not found", "model": ErrorResponse}},
    summary="Serve an uploaded file",
)
async def serve_upload(file_path: str) -> FileResponse:
    uploads_root = file_service.resolve(UPLOADS_DIR)
    full_path = file_service.resolve(f"{UPLOADS_DIR}/{file_path}")
    if full_path != uploads_root and uploads_root not in full_path.parents:
        raise ValidationError(message="Invalid file path", field="path")
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
