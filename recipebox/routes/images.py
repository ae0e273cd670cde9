"""
RecipeBox — Recipe Image Route Handlers
=======================================

What:  Upload, list and delete a recipe's images, and pick its main image.
How:   Uploads arrive as multipart/form-data in a `file` field. The bytes are
       handed to ImageService, which decodes, orients, resizes and
       thumbnails them before anything is stored.
"""

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.dependencies import get_current_user, require_editor
from recipebox.routes import API_PREFIX
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.recipe import RecipeImageResponse
from recipebox.schemas.user import UserResponse
from recipebox.services.image_service import image_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/recipes/{{recipe_id}}", tags=["Images"])


@router.get("/images", response_model=List[RecipeImageResponse], summary="List a recipe's images")
async def list_images(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> List[RecipeImageResponse]:
    return await image_service.list(db, recipe_id)


@router.post(
    "/images",
    status_code=201,
    response_model=RecipeImageResponse,
    responses={
        400: {"description": "Not an image, empty, or too large", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
    },
    summary="Upload an image",
)
async def upload_image(
    recipe_id: int,
    response: Response,
    file: UploadFile = File(..., description="Image file (JPEG, PNG, GIF, WebP, ...)"),
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> RecipeImageResponse:
    try:
        content = await file.read()
        logger.info(
            "Received image upload for recipe %d: filename=%s, size=%d bytes",
            recipe_id,
            file.filename or "unknown",
            len(content),
        )
        image = await image_service.upload(
            db,
            recipe_id,
            filename=file.filename or "upload.jpg",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()

    response.headers["Location"] = f"{API_PREFIX}/recipes/{recipe_id}/images/{image.id}"
    return image


@router.get(
    "/images/{image_id}",
    response_model=RecipeImageResponse,
    responses={404: {"description": "Image not found", "model": ErrorResponse}},
    summary="Get one image",
)
async def get_image(
    recipe_id: int,
    image_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> RecipeImageResponse:
    return await image_service.read(db, recipe_id, image_id)


@router.delete("/images/{image_id}", status_code=204, summary="Delete an image and its files")
async def delete_image(
    recipe_id: int,
    image_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await image_service.delete(db, recipe_id, image_id)
    return Response(status_code=204)


@router.get(
    "/image",
    response_model=RecipeImageResponse,
    responses={404: {"description": "Recipe has no main image", "model": ErrorResponse}},
    summary="Get the main image",
)
async def get_main_image(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(get_current_user),
) -> RecipeImageResponse:
    return await image_service.read_main_image(db, recipe_id)


@router.put("/image", status_code=204, summary="Set the main image")
async def set_main_image(
    recipe_id: int,
    image_id: int = Body(..., description="Id of one of this recipe's images"),
    db: AsyncSession = Depends(get_db_session),
    _: UserResponse = Depends(require_editor),
) -> Response:
    await image_service.update_main_image(db, recipe_id, image_id)
    return Response(status_code=204)
