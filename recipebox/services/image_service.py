"""
RecipeBox — Image Service (Upload Pipeline + Image Records)
===========================================================

What:  Turns an uploaded file into a stored full-size image, a square
       thumbnail, and a `recipe_image` row.
How:   Pillow does the imaging; FileService does the writes; SQLAlchemy
       keeps `recipe.image_id` pointing at a main image.

Pipeline (POST /api/v1/recipes/{id}/images):
    ┌──────────┐   ┌──────────┐   ┌────────────┐   ┌────────────┐   ┌──────────┐
    │  Size    │──▶│  Sniff   │──▶│  Decode +  │──▶│  Resize /  │──▶│  Store + │
    │  check   │   │  image/* │   │  EXIF fix  │   │  thumbnail │   │  DB row  │
    └──────────┘   └──────────┘   └────────────┘   └────────────┘   └──────────┘

    The stored format is the sniffed one (JPEG, PNG, GIF, BMP, TIFF) or JPEG.
    IMAGE_QUALITY=original keeps the uploaded bytes when the format is kept.
    Any other quality fits the image inside IMAGE_SIZE (never enlarging) and
    re-encodes.
    Thumbnails are always a THUMBNAIL_SIZE square, centre-cropped.

    Quality → JPEG quality: high 92, medium 80, low 70.
    Quality → resampling:   low uses nearest-neighbour, everything else box.

Main image rule:
    After any insert or delete, a recipe without a main image adopts its
    oldest remaining image.
"""

import logging
import uuid
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from recipebox.config import settings
from recipebox.exceptions import NotFoundError, ValidationError
from recipebox.models import Recipe, RecipeImage
from recipebox.schemas.recipe import RecipeImageResponse
from recipebox.services import database_errors
from recipebox.services.file_service import UPLOADS_DIR, file_service

logger = logging.getLogger(__name__)

JPEG_QUALITY = {"original": 92, "high": 92, "medium": 80, "low": 70}

# Formats kept as uploaded; anything else is stored as JPEG
OUTPUT_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "GIF": ".gif", "BMP": ".bmp", "TIFF": ".tiff"}

# Modes each writer accepts; other modes are converted before saving
_WRITABLE_MODES = {
    "JPEG": ("RGB", "L"),
    "PNG": ("1", "L", "LA", "I", "P", "RGB", "RGBA"),
    "BMP": ("1", "L", "P", "RGB"),
}


# ══════════════════════════════════════════════════════════════════════════
# Imaging (pure and CPU-bound, run in a worker thread)
# ══════════════════════════════════════════════════════════════════════════

@dataclass
class ProcessedImage:
    name: str
    content_type: str
    original: bytes
    thumbnail: bytes


def sniff_format(data: bytes) -> Optional[str]:
    """Pillow's name for the format in the file's own header bytes, or None."""
    try:
        with Image.open(BytesIO(data)) as sniffed:
            return sniffed.format
    except (UnidentifiedImageError, OSError):
        return None


def sniff_content_type(data: bytes) -> str:
    """MIME type from the file's own header bytes, not from its name."""
    image_format = sniff_format(data)
    if not image_format:
        return "application/octet-stream"
    return Image.MIME.get(image_format, f"image/{image_format.lower()}")


def resample_filter(quality: str) -> Image.Resampling:
    if quality == "low":
        return Image.Resampling.NEAREST
    return Image.Resampling.BOX


def output_format(source_format: Optional[str]) -> Tuple[str, str]:
    """(Pillow format, extension) to store an image of this source format as."""
    if source_format in OUTPUT_EXTENSIONS:
        return source_format, OUTPUT_EXTENSIONS[source_format]
    return "JPEG", OUTPUT_EXTENSIONS["JPEG"]


def decode(data: bytes) -> Image.Image:
    """Decode and apply the EXIF orientation so phone photos aren't sideways."""
    try:
        with Image.open(BytesIO(data)) as opened:
            opened.load()
            return ImageOps.exif_transpose(opened)
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(
            message="The uploaded file could not be decoded as an image",
            field="file",
            context={"error": str(e)},
        )


def encode(image: Image.Image, image_format: str, quality: str) -> bytes:
    writable = _WRITABLE_MODES.get(image_format)
    buffer = BytesIO()
    try:
        if writable and image.mode not in writable:
            has_alpha = "A" in image.getbands() or "transparency" in image.info
            image = image.convert("RGBA" if has_alpha and "RGBA" in writable else "RGB")
        if image_format == "JPEG":
            image.save(buffer, format="JPEG", quality=JPEG_QUALITY[quality])
        else:
            image.save(buffer, format=image_format)
    except (OSError, ValueError) as e:
        raise ValidationError(
            message="The uploaded image could not be re-encoded",
            field="file",
            context={"format": image_format, "mode": image.mode, "error": str(e)},
        )
    return buffer.getvalue()


def fit_within(image: Image.Image, max_size: int, quality: str) -> Image.Image:
    """Scale down (never up) so neither side exceeds max_size."""
    if image.width <= max_size and image.height <= max_size:
        return image
    resized = image.copy()
    resized.thumbnail((max_size, max_size), resample_filter(quality))
    return resized


def make_thumbnail(image: Image.Image, size: int, quality: str) -> Image.Image:
    return ImageOps.fit(image, (size, size), method=resample_filter(quality))


def process_upload(
    data: bytes,
    image_quality: str,
    image_size: int,
    thumbnail_quality: str,
    thumbnail_size: int,
) -> ProcessedImage:
    """
    Validate, orient, resize and thumbnail one upload.

    The stored format follows the sniffed content, never the client's file
    name: JPEG, PNG, GIF, BMP and TIFF keep their format, everything else
    becomes JPEG. IMAGE_QUALITY=original keeps the uploaded bytes only when
    they are already in the stored format.

    Raises:
        ValidationError: the content is not an image, or cannot be re-encoded
    """
    source_format = sniff_format(data)
    if source_format is None:
        raise ValidationError(
            message="Attachment must be an image",
            field="file",
            context={"detected_mime": "application/octet-stream"},
        )

    image_format, extension = output_format(source_format)
    name = f"{uuid.uuid4()}{extension}"

    image = decode(data)

    if image_quality == "original":
        if source_format == image_format:
            original = data
        else:
            original = encode(image, image_format, image_quality)
    else:
        original = encode(fit_within(image, image_size, image_quality), image_format, image_quality)

    thumbnail = encode(make_thumbnail(image, thumbnail_size, thumbnail_quality), image_format, thumbnail_quality)

    return ProcessedImage(
        name=name,
        content_type=Image.MIME.get(image_format, f"image/{image_format.lower()}"),
        original=original,
        thumbnail=thumbnail,
    )


# ══════════════════════════════════════════════════════════════════════════
# Storage layout
# ══════════════════════════════════════════════════════════════════════════

def recipe_dir(recipe_id: int) -> str:
    return f"{UPLOADS_DIR}/recipes/{recipe_id}"


def image_path(recipe_id: int, name: str) -> str:
    return f"{recipe_dir(recipe_id)}/images/{name}"


def thumbnail_path(recipe_id: int, name: str) -> str:
    return f"{recipe_dir(recipe_id)}/thumbs/{name}"


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class ImageService:
    """Image records for a recipe plus the upload pipeline that creates them."""

    async def _require_recipe(self, db: AsyncSession, recipe_id: int) -> Recipe:
        recipe = await db.get(Recipe, recipe_id, populate_existing=True)
        if recipe is None:
            raise NotFoundError(resource="recipe", resource_id=recipe_id)
        return recipe

    async def set_main_image_if_necessary(self, db: AsyncSession, recipe_id: int) -> None:
        """Point recipe.image_id at the oldest image when it is currently unset."""
        oldest = (
            select(RecipeImage.id)
            .where(RecipeImage.recipe_id == recipe_id)
            .order_by(RecipeImage.created_at.asc(), RecipeImage.id.asc())
            .limit(1)
            .scalar_subquery()
        )
        await db.execute(
            update(Recipe)
            .where(Recipe.id == recipe_id, Recipe.image_id.is_(None))
            .values(image_id=oldest)
            .execution_options(synchronize_session=False)
        )

    async def create(
        self,
        db: AsyncSession,
        recipe_id: int,
        name: str,
        url: str,
        thumbnail_url: str,
    ) -> RecipeImageResponse:
        with database_errors("create image"):
            image = RecipeImage(recipe_id=recipe_id, name=name, url=url, thumbnail_url=thumbnail_url)
            db.add(image)
            await db.flush()
            await self.set_main_image_if_necessary(db, recipe_id)
            await db.refresh(image)
        return RecipeImageResponse.model_validate(image)

    async def upload(
        self,
        db: AsyncSession,
        recipe_id: int,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> RecipeImageResponse:
        """
        Full upload workflow for one recipe image.

        Files are written first, then the row is inserted and committed. If
        the insert or the commit fails the files are removed again, so storage
        never holds files without a row. `filename` is only logged; the stored
        name and format come from the content.
        """
        await self._require_recipe(db, recipe_id)
        file_service.validate_size(content_length, len(content))

        processed = await run_in_threadpool(
            process_upload,
            content,
            settings.image_quality,
            settings.image_size,
            settings.thumbnail_quality,
            settings.thumbnail_size,
        )

        original_rel = image_path(recipe_id, processed.name)
        thumb_rel = thumbnail_path(recipe_id, processed.name)
        url = await file_service.save(original_rel, processed.original)
        thumb_url = await file_service.save(thumb_rel, processed.thumbnail)

        try:
            result = await self.create(db, recipe_id, processed.name, url, thumb_url)
            with database_errors("commit image"):
                await db.commit()
        except Exception:
            await file_service.delete(original_rel)
            await file_service.delete(thumb_rel)
            raise

        logger.info(
            "Image %s uploaded for recipe %d from %r (%s, %d bytes → %d + %d)",
            processed.name,
            recipe_id,
            filename,
            processed.content_type,
            len(content),
            len(processed.original),
            len(processed.thumbnail),
        )
        return result

    async def read(self, db: AsyncSession, recipe_id: int, image_id: int) -> RecipeImageResponse:
        with database_errors("read image"):
            result = await db.execute(
                select(RecipeImage).where(
                    RecipeImage.recipe_id == recipe_id, RecipeImage.id == image_id
                )
            )
            image = result.scalar_one_or_none()
        if image is None:
            raise NotFoundError(resource="image", resource_id=image_id)
        return RecipeImageResponse.model_validate(image)

    async def read_main_image(self, db: AsyncSession, recipe_id: int) -> RecipeImageResponse:
        recipe = await self._require_recipe(db, recipe_id)
        if recipe.image_id is None:
            raise NotFoundError(resource="main image of recipe", resource_id=recipe_id)
        return await self.read(db, recipe_id, recipe.image_id)

    async def update_main_image(self, db: AsyncSession, recipe_id: int, image_id: int) -> None:
        # Must be one of this recipe's images
        await self.read(db, recipe_id, image_id)
        with database_errors("update main image"):
            await db.execute(
                update(Recipe)
                .where(Recipe.id == recipe_id)
                .values(image_id=image_id)
                .execution_options(synchronize_session=False)
            )

    async def list(self, db: AsyncSession, recipe_id: int) -> List[RecipeImageResponse]:
        with database_errors("list images"):
            result = await db.execute(
                select(RecipeImage)
                .where(RecipeImage.recipe_id == recipe_id)
                .order_by(RecipeImage.created_at.asc(), RecipeImage.id.asc())
            )
            images = result.scalars().all()
        return [RecipeImageResponse.model_validate(image) for image in images]

    async def delete(self, db: AsyncSession, recipe_id: int, image_id: int) -> None:
        image = await self.read(db, recipe_id, image_id)
        with database_errors("delete image"):
            await db.execute(
                delete(RecipeImage).where(
                    RecipeImage.recipe_id == recipe_id, RecipeImage.id == image_id
                )
            )
            await db.execute(
                update(Recipe)
                .where(Recipe.id == recipe_id, Recipe.image_id == image_id)
                .values(image_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.set_main_image_if_necessary(db, recipe_id)
            # Storage is only touched once the rows are committed
            await db.commit()

        await file_service.delete(image_path(recipe_id, image.name))
        await file_service.delete(thumbnail_path(recipe_id, image.name))
        logger.info("Image %d deleted from recipe %d", image_id, recipe_id)

    async def delete_all(self, db: AsyncSession, recipe_id: int) -> None:
        with database_errors("delete all images"):
            await db.execute(delete(RecipeImage).where(RecipeImage.recipe_id == recipe_id))
            await db.execute(
                update(Recipe)
                .where(Recipe.id == recipe_id)
                .values(image_id=None)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

        await file_service.delete_all(f"{recipe_dir(recipe_id)}/images")
        await file_service.delete_all(f"{recipe_dir(recipe_id)}/thumbs")


image_service = ImageService()
