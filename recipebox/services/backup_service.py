"""
RecipeBox — Backup Service
==========================

What:  Builds a zip archive of the whole library and stores it under backups/,
       where admins can download it again by name.
How:   Rows are dumped to recipes.json / users.json, then every file beneath
       uploads/ is added with its storage-relative path. Archive assembly is
       blocking zipfile work and runs in a worker thread.

Archive layout:
    recipes.json
    users.json
    uploads/recipes/{id}/images/...
    uploads/recipes/{id}/thumbs/...
    uploads/{uuid}.{ext}

Password hashes are never written to the archive.
"""

import io
import json
import logging
import zipfile
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from recipebox.models import (
    AppUser,
    AppUserFavoriteTag,
    AppUserSettings,
    Recipe,
    RecipeImage,
    RecipeLink,
    RecipeNote,
    RecipeRating,
    RecipeTag,
    SearchFilterField,
    SearchFilterRecord,
    SearchFilterState,
    SearchFilterTag,
)
from recipebox.exceptions import NotFoundError
from recipebox.services import database_errors
from recipebox.services.file_service import UPLOADS_DIR, file_service

logger = logging.getLogger(__name__)

BACKUPS_DIR = "backups"


def _timestamp(value: datetime) -> str:
    return value.isoformat()


def _grouped(rows, key: str, value: str) -> Dict[int, List[Any]]:
    grouped: Dict[int, List[Any]] = defaultdict(list)
    for row in rows:
        grouped[getattr(row, key)].append(getattr(row, value))
    return grouped


def build_archive(documents: Dict[str, Any], files: List[Tuple[str, Path]]) -> bytes:
    """Zip JSON documents and stored files into one in-memory archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, document in documents.items():
            archive.writestr(name, json.dumps(document, indent=2, sort_keys=True))
        for relative_path, absolute_path in files:
            archive.write(absolute_path, arcname=relative_path)
    return buffer.getvalue()


class BackupService:

    async def _dump_recipes(self, db: AsyncSession) -> List[Dict[str, Any]]:
        # image_id is maintained with bulk UPDATEs; reload rather than trust the identity map
        recipes = (
            await db.execute(
                select(Recipe).order_by(Recipe.id).execution_options(populate_existing=True)
            )
        ).scalars().all()
        tags = _grouped(
            (await db.execute(select(RecipeTag).order_by(RecipeTag.tag))).scalars().all(),
            "recipe_id", "tag",
        )
        links = _grouped(
            (await db.execute(select(RecipeLink))).scalars().all(),
            "recipe_id", "dest_recipe_id",
        )
        ratings = {
            r.recipe_id: r.rating for r in (await db.execute(select(RecipeRating))).scalars().all()
        }

        notes: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for note in (await db.execute(select(RecipeNote).order_by(RecipeNote.id))).scalars().all():
            notes[note.recipe_id].append({
                "id": note.id,
                "text": note.note,
                "created_at": _timestamp(note.created_at),
                "modified_at": _timestamp(note.modified_at),
            })

        images: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for image in (await db.execute(select(RecipeImage).order_by(RecipeImage.id))).scalars().all():
            images[image.recipe_id].append({
                "id": image.id,
                "name": image.name,
                "url": image.url,
                "thumbnail_url": image.thumbnail_url,
                "created_at": _timestamp(image.created_at),
                "modified_at": _timestamp(image.modified_at),
            })

        return [
            {
                "id": recipe.id,
                "name": recipe.name,
                "serving_size": recipe.serving_size,
                "nutrition_info": recipe.nutrition_info,
                "ingredients": recipe.ingredients,
                "directions": recipe.directions,
                "storage_instructions": recipe.storage_instructions,
                "source_url": recipe.source_url,
                "state": recipe.current_state,
                "image_id": recipe.image_id,
                "rating": ratings.get(recipe.id, 0.0),
                "tags": tags.get(recipe.id, []),
                "links": sorted(links.get(recipe.id, [])),
                "notes": notes.get(recipe.id, []),
                "images": images.get(recipe.id, []),
                "created_at": _timestamp(recipe.created_at),
                "modified_at": _timestamp(recipe.modified_at),
            }
            for recipe in recipes
        ]

    async def _dump_users(self, db: AsyncSession) -> List[Dict[str, Any]]:
        users = (await db.execute(select(AppUser).order_by(AppUser.id))).scalars().all()
        user_settings = {
            s.user_id: s for s in (await db.execute(select(AppUserSettings))).scalars().all()
        }
        favorite_tags = _grouped(
            (await db.execute(select(AppUserFavoriteTag).order_by(AppUserFavoriteTag.tag))).scalars().all(),
            "user_id", "tag",
        )
        fields = _grouped((await db.execute(select(SearchFilterField))).scalars().all(), "search_filter_id", "field_name")
        states = _grouped((await db.execute(select(SearchFilterState))).scalars().all(), "search_filter_id", "state")
        filter_tags = _grouped((await db.execute(select(SearchFilterTag))).scalars().all(), "search_filter_id", "tag")

        filters: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        records = (await db.execute(select(SearchFilterRecord).order_by(SearchFilterRecord.id))).scalars().all()
        for record in records:
            filters[record.user_id].append({
                "id": record.id,
                "name": record.name,
                "query": record.query,
                "fields": sorted(fields.get(record.id, [])),
                "states": sorted(states.get(record.id, [])),
                "tags": sorted(filter_tags.get(record.id, [])),
                "with_pictures": record.with_pictures,
                "sort_by": record.sort_by,
                "sort_dir": record.sort_dir,
            })

        dumped = []
        for user in users:
            s = user_settings.get(user.id)
            dumped.append({
                "id": user.id,
                "username": user.username,
                "access_level": user.access_level,
                "created_at": _timestamp(user.created_at),
                "modified_at": _timestamp(user.modified_at),
                "settings": {
                    "home_title": s.home_title if s else None,
                    "home_image_url": s.home_image_url if s else None,
                    "favorite_tags": favorite_tags.get(user.id, []),
                },
                "filters": filters.get(user.id, []),
            })
        return dumped

    async def create(self, db: AsyncSession) -> str:
        """
        Write a new backup archive.

        Returns: The archive's file name (<UTC timestamp>.zip) within backups/.
        """
        with database_errors("create backup"):
            documents = {
                "recipes.json": await self._dump_recipes(db),
                "users.json": await self._dump_users(db),
            }

        files = list(file_service.walk(UPLOADS_DIR))
        content = await run_in_threadpool(build_archive, documents, files)

        name = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ") + ".zip"
        await file_service.save(f"{BACKUPS_DIR}/{name}", content)
        logger.info(
            "Backup %s written (%d recipes, %d users, %d files)",
            name,
            len(documents["recipes.json"]),
            len(documents["users.json"]),
            len(files),
        )
        return name

    def archive_path(self, name: str) -> Path:
        """Absolute path of an existing archive directly inside backups/."""
        backups_root = file_service.resolve(BACKUPS_DIR)
        path = file_service.resolve(f"{BACKUPS_DIR}/{name}")
        if path.parent != backups_root or path.suffix != ".zip" or not path.is_file():
            raise NotFoundError(resource="backup", resource_id=name)
        return path


backup_service = BackupService()
