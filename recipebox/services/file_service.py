"""
RecipeBox — File Storage Service
================================

What:  All reads and writes beneath STORAGE_ROOT (uploads and backups).
Why:   Centralizes file system operations behind one path-confinement check.
How:   Paths are always relative to the storage root, e.g.
       `uploads/recipes/12/images/<uuid>.jpg`. Writes go through aiofiles so
       large images don't block the event loop.
Who:   Called by ImageService, the generic upload route, RecipeService (on
       delete) and BackupService.

Directory Structure:
    <storage_root>/
    ├── uploads/
    │   ├── <uuid>.<ext>                      ← generic uploads
    │   └── recipes/<recipe_id>/
    │       ├── images/<uuid>.<ext>           ← full-size
    │       └── thumbs/<uuid>.<ext>           ← square thumbnails
    └── backups/<timestamp>.zip

Security Model:
    1. Size check:   Uploads above MAX_FILE_SIZE are rejected before processing
    2. UUID names:   Stored filenames contain no user input
    3. Confinement:  Every relative path is resolved and must stay inside the root
"""

import logging
import shutil
import uuid
from pathlib import Path
from typing import Iterator, Optional, Tuple

import aiofiles
from starlette.concurrency import run_in_threadpool

from recipebox.config import settings
from recipebox.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

UPLOADS_DIR = "uploads"


class FileService:
    """
    Manages the storage root.

    Every public method takes a path relative to the root, using forward
    slashes; the public URL of a stored file is that same path prefixed with "/".
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Paths ─────────────────────────────────────────────────────────────

    def resolve(self, relative_path: str) -> Path:
        """
        Absolute path for a storage-relative path.

        Raises:
            ValidationError: the path escapes the storage root (../, absolute paths)
        """
        candidate = (self.storage_root / relative_path.lstrip("/")).resolve()
        if candidate != self.storage_root and self.storage_root not in candidate.parents:
            raise ValidationError(
                message="Invalid file path",
                field="path",
                context={"path": relative_path},
            )
        return candidate

    @staticmethod
    def url_for(relative_path: str) -> str:
        return "/" + relative_path.lstrip("/")

    # ── Validation ────────────────────────────────────────────────────────

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Rejects uploads over MAX_FILE_SIZE.

        Content-Length is checked as well as the real size because some
        clients send an inaccurate header.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller file.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="file")

    # ── I/O ───────────────────────────────────────────────────────────────

    async def save(self, relative_path: str, content: bytes) -> str:
        """
        Write bytes to a storage-relative path, creating parent directories.

        Returns: The public URL of the stored file.
        Raises:  FileStorageError if the write fails.
        """
        absolute_path = self.resolve(relative_path)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return self.url_for(relative_path)

    async def store_upload(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """Store a generic upload as uploads/<uuid><ext>. Returns its URL."""
        self.validate_size(content_length, len(content))
        extension = Path(filename or "").suffix.lower()
        if not extension.isascii() or not extension[1:].isalnum():
            extension = ""
        return await self.save(f"{UPLOADS_DIR}/{uuid.uuid4()}{extension}", content)

    async def delete(self, relative_path: str) -> None:
        """Remove one file. A file that is already gone is not an error."""
        absolute_path = self.resolve(relative_path)
        try:
            await run_in_threadpool(absolute_path.unlink, missing_ok=True)
        except OSError as e:
            logger.error("Failed to delete %s: %s", relative_path, str(e))
            raise FileStorageError(
                message="Failed to delete file",
                context={"path": relative_path, "os_error": str(e)},
            )
        logger.debug("Deleted file: %s", relative_path)

    async def delete_all(self, relative_dir: str) -> None:
        """Remove a directory tree. A directory that is already gone is not an error."""
        absolute_dir = self.resolve(relative_dir)
        if absolute_dir == self.storage_root:
            raise ValidationError(message="Refusing to delete the storage root", field="path")
        if not absolute_dir.exists():
            return
        try:
            # rmtree walks the whole tree; keep it off the event loop
            await run_in_threadpool(shutil.rmtree, absolute_dir)
        except OSError as e:
            logger.error("Failed to delete directory %s: %s", relative_dir, str(e))
            raise FileStorageError(
                message="Failed to delete files",
                context={"path": relative_dir, "os_error": str(e)},
            )
        logger.info("Deleted directory: %s", relative_dir)

    def walk(self, relative_dir: str) -> Iterator[Tuple[str, Path]]:
        """Yield (relative_path, absolute_path) for every file beneath a directory."""
        absolute_dir = self.resolve(relative_dir)
        if not absolute_dir.is_dir():
            return
        for path in sorted(absolute_dir.rglob("*")):
            if path.is_file():
                yield path.relative_to(self.storage_root).as_posix(), path


file_service = FileService()
