"""
RecipeBox — File Service Unit Tests
===================================

What:  Tests for FileService confinement, size checks and disk I/O.
How:   Every test gets its own FileService rooted in a pytest tmp directory.

Test Strategy:
    ✅ Paths that escape the storage root are rejected
    ✅ Size limits (header and actual) and empty uploads
    ✅ save / delete / delete_all / walk on disk, tree removal off the event loop
    ✅ Generic uploads get UUID names and a sanitized extension
"""

import re
import shutil
from pathlib import Path

import pytest

from recipebox.config import settings
from recipebox.exceptions import ValidationError
import recipebox.services.file_service as file_service_module
from recipebox.services.file_service import FileService

UPLOAD_URL = re.compile(r"^/uploads/[0-9a-f-]{36}(\.[a-z0-9]+)?$")


class TestPathConfinement:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(temp_storage)
        self.root = Path(temp_storage).resolve()

    def test_relative_path_resolves_under_root(self):
        assert self.service.resolve("uploads/a.jpg") == self.root / "uploads" / "a.jpg"

    def test_leading_slash_is_relative(self):
        """A URL path like /uploads/a.jpg maps into the root, not the filesystem root."""
        assert self.service.resolve("/uploads/a.jpg") == self.root / "uploads" / "a.jpg"

    @pytest.mark.parametrize("path", ["../outside.txt", "uploads/../../etc/passwd", "a/b/../../../x"])
    def test_escaping_paths_rejected(self, path):
        with pytest.raises(ValidationError, match="Invalid file path"):
            self.service.resolve(path)

    def test_url_for(self):
        assert FileService.url_for("uploads/a.jpg") == "/uploads/a.jpg"
        assert FileService.url_for("/uploads/a.jpg") == "/uploads/a.jpg"


class TestSizeValidation:

    def setup_method(self):
        self.service = FileService()

    def test_within_limit(self):
        self.service.validate_size(None, 1000)

    def test_exact_limit_passes(self):
        self.service.validate_size(settings.max_file_size, settings.max_file_size)

    def test_actual_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(None, settings.max_file_size + 1)

    def test_reported_size_over_limit(self):
        """Content-Length alone is enough to reject."""
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(settings.max_file_size + 1, 10)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0, 0)


class TestStorageIO:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(temp_storage)
        self.root = Path(temp_storage).resolve()

    @pytest.mark.asyncio
    async def test_save_creates_parents_and_returns_url(self):
        url = await self.service.save("uploads/recipes/1/images/a.jpg", b"data")

        assert url == "/uploads/recipes/1/images/a.jpg"
        assert (self.root / "uploads/recipes/1/images/a.jpg").read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self):
        await self.service.save("uploads/a.bin", b"x")

        await self.service.delete("uploads/a.bin")
        await self.service.delete("uploads/a.bin")

        assert not (self.root / "uploads/a.bin").exists()

    @pytest.mark.asyncio
    async def test_delete_all_removes_tree(self):
        await self.service.save("uploads/recipes/1/images/a.jpg", b"x")
        await self.service.save("uploads/recipes/1/thumbs/a.jpg", b"x")
        await self.service.save("uploads/recipes/2/images/b.jpg", b"x")

        await self.service.delete_all("uploads/recipes/1")

        assert not (self.root / "uploads/recipes/1").exists()
        assert (self.root / "uploads/recipes/2/images/b.jpg").exists()

    @pytest.mark.asyncio
    async def test_delete_all_runs_in_worker_thread(self, monkeypatch):
        """The tree removal is handed to the threadpool, never run on the event loop."""
        offloaded = []

        async def recording_threadpool(func, *args, **kwargs):
            offloaded.append(func)
            return func(*args, **kwargs)

        monkeypatch.setattr(file_service_module, "run_in_threadpool", recording_threadpool)
        await self.service.save("uploads/recipes/1/images/a.jpg", b"x")

        await self.service.delete_all("uploads/recipes/1")

        assert offloaded == [shutil.rmtree]
        assert not (self.root / "uploads/recipes/1").exists()

    @pytest.mark.asyncio
    async def test_delete_all_missing_directory_is_fine(self):
        await self.service.delete_all("uploads/recipes/99")

    @pytest.mark.asyncio
    async def test_delete_all_refuses_root(self):
        with pytest.raises(ValidationError, match="storage root"):
            await self.service.delete_all("")

    @pytest.mark.asyncio
    async def test_walk_lists_files_sorted(self):
        await self.service.save("uploads/b.txt", b"b")
        await self.service.save("uploads/a/c.txt", b"c")
        await self.service.save("backups/x.zip", b"z")

        walked = [relative for relative, _ in self.service.walk("uploads")]

        assert walked == ["uploads/a/c.txt", "uploads/b.txt"]

    def test_walk_missing_directory_yields_nothing(self):
        assert list(self.service.walk("uploads")) == []


class TestStoreUpload:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(temp_storage)
        self.root = Path(temp_storage).resolve()

    @pytest.mark.asyncio
    async def test_uuid_name_keeps_extension(self):
        url = await self.service.store_upload("Family Photo.PNG", b"png-bytes")

        assert UPLOAD_URL.match(url)
        assert url.endswith(".png")
        assert (self.root / url.lstrip("/")).read_bytes() == b"png-bytes"

    @pytest.mark.asyncio
    async def test_user_filename_never_reaches_disk(self):
        url = await self.service.store_upload("../../evil.sh", b"x")
        assert "evil" not in url
        assert UPLOAD_URL.match(url)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", [None, "noextension", "weird.ex t", "file.é"])
    async def test_unusable_extension_dropped(self, filename):
        url = await self.service.store_upload(filename, b"x")
        assert UPLOAD_URL.match(url)
        assert "." not in url.rsplit("/", 1)[1]

    @pytest.mark.asyncio
    async def test_empty_upload_rejected(self):
        with pytest.raises(ValidationError):
            await self.service.store_upload("a.txt", b"")
