"""
RecipeBox — Test Configuration (conftest.py)
============================================

What:  Shared pytest fixtures for the entire test suite.
How:   Services run against a real temporary SQLite database (aiosqlite) so
       the search SQL, cascades and transactions are exercised for real.
       API tests drive the app in-process through httpx's ASGITransport.

Fixture Hierarchy:
    db_engine        create_all before the test, drop_all + dispose after
    ├── db_session   one AsyncSession, rolled back at the end
    ├── users        an admin, an editor and a viewer (committed)
    │   └── auth     Authorization headers for each of them
    └── test_client  httpx AsyncClient bound to the FastAPI app

    temp_storage         empty directory for FileService instances
    sample_image_bytes   a real JPEG made with Pillow
    break_commits        makes later commits fail, for rollback paths
"""

import os
import tempfile

# Settings are read at import time, so the environment must be in place
# before anything from recipebox is imported.
_TEST_DIR = tempfile.mkdtemp(prefix="recipebox_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["DATABASE_DRIVER"] = "sqlite"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "files")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["SECURE_KEYS"] = "test-signing-key-0123456789abcdef"

import shutil
from io import BytesIO
from pathlib import Path
from typing import Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import Base, async_session_factory, engine
import recipebox.models  # noqa: F401
from recipebox.schemas.user import AccessLevel, UserResponse
from recipebox.services.auth_service import auth_service
from recipebox.services.user_service import user_service

PASSWORDS = {
    AccessLevel.ADMIN: "admin-password",
    AccessLevel.EDITOR: "editor-password",
    AccessLevel.VIEWER: "viewer-password",
}


def make_image_bytes(width: int = 400, height: int = 300, image_format: str = "JPEG", color=(200, 40, 40), exif=None) -> bytes:
    buffer = BytesIO()
    image = Image.new("RGB", (width, height), color)
    if exif is not None:
        image.save(buffer, format=image_format, exif=exif)
    else:
        image.save(buffer, format=image_format)
    return buffer.getvalue()


def bearer(user: UserResponse) -> Dict[str, str]:
    return {"Authorization": f"Bearer {auth_service.issue_token(user.id)}"}


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled connections must not outlive this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def users(db_engine) -> Dict[AccessLevel, UserResponse]:
    async with async_session_factory() as session:
        created = {
            level: await user_service.create(session, f"{level.value}@example.com", level, password)
            for level, password in PASSWORDS.items()
        }
        await session.commit()
    return created


@pytest.fixture
def auth(users) -> Dict[AccessLevel, Dict[str, str]]:
    return {level: bearer(user) for level, user in users.items()}


@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTPX AsyncClient talking to the app in-process.

    ASGITransport doesn't run the lifespan; db_engine creates the tables instead.
    """
    from recipebox.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_storage():
    """Recipe ids restart with every fresh schema, so stored files must not outlive a test."""
    yield
    root = Path(os.environ["STORAGE_ROOT"])
    if root.is_dir():
        for child in root.iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    return make_image_bytes()


@pytest.fixture
def image_factory():
    """make_image_bytes, for tests that need sizes, formats or EXIF."""
    return make_image_bytes


@pytest.fixture
def passwords() -> Dict[AccessLevel, str]:
    return dict(PASSWORDS)


@pytest.fixture
def break_commits(monkeypatch):
    """Call the returned function to make every later session commit fail."""

    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    def install() -> None:
        monkeypatch.setattr(AsyncSession, "commit", failing_commit)

    return install
