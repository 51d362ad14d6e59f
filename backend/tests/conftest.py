"""
Project Gallery Backend — Test Configuration (conftest.py)
============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite file (aiosqlite) and its own storage
       directory under pytest's tmp_path, so nothing leaks between tests.

Fixture Hierarchy (all function-scoped):
    ├── settings_factory: builds Settings for either storage backend
    ├── test_settings / inline_settings
    ├── database: Database handle with tables created
    ├── db_session: AsyncSession on that database
    ├── fs_storage / inline_storage: BlobStorage backends
    ├── make_project: inserts a project through ProjectService
    ├── make_received: builds ReceivedFile payloads
    ├── make_upload: builds FastAPI UploadFile objects
    └── test_client / inline_client: HTTPX AsyncClient on a fresh app
"""

import io
import os
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import UploadFile
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import Headers


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Set before any app import: app.main builds a module-level app from env
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="gallery_test_db_"), "import.db"
)
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="gallery_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from app.config import Settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.schemas.project import ProjectSaveRequest  # noqa: E402
from app.services.project_service import ProjectService  # noqa: E402
from app.services.storage import FilesystemStorage, InlineStorage  # noqa: E402
from app.services.upload_receiver import ReceivedFile  # noqa: E402

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

# Minimal JPEG: SOI + JFIF header + EOI
JPEG_BYTES = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    b"\xff\xd9"
)


def _list_files(root) -> list:
    path = Path(root)
    if not path.exists():
        return []
    return sorted(p.name for p in path.iterdir() if p.is_file())


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES


@pytest.fixture
def stored_files():
    """Names of the files currently in a storage directory: stored_files(root)."""
    return _list_files


# ══════════════════════════════════════════════════════════════════════════
# Settings & Database
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def storage_root(tmp_path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings_factory(tmp_path, storage_root):
    """
    Build Settings for a test.

    Usage:
        settings = settings_factory(storage_backend="database", max_file_size=2048)
    """
    def _build(**overrides) -> Settings:
        values = dict(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
            storage_backend="filesystem",
            storage_root=str(storage_root),
            log_level="WARNING",
            db_create_tables=False,
            db_connect_attempts=1,
            # Cheap hashing keeps login tests fast
            argon2_time_cost=1,
            argon2_memory_cost=1024,
        )
        values.update(overrides)
        return Settings(**values)

    return _build


@pytest.fixture
def test_settings(settings_factory) -> Settings:
    return settings_factory()


@pytest.fixture
def inline_settings(settings_factory) -> Settings:
    return settings_factory(storage_backend="database")


@pytest_asyncio.fixture
async def database(test_settings):
    db = Database(test_settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Storage & Payloads
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fs_storage(storage_root) -> FilesystemStorage:
    return FilesystemStorage(str(storage_root), "/uploads")


@pytest.fixture
def inline_storage() -> InlineStorage:
    return InlineStorage()


@pytest.fixture
def make_project(db_session, fs_storage):
    """Insert a project and return its id."""
    service = ProjectService(fs_storage)

    async def _make(client_name: str = "Acme", **fields) -> int:
        data = ProjectSaveRequest(
            client_name=client_name,
            description=fields.pop("description", "Office fit-out"),
            status=fields.pop("status", "Active"),
            **fields,
        )
        saved = await service.save_project(db_session, data)
        return saved.project_id

    return _make


@pytest.fixture
def make_received():
    def _make(filename: str = "a.png", content: bytes = PNG_BYTES, media_type: str = "image/png"):
        return ReceivedFile(filename=filename, content=content, media_type=media_type)

    return _make


@pytest.fixture
def make_upload():
    """FastAPI UploadFile backed by an in-memory buffer."""
    def _make(filename: str = "a.png", content: bytes = PNG_BYTES, content_type: str = "image/png"):
        return UploadFile(
            file=io.BytesIO(content),
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP Clients
# ══════════════════════════════════════════════════════════════════════════

async def _app_for(settings: Settings):
    from app.main import create_app

    app = create_app(settings)
    # ASGITransport does not run the lifespan; create the schema directly
    await app.state.database.create_all()
    return app


@pytest_asyncio.fixture
async def test_app(test_settings):
    app = await _app_for(test_settings)
    yield app
    await app.state.database.dispose()


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient talking to a fresh app (filesystem storage).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def inline_client(inline_settings):
    """Same as test_client, with images stored inline in the database."""
    app = await _app_for(inline_settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.database.dispose()
