"""pytest fixtures for Pinwall tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- clock: Controllable clock (advances 1ms per reading, can jump days)
- session_factory: Function-scoped SQLite database with all tables created
- session: Database session for repository-level tests
- uow_factory: UnitOfWork factory on the test database
- storage / moderation / upload_keys: Services wired to the test database and a temp directory
- test_client: httpx AsyncClient over the FastAPI app
"""

import os

os.environ.setdefault("APP_ENV", "test")

import random  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from pinwall.app import create_app  # noqa: E402
from pinwall.core.config import Settings  # noqa: E402
from pinwall.core.database import (  # noqa: E402
    create_tables,
    dispose_db_session,
    setup_db_session,
)
from pinwall.services.admin_auth import AdminAuthService  # noqa: E402
from pinwall.services.identity import fingerprint  # noqa: E402
from pinwall.services.moderation import ModerationService  # noqa: E402
from pinwall.services.storage import FileStorage, IncomingFile  # noqa: E402
from pinwall.services.upload_keys import UploadKeyService  # noqa: E402
from pinwall.services.upload_policy import UploadPolicy  # noqa: E402
from pinwall.uow import create_uow_factory  # noqa: E402

ADMIN_PASSWORD = "correct horse battery staple"
KEY_SECRET = "test-key-secret"

# Smallest valid PNG-ish payload; content is never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class FakeClock:
    """Clock returning naive UTC datetimes that advance 1ms per reading."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(milliseconds=1)
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_file(name: str = "photo.png", content: bytes = PNG_BYTES) -> IncomingFile:
    """Build an incoming image file."""
    return IncomingFile(original_filename=name, content=content)


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 12, 0, 0))


@pytest.fixture
def identity():
    return fingerprint("203.0.113.7", "Mozilla/5.0 (X11; Linux x86_64)")


@pytest.fixture
def other_identity():
    return fingerprint("198.51.100.23", "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0)")


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Provide a fresh SQLite database per test with all tables created."""
    factory = setup_db_session(f"sqlite+aiosqlite:///{tmp_path / 'pinwall.db'}")
    await create_tables(factory)
    yield factory
    await dispose_db_session(factory)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session; uncommitted changes are rolled back."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(session_factory):
    return create_uow_factory(session_factory)


@pytest.fixture
def storage(tmp_path) -> FileStorage:
    storage = FileStorage(tmp_path / "uploads")
    storage.ensure_root()
    return storage


@pytest.fixture
def policy() -> UploadPolicy:
    return UploadPolicy(
        allowed_extensions=frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"}),
        max_file_bytes=1024 * 1024,
        max_files=9,
    )


@pytest.fixture
def upload_keys(clock) -> UploadKeyService:
    return UploadKeyService(secret=KEY_SECRET, clock=clock)


@pytest.fixture
def moderation(storage, policy, upload_keys) -> ModerationService:
    return ModerationService(
        storage=storage, policy=policy, keys=upload_keys, rng=random.Random(1234)
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        APP_ENV="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'pinwall.db'}",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        KEY_SECRET=KEY_SECRET,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        MAX_UPLOAD_BYTES=1024 * 1024,
    )


@pytest_asyncio.fixture
async def test_client(settings, session_factory, uow_factory, storage, upload_keys, moderation):
    """Provide AsyncClient for testing API endpoints with database access."""
    app = create_app(settings)

    # Lifespan does not run under ASGITransport; wire state the way startup does
    admin_auth = AdminAuthService(rounds=4)
    async with await uow_factory() as uow:
        await admin_auth.set_password(uow, ADMIN_PASSWORD)

    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.admin_auth = admin_auth
    app.state.storage = storage
    app.state.upload_keys = upload_keys
    app.state.moderation = moderation

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
