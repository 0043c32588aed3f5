"""
Pytest configuration and fixtures for backend tests.

Service tests run against an in-memory SQLite database through an
``AsyncSession`` bound to the test's own event loop. HTTP tests go through
``TestClient``, which runs the app on a separate loop, so they use a
file-backed database: the app opens a fresh connection per request and the
test seeds data through a plain synchronous session.
"""

import os
import sys
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["ENVIRONMENT"] = "test"
os.environ["CORS_ORIGINS"] = '["http://localhost:3000"]'
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="repotics-uploads-")
os.environ["LLM_API_KEY"] = ""

from authentication.auth import create_access_token, get_password_hash  # noqa: E402
from helpers.time_utils import utc_now  # noqa: E402
from models.ai_status import AIReportStatus  # noqa: E402
from models.exceptions import (  # noqa: E402
    StorageUploadException,
    UpstreamDegradedException,
)
from repositories.database import Base, get_db  # noqa: E402
import repositories.db_models as db_models  # noqa: E402
from services.llm_client import get_llm_client  # noqa: E402
from services.storage_service import (  # noqa: E402
    DownloadedObject,
    StoredObject,
    get_storage,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpassword123"


# ============================================================================
# Fake collaborators
# ============================================================================


class FakeStorage:
    """
    In-memory object storage.

    ``fail_on`` lists 1-based upload attempts that raise, so tests can make
    the n-th image of a submission fail. They raise ``upload_error`` when set,
    a ``StorageUploadException`` otherwise.
    """

    def __init__(
        self,
        fail_on: Sequence[int] = (),
        fail_destroy: bool = False,
        upload_error: Optional[Exception] = None,
    ):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.fail_on = set(fail_on)
        self.fail_destroy = fail_destroy
        self.upload_error = upload_error
        self.upload_attempts = 0
        self.destroyed: list[str] = []

    async def upload(
        self, data: bytes, folder: str, filename: str, content_type: str
    ) -> StoredObject:
        self.upload_attempts += 1
        if self.upload_attempts in self.fail_on:
            if self.upload_error is not None:
                raise self.upload_error
            raise StorageUploadException(f"Upload {self.upload_attempts} rejected")
        public_id = f"{folder}/{self.upload_attempts}-{filename}"
        self.objects[public_id] = data
        self.content_types[public_id] = content_type
        return StoredObject(url=f"https://cdn.test/{public_id}", public_id=public_id)

    async def destroy(self, public_id: str) -> None:
        if self.fail_destroy:
            raise StorageUploadException(f"Cannot delete {public_id}")
        self.destroyed.append(public_id)
        self.objects.pop(public_id, None)

    async def download(self, url: str) -> DownloadedObject:
        public_id = url.removeprefix("https://cdn.test/")
        if public_id not in self.objects:
            raise StorageUploadException(f"No object at {url}")
        return DownloadedObject(
            self.objects[public_id], self.content_types.get(public_id, "image/jpeg")
        )


class FakeLLM:
    """
    Scripted language model.

    Each call pops the next response; an exception instance is raised
    instead of returned. When the script runs out every call degrades.
    """

    def __init__(self, *responses: str | Exception):
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def complete(self, system_prompt, user_prompt, images=None) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "images": list(images or []),
            }
        )
        if not self.responses:
            raise UpstreamDegradedException("No scripted response")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


# ============================================================================
# Async database (service and repository tests)
# ============================================================================


@pytest.fixture
async def db_session():
    """Create a fresh in-memory database session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_user(db_session):
    """Factory creating users in the async test database."""
    counter = {"n": 0}

    async def _make_user(
        username: Optional[str] = None,
        location: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        is_admin: bool = False,
    ) -> db_models.User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = db_models.User(
            name=username.title(),
            username=username,
            email=f"{username}@example.com",
            hashed_password=get_password_hash(TEST_PASSWORD),
            dob=date(1990, 1, 1),
            location=location,
            latitude=latitude,
            longitude=longitude,
            badges=[],
            is_admin=is_admin,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


def build_report(
    author: db_models.User,
    created_at: Optional[datetime] = None,
    status: AIReportStatus = AIReportStatus.AWAITING_USER_APPROVAL,
    **fields,
) -> db_models.Report:
    """Build an unsaved report aggregate with every relationship set."""
    created_at = created_at or utc_now()
    values = dict(
        user_id=author.id,
        author=author,
        description=fields.pop("description", "Phone snatched at gunpoint"),
        incident_description="Phone snatched at gunpoint",
        category="robbery",
        incident_date="2024-05-01",
        incident_time="21:30",
        location_text="F-8, Islamabad",
        tags=[],
        likes=[],
        upvotes=[],
        downvotes=[],
        images=[],
        comments=[],
        ai_report=db_models.AIReport(
            status=status, short_summary="A phone was snatched."
        ),
        created_at=created_at,
        updated_at=created_at,
    )
    values.update(fields)
    return db_models.Report(**values)


@pytest.fixture
def make_report(db_session):
    """Factory creating reports in the async test database."""

    async def _make_report(author: db_models.User, **fields) -> db_models.Report:
        report = build_report(author, **fields)
        db_session.add(report)
        await db_session.commit()
        return report

    return _make_report


# ============================================================================
# HTTP client (integration tests)
# ============================================================================


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(bind=sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def sync_db(db_path):
    """Synchronous session on the integration database, for seeding and checks."""
    engine = create_engine(f"sqlite:///{db_path}")
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_path, storage, llm):
    """Create a test client with database, storage and AI overridden."""
    from main import app
    from helpers.rate_limiter import limiter

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    session_factory = async_sessionmaker(
        engine, expire_on_commit=False, autoflush=False
    )

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_llm_client] = lambda: llm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seed_user(sync_db):
    """Factory inserting users through the synchronous session."""
    counter = {"n": 0}

    def _seed_user(username: Optional[str] = None, **fields) -> db_models.User:
        counter["n"] += 1
        username = username or f"member{counter['n']}"
        values = dict(
            name=username.title(),
            username=username,
            email=f"{username}@example.com",
            hashed_password=get_password_hash(TEST_PASSWORD),
            dob=date(1990, 1, 1),
            badges=[],
        )
        values.update(fields)
        user = db_models.User(**values)
        sync_db.add(user)
        sync_db.commit()
        return user

    return _seed_user


@pytest.fixture
def seed_report(sync_db):
    def _seed_report(author: db_models.User, **fields) -> db_models.Report:
        report = build_report(author, **fields)
        sync_db.add(report)
        sync_db.commit()
        return report

    return _seed_report


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user."""

    def _auth_headers(user: db_models.User) -> dict[str, str]:
        token = create_access_token(
            data={"sub": str(user.id)}, expires_delta=timedelta(minutes=30)
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
