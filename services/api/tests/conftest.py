"""Pytest configuration and fixtures for API tests.

Persistence runs against an in-memory SQLite database through aiosqlite.
Providers, artifact storage and analytics are replaced with in-process
fakes that record what they were asked to do.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.blob import (
    ArtifactKey,
    ArtifactNotFoundError,
    ArtifactStore,
    ArtifactStoreError,
    DownloadedArtifact,
    StoredArtifact,
)
from shared.db.models import Base, User
from shared.quota import QuotaDimension

from api.errors import ProviderError
from api.providers import ProviderName, ProviderRequest, ProviderResult
from api.services.generation_ledger import GenerationLedger
from api.services.pipeline import GenerationPipeline
from api.services.quota_ledger import QuotaLedger

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)
AUDIO_BYTES = b"ID3-fake-mp3-payload"


# ============================================================================
# Fakes
# ============================================================================


class InMemoryArtifactStore(ArtifactStore):
    """Artifact store keeping objects in a dict.

    ``fail_upload_when`` and ``fail_remove_when`` are predicates on the
    artifact path that make the matching call raise.
    """

    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.uploaded: list[str] = []
        self.removed: list[str] = []
        self.fail_upload_when: Callable[[str], bool] = lambda path: False
        self.fail_remove_when: Callable[[str], bool] = lambda path: False
        self._next_id = 0

    async def upload(self, key: ArtifactKey, content: bytes, content_type: str = "audio/mpeg") -> StoredArtifact:
        path = key.path
        if not content:
            raise ArtifactStoreError("Cannot upload empty artifact", context={"path": path})
        if self.fail_upload_when(path):
            raise ArtifactStoreError(f"upload rejected: {path}", status_code=503)
        self._next_id += 1
        self.objects[path] = (content, content_type)
        self.uploaded.append(path)
        return StoredArtifact(
            path=path,
            file_id=f"file-{self._next_id}",
            url=f"memory://{path}",
            size=len(content),
            content_type=content_type,
        )

    async def download(self, path: str) -> DownloadedArtifact:
        if path not in self.objects:
            raise ArtifactNotFoundError("not found", status_code=404, context={"path": path})
        content, content_type = self.objects[path]
        return DownloadedArtifact(content=content, content_type=content_type, length=len(content))

    async def remove(self, path: str, file_id: str | None = None) -> None:
        self.removed.append(path)
        if self.fail_remove_when(path):
            raise ArtifactStoreError(f"remove rejected: {path}", status_code=500)
        if path not in self.objects:
            raise ArtifactNotFoundError("not found", status_code=404, context={"path": path})
        del self.objects[path]


class FakeGateway:
    """Provider gateway returning canned results per request type."""

    def __init__(self):
        self.results: dict[type, ProviderResult] = {}
        self.default_result = ProviderResult(content=AUDIO_BYTES)
        self.error: Exception | None = None
        self.calls: list[tuple[ProviderRequest, ProviderName | str | None]] = []

    async def invoke(self, request: ProviderRequest, provider: ProviderName | str | None = None) -> ProviderResult:
        self.calls.append((request, provider))
        if self.error is not None:
            raise self.error
        return self.results.get(type(request), self.default_result)

    def fail_with(self, status: int = 500, message: str = "upstream exploded") -> None:
        self.error = ProviderError("elevenlabs", message, upstream_status=status)

    async def close(self) -> None:
        pass


class RecordingAnalytics:
    """Analytics client that keeps captured events."""

    def __init__(self):
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def capture(self, distinct_id: str, event: str, properties: dict[str, Any] | None = None) -> None:
        self.events.append((distinct_id, event, dict(properties or {})))

    def names(self) -> list[str]:
        return [event for _, event, _ in self.events]


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def analytics() -> RecordingAnalytics:
    return RecordingAnalytics()


@pytest.fixture
def quota(session, clock) -> QuotaLedger:
    return QuotaLedger(session, clock=clock)


@pytest.fixture
def records(session) -> GenerationLedger:
    return GenerationLedger(session)


@pytest_asyncio.fixture
async def user(quota) -> User:
    """Free-plan account with external id ``u1``."""
    return await quota.get_or_create_account("u1", email="u1@example.com")


@pytest.fixture
def pipeline(quota, gateway, store, records, analytics, clock) -> GenerationPipeline:
    return GenerationPipeline(
        quota=quota,
        gateway=gateway,
        store=store,
        records=records,
        analytics=analytics,
        clock=clock,
    )


@pytest.fixture
def set_usage(quota):
    """Overwrite current-period counters, e.g. ``await set_usage(user, characters=9990)``."""

    async def _set(user: User, **values: float) -> None:
        counter = await quota.get_usage(user)
        for name, value in values.items():
            setattr(counter, QuotaDimension(name).value, value)
        await quota.session.commit()

    return _set


@pytest.fixture
def read_usage(session_factory):
    """Read counters through a fresh session, bypassing the identity map."""

    async def _read(user_id: UUID) -> dict[QuotaDimension, float]:
        async with session_factory() as fresh:
            ledger = QuotaLedger(fresh, clock=lambda: FIXED_NOW)
            counter = await ledger._find_counter(user_id, FIXED_NOW.date().replace(day=1))
            if counter is None:
                return {dimension: 0 for dimension in QuotaDimension}
            return QuotaLedger.usage_map(counter)

    return _read


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(session_factory, store, gateway, analytics):
    """FastAPI app with database, storage, providers and analytics overridden.

    The lifespan is not run, so no real database or network is touched.
    """
    from api.dependencies import get_analytics_client, get_gateway, get_store
    from api.main import create_app
    from shared.db.connection import get_session

    application = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_session] = override_session
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_gateway] = lambda: gateway
    application.dependency_overrides[get_analytics_client] = lambda: analytics
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-User-Id": "user_test_1", "X-User-Email": "tester@example.com"}
