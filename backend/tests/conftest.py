"""
Pytest fixtures for testing.
"""
import json
from typing import Any, AsyncGenerator, Optional
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Import database module BEFORE app to allow override
import jobboard.database
from jobboard.database import Base
# Import ALL models so Base.metadata knows about all tables
from jobboard.models import IngestLog, Job, JobAlert  # noqa: F401
from jobboard.dependencies import get_extraction_client, get_ingest_queue, get_notifier
from jobboard.services.alert_matcher import AlertMatcher
from jobboard.services.extraction import ExtractionClient
from jobboard.services.moderation import ModerationService
from jobboard.services.notifier import NotificationIntent, Notifier
from jobboard.services.pipeline import IngestionPipeline
from jobboard.services.stores import SqlAlertStore, SqlJobStore, SqlMessageStore
from jobboard.services.task_queue import IngestQueueFullError

# Now import app (after we can override database)
from jobboard.main import app as fastapi_app


# Test database URL (use in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeExtractionClient(ExtractionClient):
    """
    Stands in for the LLM. `response` is returned as model text (dicts and
    lists are JSON-encoded first); `error` is raised from the model call.
    """

    def __init__(self, response: Any = None, error: Optional[Exception] = None, configured: bool = True):
        self.response = {"jobs": []} if response is None else response
        self.error = error
        self.configured = configured
        self.prompts: list[str] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, prompt: str) -> Optional[str]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if isinstance(self.response, (dict, list)):
            return json.dumps(self.response)
        return self.response


class RecordingNotifier(Notifier):
    """Keeps every notification intent instead of delivering it."""

    def __init__(self):
        self.sent: list[NotificationIntent] = []

    async def notify(self, intent: NotificationIntent) -> None:
        self.sent.append(intent)


class RecordingQueue:
    """Ingest queue stand-in that only records submitted log ids."""

    def __init__(self, full: bool = False):
        self.full = full
        self.submitted: list[UUID] = []

    def submit(self, log_id: UUID):
        if self.full:
            raise IngestQueueFullError("Ingest queue is full (0)")
        self.submitted.append(log_id)


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database for each test.
    Ensures cleanup happens even if test fails.
    """
    # Use StaticPool to keep single connection alive and reuse it
    # This ensures all sessions see the same in-memory database
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    # Replace the app's engine and sessionmaker so get_db() and the worker
    # use sessions connected to the test database
    original_engine = jobboard.database.engine
    original_sessionmaker = jobboard.database.AsyncSessionLocal
    
    jobboard.database.engine = test_engine
    jobboard.database.AsyncSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    
    session = jobboard.database.AsyncSessionLocal()
    
    try:
        yield session
    finally:
        try:
            await session.close()
        except Exception as e:
            print(f"Warning: Failed to close session: {e}")
        
        try:
            async with test_engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        except Exception as e:
            print(f"Warning: Failed to drop tables: {e}")
        
        try:
            await test_engine.dispose()
        except Exception as e:
            print(f"Warning: Failed to dispose engine: {e}")
        
        jobboard.database.engine = original_engine
        jobboard.database.AsyncSessionLocal = original_sessionmaker


@pytest.fixture
def extractor() -> FakeExtractionClient:
    return FakeExtractionClient()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def ingest_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def messages(db: AsyncSession) -> SqlMessageStore:
    return SqlMessageStore(db)


@pytest.fixture
def job_store(db: AsyncSession) -> SqlJobStore:
    return SqlJobStore(db)


@pytest.fixture
def alert_store(db: AsyncSession) -> SqlAlertStore:
    return SqlAlertStore(db)


@pytest.fixture
def alert_matcher(alert_store: SqlAlertStore, notifier: RecordingNotifier) -> AlertMatcher:
    return AlertMatcher(alert_store, notifier)


@pytest.fixture
def pipeline(messages, job_store, extractor, alert_matcher) -> IngestionPipeline:
    return IngestionPipeline(
        messages=messages,
        jobs=job_store,
        extractor=extractor,
        alert_matcher=alert_matcher,
        confidence_threshold=0.7,
        default_location="Uganda",
    )


@pytest.fixture
def moderation(messages, job_store, extractor, alert_matcher) -> ModerationService:
    return ModerationService(
        messages=messages,
        jobs=job_store,
        alert_matcher=alert_matcher,
        extractor=extractor,
        default_location="Uganda",
    )


@pytest_asyncio.fixture
async def client(
    db: AsyncSession,
    extractor: FakeExtractionClient,
    notifier: RecordingNotifier,
    ingest_queue: RecordingQueue,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for endpoint tests.
    
    The db fixture already replaced the engine, so endpoints use the test
    database; the LLM, notifier and ingest queue are swapped for fakes.
    """
    fastapi_app.dependency_overrides[get_extraction_client] = lambda: extractor
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    fastapi_app.dependency_overrides[get_ingest_queue] = lambda: ingest_queue
    
    transport = ASGITransport(app=fastapi_app)
    try:
        async with AsyncClient(
            transport=transport,
            base_url="http://test",
            follow_redirects=True  # Follow 307 redirects for trailing slashes
        ) as http_client:
            yield http_client
    finally:
        fastapi_app.dependency_overrides.clear()
