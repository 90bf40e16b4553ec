"""Shared pytest fixtures: in-memory store and cache doubles, service and API client."""

import datetime
import logging
from collections.abc import AsyncGenerator
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortener.clicks import ClickRecorder
from shortener.config import Settings, get_settings
from shortener.database import get_db
from shortener.dependencies import get_service_manager
from shortener.exceptions import RecordAlreadyExistsError, RecordNotFoundError
from shortener.main import app
from shortener.ports import URLCache, URLRepository
from shortener.schemas import URLRecord, utcnow
from shortener.url_service import URLShorteningService


class InMemoryURLRepository(URLRepository):
    """Dict-backed repository that records every call and can be told to fail."""

    def __init__(self) -> None:
        self.records: dict[str, URLRecord] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}

    def _enter(self, operation: str, arg: str) -> None:
        self.calls.append((operation, arg))
        if operation in self.failures:
            raise self.failures[operation]

    def add(self, record: URLRecord) -> URLRecord:
        self.records[record.short_token] = record
        return record

    async def save(self, record: URLRecord) -> None:
        self._enter("save", record.short_token)
        if record.short_token in self.records:
            raise RecordAlreadyExistsError("duplicate short_token")
        if any(r.original_url == record.original_url for r in self.records.values()):
            raise RecordAlreadyExistsError("duplicate original_url")
        self.records[record.short_token] = record.model_copy()

    async def get_by_token(self, short_token: str) -> URLRecord:
        self._enter("get_by_token", short_token)
        try:
            return self.records[short_token].model_copy()
        except KeyError:
            raise RecordNotFoundError(short_token) from None

    async def get_by_original_url(self, original_url: str) -> URLRecord:
        self._enter("get_by_original_url", original_url)
        for record in self.records.values():
            if record.original_url == original_url:
                return record.model_copy()
        raise RecordNotFoundError(original_url)

    async def increment_and_get_if_valid(self, short_token: str) -> str:
        self._enter("increment_and_get_if_valid", short_token)
        record = self.records.get(short_token)
        if record is None or not record.is_valid():
            raise RecordNotFoundError(short_token)
        record.click_count += 1
        return record.original_url

    async def delete_expired(self, grace: datetime.timedelta) -> int:
        self._enter("delete_expired", str(grace))
        cutoff = utcnow() - grace
        expired = [token for token, record in self.records.items() if record.valid_until < cutoff]
        for token in expired:
            del self.records[token]
        return len(expired)


class InMemoryURLCache(URLCache):
    """Dict-backed cache (no TTL) that records every call and can be told to fail."""

    def __init__(self) -> None:
        self.entries: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}

    async def get(self, key: str) -> str | None:
        self.calls.append(("get", key))
        if "get" in self.failures:
            raise self.failures["get"]
        return self.entries.get(key)

    async def set(self, key: str, value: str) -> None:
        self.calls.append(("set", key))
        if "set" in self.failures:
            raise self.failures["set"]
        self.entries[key] = value


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shortener.tests")


@pytest.fixture
def repository() -> InMemoryURLRepository:
    return InMemoryURLRepository()


@pytest.fixture
def cache() -> InMemoryURLCache:
    return InMemoryURLCache()


@pytest.fixture
def clicks(repository: InMemoryURLRepository, logger: logging.Logger) -> ClickRecorder:
    return ClickRecorder(repository, logger, max_pending=100)


@pytest.fixture
def service(
    repository: InMemoryURLRepository,
    cache: InMemoryURLCache,
    clicks: ClickRecorder,
    settings: Settings,
    logger: logging.Logger,
) -> URLShorteningService:
    return URLShorteningService(repository, cache, clicks, settings=settings, logger=logger)


@pytest.fixture
def make_record(settings: Settings):
    """Build a record whose validity window started ``age`` ago."""

    def _make(
        original_url: str = "https://example.com",
        short_token: str = "abcd1234",
        age: datetime.timedelta = datetime.timedelta(0),
    ) -> URLRecord:
        return URLRecord.new(original_url, short_token, settings.validity_window, now=utcnow() - age)

    return _make


@pytest.fixture
def cache_client() -> AsyncMock:
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    return client


@pytest_asyncio.fixture(scope="function")
async def client(
    service: URLShorteningService,
    settings: Settings,
    logger: logging.Logger,
    cache_client: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    manager = SimpleNamespace(
        settings=settings,
        logger=logger,
        cache_client=cache_client,
        url_service=service,
    )
    db_session = AsyncMock()

    async def override_get_service_manager() -> SimpleNamespace:
        return manager

    async def override_get_db() -> AsyncGenerator[AsyncMock, None]:
        yield db_session

    app.dependency_overrides[get_service_manager] = override_get_service_manager
    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
