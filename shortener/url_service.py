"""URL Shortener Service Layer - Core Business Logic

This module keeps the durable store and the cache consistent for the two
hot operations, shortening a URL and resolving a token, plus the
store-sourced info lookup.

Architecture Overview
=====================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    URLShorteningService                     │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │    shorten()    │  │    resolve()    │  │  get_info()  │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                    │                    │
                ▼                    ▼                    ▼
    ┌─────────────────┐  ┌─────────────────┐  ┌─────────────────┐
    │  URLRepository  │  │    URLCache     │  │  ClickRecorder  │
    │  (PostgreSQL)   │  │    (Redis)      │  │  (bg tasks)     │
    └─────────────────┘  └─────────────────┘  └─────────────────┘

Shorten Flow
------------
::
    ┌─────────────┐
    │ url == ""?  │──YES──▶ InvalidInputError (no I/O)
    └──────┬──────┘
           ▼
    ┌─────────────┐  conflict   ┌──────────────────┐
    │ save(record)│────────────▶│ get_by_original  │
    └──────┬──────┘             │ _url() → existing│
           │ ok                 └────────┬─────────┘
           ▼                             ▼
    ┌─────────────────────────────────────────┐
    │ prime cache token → url (best-effort)   │
    └──────────────────┬──────────────────────┘
                       ▼
                 return token

Resolve Flow
------------
::
    ┌─────────────┐
    │ cache.get() │ (errors count as a miss)
    └──────┬──────┘
    ┌──────┼───────────────┬──────────────────────┐
    │ url  │ ""            │ None                 │
    ▼      ▼               ▼                      │
  record  NotFound   ┌───────────────────────┐    │
  click   (no store) │ increment_and_get_if_ │    │
  (bg),              │ valid(token)          │    │
  return             └─────┬──────────┬──────┘    │
  url                 found│          │not found  │
                           ▼          ▼           │
                     cache url    cache ""        │
                     return url   NotFound        │

Key Behaviours
==============
- Persistence always happens before cache priming.
- Cache reads, cache writes and cache-hit click increments are best-effort:
  their failures are logged and counted, never raised.
- Store failures on the critical path become an opaque InternalServiceError.
- A duplicate original URL is not an error: the existing token is returned.
- A token collision is not retried; that shorten call fails.
"""

import logging
import time

from shortener.cache import NEGATIVE_CACHE_SENTINEL
from shortener.clicks import ClickRecorder
from shortener.config import Settings, get_settings
from shortener.enums import RequestStatus, ResolveSource
from shortener.exceptions import (
    CacheError,
    DAOError,
    InternalServiceError,
    InvalidInputError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    URLNotFoundError,
)
from shortener.metrics import (
    CACHE_ERRORS_TOTAL,
    RESOLVE_DURATION,
    RESOLVE_REQUESTS_TOTAL,
    SHORTEN_DURATION,
    SHORTEN_REQUESTS_TOTAL,
)
from shortener.ports import URLCache, URLRepository
from shortener.schemas import URLRecord
from shortener.tokens import generate_token

__all__ = ["URLShorteningService"]


class URLShorteningService:
    """Shorten, resolve and describe short URLs.

    The service is shared by all requests: it holds no per-request state,
    only references to the repository, the cache and the click recorder.

    Example:
        >>> service = URLShorteningService(repository, cache, ClickRecorder(repository))
        >>> token = await service.shorten("https://example.com")
        >>> await service.resolve(token)
        'https://example.com'
    """

    def __init__(
        self,
        repository: URLRepository,
        cache: URLCache,
        clicks: ClickRecorder,
        settings: Settings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        assert repository is not None, "repository must not be None"
        assert cache is not None, "cache must not be None"
        assert clicks is not None, "clicks must not be None"
        self._repository = repository
        self._cache = cache
        self._clicks = clicks
        self._settings = settings or get_settings()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def clicks(self) -> ClickRecorder:
        return self._clicks

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def shorten(self, original_url: str) -> str:
        """Create a short token for ``original_url`` or return the existing one.

        Raises:
            InvalidInputError: If ``original_url`` is empty.
            InternalServiceError: If the store fails, or the generated token
                collided with an existing one.
        """
        if not original_url:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            raise InvalidInputError("original url must not be empty")

        start_time = time.perf_counter()
        try:
            record = URLRecord.new(
                original_url,
                generate_token(self._settings.SHORT_TOKEN_LENGTH),
                self._settings.validity_window,
            )
            self._logger.debug(f"Generated token {record.short_token} for {original_url}")

            status = RequestStatus.CREATED
            try:
                await self._repository.save(record)
            except RecordAlreadyExistsError:
                self._logger.debug(f"URL already shortened, looking up existing record: {original_url}")
                record = await self._find_existing(original_url)
                status = RequestStatus.EXISTING

            # An expired row must not become resolvable again through the cache.
            if record.is_valid():
                await self._prime_cache(record.short_token, record.original_url)

            SHORTEN_REQUESTS_TOTAL.labels(status=status).inc()
            self._logger.info(f"Shortened {original_url} -> {record.short_token} ({status})")
            return record.short_token

        except DAOError as exc:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"URL shortening error for {original_url}: {exc}")
            raise InternalServiceError() from exc
        except InternalServiceError:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            raise
        finally:
            SHORTEN_DURATION.observe(time.perf_counter() - start_time)

    async def resolve(self, short_token: str) -> str:
        """Resolve ``short_token`` to its original URL and count the click.

        Raises:
            InvalidInputError: If ``short_token`` is empty.
            URLNotFoundError: If the token is unknown, expired, or cached as absent.
            InternalServiceError: If the store fails on a cache miss.
        """
        if not short_token:
            raise InvalidInputError("short token must not be empty")

        start_time = time.perf_counter()
        try:
            cached = await self._read_cache(short_token)

            if cached == NEGATIVE_CACHE_SENTINEL:
                RESOLVE_REQUESTS_TOTAL.labels(source=ResolveSource.NEGATIVE_CACHE).inc()
                self._logger.debug(f"Negative cache hit for {short_token}")
                raise URLNotFoundError(f"short url {short_token!r} not found")

            if cached is not None:
                RESOLVE_REQUESTS_TOTAL.labels(source=ResolveSource.CACHE).inc()
                self._logger.debug(f"Cache hit for {short_token}")
                self._clicks.record(short_token)
                return cached

            return await self._resolve_from_store(short_token)
        finally:
            RESOLVE_DURATION.observe(time.perf_counter() - start_time)

    async def get_info(self, short_token: str) -> URLRecord:
        """Return the stored record for ``short_token``, expired or not.

        Always reads the store; the cache is neither consulted nor primed.

        Raises:
            InvalidInputError: If ``short_token`` is empty.
            URLNotFoundError: If no record has this token.
            InternalServiceError: If the store fails.
        """
        if not short_token:
            raise InvalidInputError("short token must not be empty")

        try:
            return await self._repository.get_by_token(short_token)
        except RecordNotFoundError:
            self._logger.info(f"Info requested for unknown token {short_token}")
            raise URLNotFoundError(f"short url {short_token!r} not found") from None
        except DAOError as exc:
            self._logger.error(f"Error getting url info for {short_token}: {exc}")
            raise InternalServiceError() from exc

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _find_existing(self, original_url: str) -> URLRecord:
        try:
            return await self._repository.get_by_original_url(original_url)
        except RecordNotFoundError as exc:
            # The conflict was on short_token, not on original_url.
            self._logger.error(f"Token collision while shortening {original_url}")
            raise InternalServiceError() from exc

    async def _resolve_from_store(self, short_token: str) -> str:
        try:
            original_url = await self._repository.increment_and_get_if_valid(short_token)
        except RecordNotFoundError:
            RESOLVE_REQUESTS_TOTAL.labels(source=ResolveSource.NOT_FOUND).inc()
            self._logger.info(f"Short url not found or expired: {short_token}")
            await self._prime_cache(short_token, NEGATIVE_CACHE_SENTINEL)
            raise URLNotFoundError(f"short url {short_token!r} not found") from None
        except DAOError as exc:
            RESOLVE_REQUESTS_TOTAL.labels(source=ResolveSource.ERROR).inc()
            self._logger.error(f"Error getting original url for {short_token}: {exc}")
            raise InternalServiceError() from exc

        RESOLVE_REQUESTS_TOTAL.labels(source=ResolveSource.STORE).inc()
        self._logger.debug(f"Store hit for {short_token}")
        await self._prime_cache(short_token, original_url)
        return original_url

    async def _read_cache(self, short_token: str) -> str | None:
        try:
            return await self._cache.get(short_token)
        except CacheError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            self._logger.warning(f"Cache read failed, treating as miss: {exc}")
            return None

    async def _prime_cache(self, short_token: str, value: str) -> None:
        try:
            await self._cache.set(short_token, value)
        except CacheError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="set").inc()
            self._logger.error(f"Error saving url to cache: {exc}")
