"""PostgreSQL-backed URL repository.

Every method opens its own short-lived session from the shared
``async_sessionmaker`` and runs under a per-operation deadline. SQLAlchemy
and driver errors are translated into the data access exceptions of
``shortener.exceptions`` so the workflows never see store-specific types.

Flow Diagram — increment_and_get_if_valid()
===========================================
::
    ┌──────────────────────────────────────────┐
    │ UPDATE urls SET click_count = click_count+1│
    │ WHERE short_token = :token                 │
    │   AND valid_until > :now                   │
    │ RETURNING original_url                     │
    └──────────────────┬───────────────────────┘
              row?     │
          ┌────────────┴────────────┐
          │ YES                      │ NO
          ▼                          ▼
    ┌─────────────┐           ┌──────────────────┐
    │ return URL  │           │ RecordNotFound   │
    └─────────────┘           │ (unknown/expired)│
                              └──────────────────┘

Key Behaviours
===============
- The validity filter and the click increment are one statement, so two
  concurrent redirects can never both read the same stale click_count.
- Any unique violation on insert becomes RecordAlreadyExistsError.
- Timeouts, connection failures and other SQL errors become DataStoreError.
- delete_expired runs under the sweeper budget; every other call under the
  short request-path deadline.
"""

import asyncio
import datetime
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.config import get_settings
from shortener.exceptions import DAOError, DataStoreError, RecordAlreadyExistsError, RecordNotFoundError
from shortener.models import URL
from shortener.ports import URLRepository
from shortener.schemas import URLRecord, utcnow

__all__ = ["SQLAlchemyURLRepository"]

settings = get_settings()


class SQLAlchemyURLRepository(URLRepository):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float = settings.STORE_TIMEOUT_SECONDS,
        sweep_timeout: float = settings.SWEEPER_TIMEOUT_SECONDS,
    ) -> None:
        assert session_factory is not None, "session_factory must not be None"
        assert timeout > 0, f"timeout must be positive, got {timeout!r}"
        assert sweep_timeout > 0, f"sweep_timeout must be positive, got {sweep_timeout!r}"
        self._session_factory = session_factory
        self._timeout = timeout
        self._sweep_timeout = sweep_timeout

    @asynccontextmanager
    async def _session(self, operation: str, timeout: float | None = None) -> AsyncIterator[AsyncSession]:
        timeout = timeout or self._timeout
        try:
            async with asyncio.timeout(timeout):
                async with self._session_factory() as session:
                    yield session
        except DAOError:
            raise
        except IntegrityError as exc:
            raise RecordAlreadyExistsError(f"{operation}: uniqueness violation") from exc
        except TimeoutError as exc:
            raise DataStoreError(f"{operation}: timed out after {timeout}s") from exc
        except (SQLAlchemyError, OSError) as exc:
            raise DataStoreError(f"{operation}: {exc}") from exc

    async def save(self, record: URLRecord) -> None:
        async with self._session("save") as session:
            session.add(URL(**record.model_dump()))
            await session.commit()

    async def get_by_token(self, short_token: str) -> URLRecord:
        async with self._session("get_by_token") as session:
            result = await session.execute(select(URL).where(URL.short_token == short_token))
            url = result.scalar_one_or_none()
            if url is None:
                raise RecordNotFoundError(f"short token {short_token!r} not found")
            return URLRecord.model_validate(url)

    async def get_by_original_url(self, original_url: str) -> URLRecord:
        async with self._session("get_by_original_url") as session:
            result = await session.execute(select(URL).where(URL.original_url == original_url))
            url = result.scalar_one_or_none()
            if url is None:
                raise RecordNotFoundError(f"original url {original_url!r} not found")
            return URLRecord.model_validate(url)

    async def increment_and_get_if_valid(self, short_token: str) -> str:
        stmt = (
            update(URL)
            .where(URL.short_token == short_token, URL.valid_until > utcnow())
            .values(click_count=URL.click_count + 1)
            .returning(URL.original_url)
            .execution_options(synchronize_session=False)
        )
        async with self._session("increment_and_get_if_valid") as session:
            result = await session.execute(stmt)
            original_url = result.scalar_one_or_none()
            await session.commit()
            if original_url is None:
                raise RecordNotFoundError(f"short token {short_token!r} not found or expired")
            return original_url

    async def delete_expired(self, grace: datetime.timedelta) -> int:
        cutoff = utcnow() - grace
        stmt = delete(URL).where(URL.valid_until < cutoff).execution_options(synchronize_session=False)
        # Bulk deletes get the sweeper budget, not the request-path deadline.
        async with self._session("delete_expired", timeout=self._sweep_timeout) as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount or 0
