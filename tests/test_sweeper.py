"""Expiry sweeper and periodic runner tests."""

import asyncio
import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.exceptions import DataStoreError, URLNotFoundError
from shortener.repository import SQLAlchemyURLRepository
from shortener.sweeper import ExpirySweeper
from shortener.worker import run_periodically


@pytest.mark.asyncio
async def test_sweeper_deletes_only_records_past_grace(repository, make_record, settings, logger) -> None:
    window = settings.validity_window
    repository.add(make_record("https://example.com/fresh", "Fresh001"))
    repository.add(make_record("https://example.com/expired", "Expired1", age=window + datetime.timedelta(days=1)))
    repository.add(make_record("https://example.com/ancient", "Ancient1", age=window * 2 + datetime.timedelta(days=1)))

    sweeper = ExpirySweeper(repository, grace=window, logger=logger)
    deleted = await sweeper.execute()

    assert deleted == 1
    assert set(repository.records) == {"Fresh001", "Expired1"}


@pytest.mark.asyncio
async def test_expired_record_resolves_not_found_then_gets_swept(service, repository, make_record, settings, logger) -> None:
    repository.add(make_record("https://example.com/stale", "Stale001", age=settings.validity_window + datetime.timedelta(days=3)))

    with pytest.raises(URLNotFoundError):
        await service.resolve("Stale001")
    assert "Stale001" in repository.records

    sweeper = ExpirySweeper(repository, grace=datetime.timedelta(days=1), logger=logger)
    assert await sweeper.execute() == 1
    assert "Stale001" not in repository.records


@pytest.mark.asyncio
async def test_sweeper_with_nothing_to_delete_is_noop(repository, logger) -> None:
    sweeper = ExpirySweeper(repository, grace=datetime.timedelta(days=14), logger=logger)

    assert await sweeper.execute() == 0
    assert await sweeper.execute() == 0


@pytest.mark.asyncio
async def test_sweeper_propagates_store_failure_once(repository, logger) -> None:
    repository.failures["delete_expired"] = DataStoreError("lock timeout")
    sweeper = ExpirySweeper(repository, grace=datetime.timedelta(days=14), logger=logger)

    with pytest.raises(DataStoreError):
        await sweeper.execute()

    assert [op for op, _ in repository.calls] == ["delete_expired"]


def test_sweeper_default_grace_equals_validity_window(repository, settings) -> None:
    sweeper = ExpirySweeper(repository)
    assert sweeper.grace == settings.expiry_grace


@pytest.mark.asyncio
async def test_run_periodically_keeps_going_after_failure() -> None:
    sweeper = MagicMock()
    sweeper.name = "cleanup_expired_urls"
    sweeper.execute = AsyncMock(side_effect=[DataStoreError("down"), 3])

    await run_periodically(sweeper, interval=0, timeout=1, iterations=2)

    assert sweeper.execute.await_count == 2


@pytest.mark.asyncio
async def test_run_periodically_bounds_each_run() -> None:
    async def never_finishes() -> int:
        await asyncio.sleep(10)
        return 0

    sweeper = MagicMock()
    sweeper.name = "cleanup_expired_urls"
    sweeper.execute = never_finishes

    await asyncio.wait_for(run_periodically(sweeper, interval=0, timeout=0.01, iterations=1), timeout=2)


@pytest.mark.asyncio
async def test_bulk_delete_uses_sweep_budget_not_request_deadline(logger) -> None:
    result = MagicMock()
    result.rowcount = 12

    async def slow_delete(*args, **kwargs):
        await asyncio.sleep(0.2)
        return result

    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock(side_effect=slow_delete)
    session.__aenter__.return_value = session
    session.__aexit__.return_value = False
    url_repository = SQLAlchemyURLRepository(MagicMock(return_value=session), timeout=0.05, sweep_timeout=5)
    sweeper = ExpirySweeper(url_repository, grace=datetime.timedelta(days=14), logger=logger)

    async with asyncio.timeout(5):
        assert await sweeper.execute() == 12

    with pytest.raises(DataStoreError):
        await url_repository.get_by_token("abcd1234")
