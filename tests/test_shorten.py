"""Shorten workflow tests against in-memory store and cache doubles."""

from unittest.mock import patch

import pytest

from shortener.exceptions import CacheError, DataStoreError, InternalServiceError, InvalidInputError
from shortener.schemas import URLRecord


@pytest.mark.asyncio
async def test_shorten_persists_and_primes_cache(service, repository, cache, settings) -> None:
    token = await service.shorten("https://www.python.org")

    assert len(token) == settings.SHORT_TOKEN_LENGTH
    record = repository.records[token]
    assert record.original_url == "https://www.python.org"
    assert record.click_count == 0
    assert record.valid_until - record.created_at == settings.validity_window
    assert cache.entries[token] == "https://www.python.org"


@pytest.mark.asyncio
async def test_shorten_is_idempotent(service, repository) -> None:
    first = await service.shorten("https://www.github.com")
    second = await service.shorten("https://www.github.com")

    assert first == second
    assert len(repository.records) == 1


@pytest.mark.asyncio
async def test_shorten_conflict_returns_existing_token(service, repository, cache, make_record) -> None:
    repository.add(make_record("https://example.com/page", "T1aaaaaa"))

    token = await service.shorten("https://example.com/page")

    assert token == "T1aaaaaa"
    assert list(repository.records) == ["T1aaaaaa"]
    assert ("get_by_original_url", "https://example.com/page") in repository.calls
    assert cache.entries["T1aaaaaa"] == "https://example.com/page"


@pytest.mark.asyncio
async def test_shorten_conflict_on_expired_record_does_not_prime_cache(
    service, repository, cache, make_record, settings
) -> None:
    repository.add(make_record("https://example.com/old", "Oldtoken", age=settings.validity_window * 2))

    token = await service.shorten("https://example.com/old")

    assert token == "Oldtoken"
    assert "Oldtoken" not in cache.entries


@pytest.mark.asyncio
async def test_shorten_distinct_urls_get_distinct_tokens(service) -> None:
    urls = ["https://www.google.com", "https://www.github.com", "https://www.python.org"]
    tokens = {await service.shorten(url) for url in urls}
    assert len(tokens) == 3


@pytest.mark.asyncio
async def test_shorten_empty_url_fails_without_io(service, repository, cache) -> None:
    with pytest.raises(InvalidInputError):
        await service.shorten("")

    assert repository.calls == []
    assert cache.calls == []


@pytest.mark.asyncio
async def test_shorten_cache_failure_is_not_propagated(service, repository, cache) -> None:
    cache.failures["set"] = CacheError("redis down")

    token = await service.shorten("https://example.com")

    assert token in repository.records
    assert cache.entries == {}


@pytest.mark.asyncio
async def test_shorten_store_failure_is_internal_and_skips_cache(service, repository, cache) -> None:
    repository.failures["save"] = DataStoreError("connection refused")

    with pytest.raises(InternalServiceError) as exc_info:
        await service.shorten("https://example.com")

    assert "connection refused" not in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, DataStoreError)
    assert cache.calls == []


@pytest.mark.asyncio
async def test_shorten_fallback_lookup_failure_is_internal(service, repository, cache, make_record) -> None:
    repository.add(make_record("https://example.com", "T1aaaaaa"))
    repository.failures["get_by_original_url"] = DataStoreError("timeout")

    with pytest.raises(InternalServiceError):
        await service.shorten("https://example.com")

    assert cache.calls == []


@pytest.mark.asyncio
async def test_shorten_token_collision_fails_without_retry(service, repository, make_record) -> None:
    repository.add(make_record("https://example.com/a", "SAMEtokn"))

    with patch("shortener.url_service.generate_token", return_value="SAMEtokn"):
        with pytest.raises(InternalServiceError):
            await service.shorten("https://example.com/b")

    assert [op for op, _ in repository.calls].count("save") == 1
    assert len(repository.records) == 1


@pytest.mark.asyncio
async def test_shorten_persists_before_priming_cache(service, repository, cache) -> None:
    seen_in_store: list[bool] = []
    original_set = cache.set

    async def checking_set(key: str, value: str) -> None:
        seen_in_store.append(key in repository.records)
        await original_set(key, value)

    cache.set = checking_set

    await service.shorten("https://example.com/ordered")

    assert seen_in_store == [True]


def test_url_record_new_sets_validity_window(settings) -> None:
    record = URLRecord.new("https://example.com", "abcd1234", settings.validity_window)
    assert record.click_count == 0
    assert record.valid_until == record.created_at + settings.validity_window
    assert record.created_at.tzinfo is not None
    assert record.is_valid()
