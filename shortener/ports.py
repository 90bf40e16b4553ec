"""Abstract interfaces for the durable store and the cache.

The workflows depend on these contracts only, never on SQLAlchemy or redis
client types, so either side can be swapped for an in-memory double.

Classes:
    URLRepository:  Durable store of URL records.
    URLCache:  Key/value cache with a per-instance TTL.
"""

import datetime
from abc import ABC, abstractmethod

from shortener.schemas import URLRecord

__all__ = ["URLRepository", "URLCache"]


class URLRepository(ABC):
    """Interface for the durable URL record store.

    Methods:
        save(record: URLRecord) -> None:
            Persist a new record.
            Raises RecordAlreadyExistsError on a uniqueness violation.
            Raises DataStoreError on any other failure.

        get_by_token(short_token: str) -> URLRecord:
            Raises RecordNotFoundError if no row has this token.

        get_by_original_url(original_url: str) -> URLRecord:
            Raises RecordNotFoundError if the URL was never shortened.

        increment_and_get_if_valid(short_token: str) -> str:
            Atomically bump click_count of a still-valid record and return
            its original URL. Raises RecordNotFoundError when the token is
            unknown or expired.

        delete_expired(grace: timedelta) -> int:
            Hard-delete records whose valid_until is older than now - grace.
            Returns the number of deleted rows.
    """

    @abstractmethod
    async def save(self, record: URLRecord) -> None:
        pass

    @abstractmethod
    async def get_by_token(self, short_token: str) -> URLRecord:
        pass

    @abstractmethod
    async def get_by_original_url(self, original_url: str) -> URLRecord:
        pass

    @abstractmethod
    async def increment_and_get_if_valid(self, short_token: str) -> str:
        pass

    @abstractmethod
    async def delete_expired(self, grace: datetime.timedelta) -> int:
        pass


class URLCache(ABC):
    """Interface for the token -> original URL cache.

    ``get`` returns None when the key is absent and the stored string
    otherwise; an empty string is a legitimate value (negative cache entry).
    Both methods raise CacheError when the backend fails.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass
