"""Expiry sweeper: hard-deletes URL records long past their validity window.

A record becomes unresolvable as soon as ``valid_until`` passes (the
redirect query filters on it). The row itself stays until it has been
expired for longer than the grace period, after which ``execute()``
removes it.
"""

import datetime
import logging

from shortener.config import get_settings
from shortener.exceptions import DAOError
from shortener.metrics import SWEEPER_DELETED_TOTAL, SWEEPER_RUNS_TOTAL
from shortener.ports import URLRepository

__all__ = ["ExpirySweeper"]

settings = get_settings()


class ExpirySweeper:
    name = "cleanup_expired_urls"

    def __init__(
        self,
        repository: URLRepository,
        grace: datetime.timedelta = settings.expiry_grace,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        assert repository is not None, "repository must not be None"
        assert grace >= datetime.timedelta(0), f"grace must not be negative, got {grace!r}"
        self._repository = repository
        self._grace = grace
        self._logger = logger or logging.getLogger(__name__)

    @property
    def grace(self) -> datetime.timedelta:
        return self._grace

    async def execute(self) -> int:
        """Delete expired records once and return how many were removed.

        Raises:
            DataStoreError: If the delete fails. Nothing is retried here.
        """
        try:
            deleted = await self._repository.delete_expired(self._grace)
        except DAOError as exc:
            SWEEPER_RUNS_TOTAL.labels(status="failed").inc()
            self._logger.error(f"Expiry sweep failed: {exc}")
            raise

        SWEEPER_RUNS_TOTAL.labels(status="ok").inc()
        SWEEPER_DELETED_TOTAL.inc(deleted)
        self._logger.info(f"Expiry sweep removed {deleted} records")
        return deleted
