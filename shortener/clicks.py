"""Best-effort click recording for cache-hit redirects.

A redirect answered from the cache must not wait on the durable store, so
the click increment is handed to a background asyncio task. Failures are
logged and counted, never raised. The number of in-flight increments is
bounded; past the bound new clicks are dropped.
"""

import asyncio
import logging

from shortener.config import get_settings
from shortener.exceptions import DAOError, RecordNotFoundError
from shortener.metrics import (
    CLICK_INCREMENT_FAILURES_TOTAL,
    CLICK_INCREMENTS_DROPPED_TOTAL,
    CLICK_INCREMENTS_TOTAL,
)
from shortener.ports import URLRepository

__all__ = ["ClickRecorder"]

settings = get_settings()


class ClickRecorder:
    def __init__(
        self,
        repository: URLRepository,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        max_pending: int = settings.CLICK_MAX_PENDING,
    ) -> None:
        assert repository is not None, "repository must not be None"
        assert max_pending > 0, f"max_pending must be positive, got {max_pending!r}"
        self._repository = repository
        self._logger = logger or logging.getLogger(__name__)
        self._max_pending = max_pending
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(self, short_token: str) -> bool:
        """Schedule a click increment for ``short_token``.

        Returns False when the increment was dropped because the queue is full.
        """
        if len(self._pending) >= self._max_pending:
            CLICK_INCREMENTS_DROPPED_TOTAL.inc()
            self._logger.warning(f"Click increment dropped for {short_token}: {len(self._pending)} pending")
            return False

        task = asyncio.create_task(self._increment(short_token))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def drain(self) -> None:
        """Wait for every in-flight increment to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _increment(self, short_token: str) -> None:
        try:
            await self._repository.increment_and_get_if_valid(short_token)
        except RecordNotFoundError:
            # Cache outlived the record (expired or swept).
            CLICK_INCREMENT_FAILURES_TOTAL.inc()
            self._logger.info(f"Click not recorded, {short_token} is gone from the store")
        except DAOError as exc:
            CLICK_INCREMENT_FAILURES_TOTAL.inc()
            self._logger.error(f"Click increment failed for {short_token}: {exc}")
        else:
            CLICK_INCREMENTS_TOTAL.inc()
            self._logger.debug(f"Click recorded for {short_token}")
