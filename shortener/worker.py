"""Periodic runner for the expiry sweeper.

Runs inside the API process (started from the lifespan) or on its own::

    python -m shortener.worker
"""

import asyncio
import logging

from shortener.config import get_settings
from shortener.database import async_session, close_db
from shortener.repository import SQLAlchemyURLRepository
from shortener.sweeper import ExpirySweeper

__all__ = ["run", "run_periodically"]

logger = logging.getLogger(__name__)

settings = get_settings()


async def run_periodically(
    sweeper: ExpirySweeper,
    interval: float = settings.SWEEPER_INTERVAL_SECONDS,
    timeout: float = settings.SWEEPER_TIMEOUT_SECONDS,
    iterations: int | None = None,
) -> None:
    """Run ``sweeper.execute()`` every ``interval`` seconds, each under ``timeout``.

    A failed or timed-out run is logged and the loop carries on with the next
    interval. ``iterations`` bounds the loop; None means run until cancelled.
    """
    iteration = 0
    while iterations is None or iteration < iterations:
        iteration += 1
        logger.info(f"Executing scheduled task {sweeper.name} (iteration {iteration})")
        try:
            async with asyncio.timeout(timeout):
                await sweeper.execute()
        except TimeoutError:
            logger.error(f"Scheduled task {sweeper.name} exceeded its {timeout}s budget")
        except Exception as exc:
            logger.error(f"Scheduled task {sweeper.name} failed: {exc}")
        else:
            logger.debug(f"Scheduled task {sweeper.name} completed successfully")
        await asyncio.sleep(interval)


async def run() -> None:
    repository = SQLAlchemyURLRepository(async_session)
    sweeper = ExpirySweeper(repository)
    try:
        await run_periodically(sweeper)
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    asyncio.run(run())
