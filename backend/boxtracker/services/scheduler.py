import asyncio
from typing import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boxtracker.services.container import Services

logger = structlog.get_logger()


async def run_suggestion_sync(services: Services, sessionmaker: async_sessionmaker[AsyncSession]):
    async with sessionmaker() as session:
        return await services.suggestion_sync.sync(session)


async def run_cache_refresh(services: Services, sessionmaker: async_sessionmaker[AsyncSession]):
    async with sessionmaker() as session:
        return await services.locations_cache.generate(session)


async def run_every(name: str, interval_seconds: float, job: Callable[[], Awaitable[object]]) -> None:
    """
    Run job every interval_seconds until cancelled. A failed run is logged
    and the loop carries on with the next tick.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        with structlog.contextvars.bound_contextvars(job=name):
            try:
                result = await job()
                logger.info("scheduled_job_done", result=getattr(result, "message", None))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("scheduled_job_failed", error=str(e))
