import asyncio

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from boxtracker.core.config import settings
from boxtracker.core.logging import setup_logging
from boxtracker.db.models import Base, SharedConfig
from boxtracker.db.session import build_engine, build_sessionmaker

logger = structlog.get_logger()


async def init_models(engine: AsyncEngine, initial_passcode: str = "") -> bool:
    """
    Create all tables and seed the shared passcode row if it is missing.
    Returns True when the passcode row was created.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("tables_created")

    if not initial_passcode:
        return False

    sessionmaker = build_sessionmaker(engine)
    async with sessionmaker() as session:
        config = await session.get(SharedConfig, SharedConfig.SINGLETON_ID)
        if config is not None:
            logger.info("shared_config_exists")
            return False
        session.add(SharedConfig(id=SharedConfig.SINGLETON_ID, shared_passcode=initial_passcode))
        await session.commit()
    logger.info("shared_config_seeded")
    return True


async def main():
    setup_logging()
    engine = build_engine(settings.DATABASE_URL)
    try:
        async with asyncio.timeout(10):
            await init_models(engine, settings.INITIAL_PASSCODE)
    except TimeoutError:
        logger.error("db_init_timeout", message="Connection to database timed out after 10s. Check network/firewall/URL settings.")
        raise
    finally:
        await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())
