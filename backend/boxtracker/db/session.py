from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.pool import NullPool, StaticPool

# Seconds a SQLite writer waits for another connection's write lock
SQLITE_BUSY_TIMEOUT = 15


def is_memory_sqlite(db_url: str) -> bool:
    url = make_url(db_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def build_engine(db_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for a database URL.
    """
    if is_memory_sqlite(db_url):
        # An in-memory database only lives as long as its one connection
        return create_async_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if db_url.startswith("sqlite"):
        # One connection per session, so each session has its own transaction
        return create_async_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
            poolclass=NullPool,
        )

    # For Supabase/PostgreSQL with asyncpg, SSL is specified in the URL, not connect_args
    if "supabase" in db_url and "ssl=" not in db_url:
        db_url = db_url + ("&" if "?" in db_url else "?") + "ssl=require"

    return create_async_engine(
        db_url,
        echo=echo,
        future=True,
        poolclass=NullPool,  # Fixes asyncpg concurrency/connection issues
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def get_db(request: Request) -> AsyncSession:
    """
    Dependency for getting an async database session.
    The session factory is owned by the application lifespan.
    """
    async with request.app.state.sessionmaker() as session:
        try:
            yield session
        finally:
            await session.close()
