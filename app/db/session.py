"""Async database engine and session factory."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)

from app.config import get_settings

settings = get_settings()


def create_engine_from_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, applying pool options where the driver supports them."""
    kwargs: dict = {"echo": echo}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **kwargs)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


engine = create_engine_from_url(settings.DATABASE_URL, echo=settings.DB_ECHO)
async_session_maker = create_session_maker(engine)
