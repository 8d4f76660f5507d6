from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from conduit.errors import ConfigurationFatal
from conduit.middleware import install_query_counter


class Base(DeclarativeBase):
    pass


def create_engine(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Build an engine with the per-request SQL query counter registered."""
    engine = create_async_engine(url, echo=echo, pool_pre_ping=True, **kwargs)
    install_query_counter(engine)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def check_connection(engine: AsyncEngine) -> None:
    """Fail fast at startup when the database cannot be reached."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        raise ConfigurationFatal(f"database unreachable: {type(exc).__name__}") from exc


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Return the session factory created by the application lifespan."""
    return request.app.state.session_factory


async def get_db(sessions: async_sessionmaker[AsyncSession] = Depends(get_session_factory)):
    async with sessions() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
