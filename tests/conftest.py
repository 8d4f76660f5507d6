"""
Test infrastructure for the Conduit API.

Strategy
--------
- SQLite in-memory via aiosqlite with StaticPool: every session shares the
  one in-memory connection.
- Concurrency tests use ``bounded_sessions`` instead: a file database behind
  a two-connection pool, so a request that needed a second connection
  would time out.
- ``get_session_factory`` and ``get_token_service`` are overridden because
  httpx's ASGITransport does not run the application lifespan.
- All tables are created before each test and dropped after.
- Redis is disabled (``cache._redis = None``); the CacheManager already
  degrades to a no-op without it.
- bcrypt runs with the minimum work factor to keep the suite fast.
"""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from conduit.cache import cache
from conduit.database import Base, create_engine, create_session_factory, get_session_factory
from conduit.dependencies import get_token_service
from conduit.main import app
from conduit.relations import RelationshipStore
from conduit.tokens import TokenService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SECRET = "test-signing-secret-that-is-long-enough-for-hs256"

engine_test = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
async_session_test = create_session_factory(engine_test)
token_service_test = TokenService(TEST_SECRET)

app.dependency_overrides[get_session_factory] = lambda: async_session_test
app.dependency_overrides[get_token_service] = lambda: token_service_test


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def relations(db_session: AsyncSession) -> RelationshipStore:
    return RelationshipStore(db_session)


@pytest.fixture
def tokens() -> TokenService:
    return token_service_test


@pytest.fixture
def token_secret() -> str:
    return TEST_SECRET


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def bounded_sessions(tmp_path):
    engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bounded.db'}",
        poolclass=AsyncAdaptedQueuePool,
        pool_size=2,
        max_overflow=0,
        pool_timeout=3,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def bounded_client(bounded_sessions) -> AsyncClient:
    cache._redis = None
    app.dependency_overrides[get_session_factory] = lambda: bounded_sessions
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides[get_session_factory] = lambda: async_session_test
