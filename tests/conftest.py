"""
Test infrastructure for the Content API.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres, keeping the suite fast
  and self-contained.
- StaticPool makes every task share the one in-memory connection (SQLite
  in-memory databases are connection-scoped).
- The app's get_db dependency is overridden with the test session factory.
- Tables are created before and dropped after each test.
- Caching is switched off for HTTP tests by overriding get_cache_backend to
  return None; tests that exercise the cached path request the
  ``memory_cache`` fixture, which swaps in a fresh MemoryCache instead.
- Media storage is redirected to a per-test tmp_path.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from content_api.cache import MemoryCache
from content_api.database import Base, get_db
from content_api.dependencies import get_cache_backend, get_storage
from content_api.main import app
from content_api.middleware import install_query_counter
from content_api.storage import LocalStorage

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


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


@pytest.fixture(autouse=True)
def no_cache():
    """Default: no article cache, every read goes to the database."""
    app.dependency_overrides[get_cache_backend] = lambda: None
    yield
    app.dependency_overrides.pop(get_cache_backend, None)


@pytest.fixture
def memory_cache(no_cache) -> MemoryCache:
    """Enable a fresh in-process article cache for this test."""
    backend = MemoryCache()
    app.dependency_overrides[get_cache_backend] = lambda: backend
    return backend


@pytest.fixture(autouse=True)
def storage(tmp_path) -> LocalStorage:
    local = LocalStorage(tmp_path / "storage")
    app.dependency_overrides[get_storage] = lambda: local
    yield local
    app.dependency_overrides.pop(get_storage, None)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for tests that talk to the services directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """An httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(async_client: AsyncClient) -> dict:
    """Register a user, log in, and return a bearer Authorization header."""
    await async_client.post("/api/v1/users/register", json={
        "name": "Test Author",
        "email": "author@example.com",
        "password": "s3cret-pass",
    })
    resp = await async_client.post("/api/v1/users/login", json={
        "email": "author@example.com",
        "password": "s3cret-pass",
    })
    return {"Authorization": f"Bearer {resp.json()['token']}"}
