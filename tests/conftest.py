from collections.abc import Awaitable, Callable
from typing import TypeVar

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pokeshelf.api.dependencies import get_catalog, get_engine
from pokeshelf.catalog.client import CatalogClient
from pokeshelf.db.remote_store import RemoteStore
from pokeshelf.main import app
from pokeshelf.models.db import Base
from pokeshelf.models.failure import RemoteStoreError
from pokeshelf.models.profile import Profile
from pokeshelf.storage.backends import MemoryBackend
from pokeshelf.storage.local_cache import LocalCacheStore
from pokeshelf.sync.connectivity import Connectivity
from pokeshelf.sync.engine import SyncEngine

T = TypeVar("T")

CATALOG_URL = "https://catalog.test/v2"


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyStore(RemoteStore):
    """RemoteStore that can be switched into a connection-failure mode."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self.down = False
        self.calls = 0

    async def _run(self, action: Callable[[AsyncSession], Awaitable[T]]) -> T:
        self.calls += 1
        if self.down:
            raise RemoteStoreError("The remote store is unreachable", retryable=True)
        return await super()._run(action)


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> LocalCacheStore:
    return LocalCacheStore(MemoryBackend(), clock=clock)


@pytest.fixture
def store(session_factory) -> FlakyStore:
    return FlakyStore(session_factory)


@pytest.fixture
def connectivity() -> Connectivity:
    return Connectivity(online=True)


@pytest.fixture
def sync_engine(
    cache: LocalCacheStore, store: FlakyStore, connectivity: Connectivity, clock: FakeClock
) -> SyncEngine:
    return SyncEngine(cache, store, connectivity, clock=clock)


@pytest.fixture
async def profile(store: FlakyStore) -> Profile:
    """A profile that exists in the remote store."""
    return await store.create_profile("Ash", avatar="pikachu")


@pytest.fixture
def sample_card() -> dict:
    """A catalog card as returned by the Pokemon TCG API."""
    return {
        "id": "base1-4",
        "name": "Charizard",
        "supertype": "Pokémon",
        "subtypes": ["Stage 2"],
        "hp": "120",
        "types": ["Fire"],
        "rarity": "Rare Holo",
        "number": "4",
        "set": {"id": "base1", "name": "Base", "series": "Base", "releaseDate": "1999/01/09"},
        "images": {
            "small": "https://images.pokemontcg.io/base1/4.png",
            "large": "https://images.pokemontcg.io/base1/4_hires.png",
        },
        "tcgplayer": {"prices": {"holofoil": {"market": 350.5}}},
    }


@pytest.fixture
def catalog(cache: LocalCacheStore) -> CatalogClient:
    return CatalogClient(cache, base_url=CATALOG_URL, api_key="")


@pytest.fixture
async def client(sync_engine: SyncEngine, catalog: CatalogClient):
    """Provide an async test client wired to the test engine and catalog."""
    app.dependency_overrides[get_engine] = lambda: sync_engine
    app.dependency_overrides[get_catalog] = lambda: catalog

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await catalog.aclose()
