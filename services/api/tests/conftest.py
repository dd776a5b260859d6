"""Shared fixtures: in-memory SQLite catalog + in-memory cache backend.

- Every test gets a fresh in-memory database (StaticPool keeps one connection
  so all sessions see the same tables)
- The cache backend keeps a manual clock; `advance()` moves it forward to
  expire entries
"""

from datetime import datetime

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Product, Store
from app.services.store_cache import StoreCache
from app.stores.postgres import Base


class MemoryCacheBackend:
    """CacheBackend double with TTLs against a manual clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.values: dict[str, tuple[str, float]] = {}
        self.tags: dict[str, set[str]] = {}
        self.invalidated: list[str] = []
        self.sets = 0

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def get(self, key: str) -> str | None:
        item = self.values.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= self.now:
            del self.values[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int, tags: tuple[str, ...] = ()) -> None:
        self.sets += 1
        self.values[key] = (value, self.now + ttl)
        for tag in tags:
            self.tags.setdefault(tag, set()).add(key)

    async def invalidate_tag(self, tag: str) -> None:
        self.invalidated.append(tag)
        for key in self.tags.pop(tag, set()):
            self.values.pop(key, None)


class UnreachableCacheBackend(MemoryCacheBackend):
    """Backend whose invalidation fails as if Redis went away."""

    async def invalidate_tag(self, tag: str) -> None:
        raise RedisConnectionError("Connection refused")


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def cache_backend() -> MemoryCacheBackend:
    return MemoryCacheBackend()


@pytest.fixture
def cache(cache_backend: MemoryCacheBackend) -> StoreCache:
    return StoreCache(cache_backend)


@pytest.fixture
def broken_cache() -> StoreCache:
    return StoreCache(UnreachableCacheBackend())


@pytest.fixture
def seed(session_factory):
    """Insert stores with N products each; returns {name: id}.

    Each store: {"name", "user_id"?, "stripe_account_id"?, "products"?: int, "created_day"?: int}
    """

    async def _seed(*stores: dict) -> dict[str, int]:
        ids: dict[str, int] = {}
        async with session_factory() as session:
            for store_def in stores:
                store = Store(
                    name=store_def["name"],
                    slug=store_def["name"].lower(),
                    description=store_def.get("description"),
                    user_id=store_def.get("user_id", "user_1"),
                    stripe_account_id=store_def.get("stripe_account_id"),
                )
                if "created_day" in store_def:
                    store.created_at = datetime(2024, 1, store_def["created_day"])
                session.add(store)
                await session.flush()
                for i in range(store_def.get("products", 0)):
                    session.add(Product(name=f"{store_def['name']} product {i}", store_id=store.id))
                ids[store_def["name"]] = store.id
            await session.commit()
        return ids

    return _seed
