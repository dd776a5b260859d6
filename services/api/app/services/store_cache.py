"""Cached store reads with TTL expiry and tag-based invalidation.

Entries:
- featured-stores: top stores, TTL 1s (a debounce more than a cache)
- user-stores: one owner's stores, TTL 15 min, keyed per owner
- store-detail: one store, TTL 15 min, tagged with its detail view path

Keys are "catalog:<entry>:<json params>". Writers never touch keys directly;
they invalidate a tag and the next read recomputes. Concurrent misses may
recompute the same entry more than once (last write wins).

Unlike the dynamic search, these reads do not catch errors.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
import json
import logging
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Product, Store
from app.schemas import StoreSummary
from app.stores.redis import (
    PREFIX_CATALOG,
    TTL_FEATURED_STORES,
    TTL_STORE_DETAIL,
    TTL_USER_STORES,
)

logger = logging.getLogger("uvicorn.error")

TAG_FEATURED_STORES = "featured-stores"
TAG_USER_STORES = "user-stores"
PREFIX_PATH_TAG = "path:"

STORES_LISTING_PATH = "/dashboard/stores"


def store_detail_path(store_id: int) -> str:
    return f"{STORES_LISTING_PATH}/{store_id}"


def path_tag(path: str) -> str:
    return f"{PREFIX_PATH_TAG}{path}"


class CacheBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int, tags: tuple[str, ...] = ()) -> None: ...

    async def invalidate_tag(self, tag: str) -> None: ...


@dataclass(frozen=True)
class CacheEntry:
    """A named cached read: TTL plus the tags that invalidate it."""

    name: str
    ttl: int
    tags: tuple[str, ...] = ()
    detail_path: bool = False  # also tag with the store's detail view path

    def tags_for(self, params: Mapping[str, Any]) -> tuple[str, ...]:
        if self.detail_path:
            return (*self.tags, path_tag(store_detail_path(params["store_id"])))
        return self.tags


FEATURED_STORES = CacheEntry(
    name="featured-stores",
    ttl=TTL_FEATURED_STORES,
    tags=(TAG_FEATURED_STORES,),
)
USER_STORES = CacheEntry(
    name="user-stores",
    ttl=TTL_USER_STORES,
    tags=(TAG_USER_STORES, path_tag(STORES_LISTING_PATH)),
)
STORE_DETAIL = CacheEntry(
    name="store-detail",
    ttl=TTL_STORE_DETAIL,
    detail_path=True,
)


class StoreCache:
    """Memoizes catalog reads in a CacheBackend and invalidates them by tag."""

    def __init__(self, backend: CacheBackend) -> None:
        self.backend = backend

    @staticmethod
    def key_for(entry: CacheEntry, params: Mapping[str, Any]) -> str:
        return f"{PREFIX_CATALOG}{entry.name}:{json.dumps(dict(params), sort_keys=True)}"

    async def read(
        self,
        entry: CacheEntry,
        params: Mapping[str, Any],
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached payload, computing and storing it on a miss.

        A loader result of None is returned as-is and not cached.
        """
        key = self.key_for(entry, params)
        cached = await self.backend.get(key)
        if cached is not None:
            return json.loads(cached)

        logger.debug(f"Cache miss: {key}")
        value = await loader()
        if value is not None:
            await self.backend.set(key, json.dumps(value), entry.ttl, entry.tags_for(params))
        return value

    async def invalidate(self, tag: str) -> None:
        await self.backend.invalidate_tag(tag)

    async def invalidate_path(self, path: str) -> None:
        await self.backend.invalidate_tag(path_tag(path))


# ============================================================
# Cached reads
# ============================================================


def _summary_query():
    return (
        select(Store.id, Store.name, Store.description, Store.stripe_account_id)
        .select_from(Store)
        .outerjoin(Product, Product.store_id == Store.id)
        .group_by(Store.id)
    )


def _to_payload(rows) -> list[dict[str, Any]]:
    return [
        StoreSummary(
            id=row.id,
            name=row.name,
            description=row.description,
            stripe_account_id=row.stripe_account_id,
        ).model_dump(mode="json")
        for row in rows
    ]


async def get_featured_stores(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: StoreCache,
    limit: int = 4,
) -> list[StoreSummary]:
    """Top stores: active first, then most products.

    Args:
        session_factory: Session factory for the catalog database.
        cache: Cache tier.
        limit: Number of stores (4 on the storefront).
    """

    async def load() -> list[dict[str, Any]]:
        async with session_factory() as session:
            result = await session.execute(
                _summary_query()
                .order_by(
                    Store.stripe_account_id.is_not(None).desc(),
                    func.count(Product.id).desc(),
                    Store.id.asc(),
                )
                .limit(limit)
            )
            return _to_payload(result)

    payload = await cache.read(FEATURED_STORES, {"limit": limit}, load)
    return [StoreSummary.model_validate(item) for item in payload]


async def get_user_stores(
    user_id: str,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: StoreCache,
) -> list[StoreSummary]:
    """All stores of one owner: stores with a payment account first, then most products."""

    async def load() -> list[dict[str, Any]]:
        async with session_factory() as session:
            result = await session.execute(
                _summary_query()
                .where(Store.user_id == user_id)
                .order_by(
                    Store.stripe_account_id.is_not(None).desc(),
                    func.count(Product.id).desc(),
                    Store.id.asc(),
                )
            )
            return _to_payload(result)

    payload = await cache.read(USER_STORES, {"user_id": user_id}, load)
    return [StoreSummary.model_validate(item) for item in payload]


async def get_store(
    store_id: int,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: StoreCache,
) -> StoreSummary | None:
    """Single store for its detail view, or None if it does not exist."""

    async def load() -> dict[str, Any] | None:
        async with session_factory() as session:
            result = await session.execute(
                select(Store.id, Store.name, Store.description, Store.stripe_account_id)
                .where(Store.id == store_id)
            )
            rows = _to_payload(result)
            return rows[0] if rows else None

    payload = await cache.read(STORE_DETAIL, {"store_id": store_id}, load)
    if payload is None:
        return None
    return StoreSummary.model_validate(payload)
