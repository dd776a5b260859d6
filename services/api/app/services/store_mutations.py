"""Store mutations: create, rename/describe, delete.

Each operation is pre-check + write (one transaction) + post-commit cache
invalidation. Errors never propagate to the caller: create/update return
MutationResult(error=...), delete returns Failed(error=...). A successful
delete returns Redirected(destination) instead of a value.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
from typing import Any, Union

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Product, Store
from app.schemas import AddStoreRequest, MutationResult, UpdateStoreRequest
from app.services.errors import (
    GENERIC_ERROR_MESSAGE,
    CatalogError,
    ConflictError,
    ExecutionError,
    NotFoundError,
    get_error_message,
)
from app.services.slug import slugify
from app.services.store_cache import (
    STORES_LISTING_PATH,
    TAG_USER_STORES,
    StoreCache,
    store_detail_path,
)

logger = logging.getLogger("uvicorn.error")

NAME_TAKEN_ON_CREATE = "Store name already taken."
NAME_TAKEN_ON_UPDATE = "Store name already taken"
STORE_NOT_FOUND = "Store not found"


@dataclass(frozen=True)
class Redirected:
    """Successful delete: the caller should navigate to `destination`."""

    destination: str


@dataclass(frozen=True)
class Failed:
    error: str


DeleteOutcome = Union[Redirected, Failed]


@asynccontextmanager
async def _transaction(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    conflict_message: str | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Session in a transaction; storage errors become catalog errors.

    IntegrityError maps to ConflictError(conflict_message) when given (a
    concurrent insert won the unique-name race), any other SQLAlchemy error
    to ExecutionError.
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except CatalogError:
        raise
    except IntegrityError as e:
        if conflict_message is not None:
            raise ConflictError(conflict_message) from e
        logger.exception("Store mutation violated a constraint")
        raise ExecutionError(GENERIC_ERROR_MESSAGE) from e
    except SQLAlchemyError as e:
        logger.exception("Store mutation failed")
        raise ExecutionError(GENERIC_ERROR_MESSAGE) from e


async def _name_taken(session: AsyncSession, name: str, *, exclude_id: int | None = None) -> bool:
    stmt = select(Store.id).where(Store.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Store.id != exclude_id)
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _try_invalidate(
    cache: StoreCache,
    *,
    tags: tuple[str, ...] = (),
    paths: tuple[str, ...] = (),
) -> None:
    """Post-commit invalidation; a cache failure never undoes a committed write.

    Stale entries still expire on their TTL.
    """
    try:
        for tag in tags:
            await cache.invalidate(tag)
        for path in paths:
            await cache.invalidate_path(path)
    except Exception:
        logger.exception(f"Cache invalidation failed (tags={tags}, paths={paths})")


async def add_store(
    payload: Mapping[str, Any] | AddStoreRequest,
    *,
    user_id: str,
    session_factory: async_sessionmaker[AsyncSession],
    cache: StoreCache,
) -> MutationResult:
    """Create a store owned by `user_id`.

    Fails with "Store name already taken." if any store has the same name.
    """
    try:
        data = AddStoreRequest.model_validate(payload)
        async with _transaction(session_factory, conflict_message=NAME_TAKEN_ON_CREATE) as session:
            if await _name_taken(session, data.name):
                raise ConflictError(NAME_TAKEN_ON_CREATE)
            session.add(
                Store(
                    name=data.name,
                    description=data.description,
                    user_id=user_id,
                    slug=slugify(data.name),
                )
            )
    except Exception as e:
        return MutationResult(error=get_error_message(e))

    await _try_invalidate(cache, tags=(TAG_USER_STORES,))
    logger.info(f"Store created: {data.name} (owner {user_id})")
    return MutationResult()


async def update_store(
    store_id: int,
    payload: Mapping[str, Any] | UpdateStoreRequest,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: StoreCache,
) -> MutationResult:
    """Rename/describe a store.

    The store may keep its own name; fails with "Store name already taken"
    only if a different store has it.
    """
    try:
        data = UpdateStoreRequest.model_validate(payload)
        async with _transaction(session_factory, conflict_message=NAME_TAKEN_ON_UPDATE) as session:
            if await _name_taken(session, data.name, exclude_id=store_id):
                raise ConflictError(NAME_TAKEN_ON_UPDATE)
            await session.execute(
                update(Store)
                .where(Store.id == store_id)
                .values(
                    name=data.name,
                    description=data.description,
                    slug=slugify(data.name),
                )
            )
    except Exception as e:
        return MutationResult(error=get_error_message(e))

    await _try_invalidate(cache, tags=(TAG_USER_STORES,), paths=(store_detail_path(store_id),))
    return MutationResult()


async def delete_store(
    store_id: int,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: StoreCache,
) -> DeleteOutcome:
    """Delete a store and all of its products in one transaction.

    Products go first so the foreign key never blocks the store delete; if
    either statement fails, both roll back.

    Returns:
        Redirected to the stores listing on success, Failed otherwise.
    """
    try:
        async with _transaction(session_factory) as session:
            found = await session.execute(select(Store.id).where(Store.id == store_id))
            if found.scalar_one_or_none() is None:
                raise NotFoundError(STORE_NOT_FOUND)

            await session.execute(delete(Product).where(Product.store_id == store_id))
            await session.execute(delete(Store).where(Store.id == store_id))
    except Exception as e:
        return Failed(error=get_error_message(e))

    await _try_invalidate(cache, paths=(STORES_LISTING_PATH, store_detail_path(store_id)))
    logger.info(f"Store {store_id} deleted")
    return Redirected(destination=STORES_LISTING_PATH)
