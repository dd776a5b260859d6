"""Tests for store create/update/delete and their cache invalidation."""

import pytest
from sqlalchemy import func, select, text

from app.models import Product, Store
from app.services.store_cache import TAG_USER_STORES, get_user_stores, path_tag
from app.services.store_mutations import (
    Failed,
    Redirected,
    add_store,
    delete_store,
    update_store,
)


async def _store(session_factory, store_id: int) -> Store | None:
    async with session_factory() as session:
        return await session.get(Store, store_id)


async def _count(session_factory, stmt) -> int:
    async with session_factory() as session:
        return (await session.execute(stmt)).scalar() or 0


@pytest.mark.asyncio
async def test_add_store_inserts_with_slug_and_invalidates(session_factory, cache, cache_backend):
    result = await add_store(
        {"name": "Bob's Vinyl Shop", "description": "Records"},
        user_id="u1",
        session_factory=session_factory,
        cache=cache,
    )
    assert result.data is None
    assert result.error is None

    async with session_factory() as session:
        store = (await session.execute(select(Store))).scalar_one()
    assert store.slug == "bobs-vinyl-shop"
    assert store.user_id == "u1"
    assert store.stripe_account_id is None
    assert cache_backend.invalidated == [TAG_USER_STORES]


@pytest.mark.asyncio
async def test_add_store_duplicate_name_is_rejected(seed, session_factory, cache, cache_backend):
    await seed({"name": "Taken"})
    result = await add_store(
        {"name": "Taken"}, user_id="u2", session_factory=session_factory, cache=cache
    )
    assert result.data is None
    assert result.error == "Store name already taken."
    assert await _count(session_factory, select(func.count(Store.id))) == 1
    assert cache_backend.invalidated == []


@pytest.mark.asyncio
async def test_add_store_validation_error_is_a_message(session_factory, cache):
    result = await add_store({"name": "ab"}, user_id="u1", session_factory=session_factory, cache=cache)
    assert result.error is not None
    assert "name" in result.error
    assert await _count(session_factory, select(func.count(Store.id))) == 0


@pytest.mark.asyncio
async def test_add_store_refreshes_owner_list(session_factory, cache):
    assert await get_user_stores("u1", session_factory=session_factory, cache=cache) == []
    await add_store({"name": "Fresh"}, user_id="u1", session_factory=session_factory, cache=cache)
    stores = await get_user_stores("u1", session_factory=session_factory, cache=cache)
    assert [s.name for s in stores] == ["Fresh"]


@pytest.mark.asyncio
async def test_update_store_rename_to_other_store_name_fails(seed, session_factory, cache):
    ids = await seed({"name": "Alpha"}, {"name": "Bravo"})
    result = await update_store(
        ids["Alpha"], {"name": "Bravo", "description": "x"}, session_factory=session_factory, cache=cache
    )
    assert result.error == "Store name already taken"

    store = await _store(session_factory, ids["Alpha"])
    assert store.name == "Alpha"
    assert store.description is None


@pytest.mark.asyncio
async def test_update_store_may_keep_its_own_name(seed, session_factory, cache, cache_backend):
    ids = await seed({"name": "Keep"})
    result = await update_store(
        ids["Keep"], {"name": "Keep", "description": "Now described"},
        session_factory=session_factory, cache=cache,
    )
    assert result.error is None

    store = await _store(session_factory, ids["Keep"])
    assert store.description == "Now described"
    assert cache_backend.invalidated == [TAG_USER_STORES, path_tag(f"/dashboard/stores/{ids['Keep']}")]


@pytest.mark.asyncio
async def test_update_store_renames_and_reslugs(seed, session_factory, cache):
    ids = await seed({"name": "Old Name"})
    result = await update_store(
        ids["Old Name"], {"name": "New Name"}, session_factory=session_factory, cache=cache
    )
    assert result.error is None
    store = await _store(session_factory, ids["Old Name"])
    assert store.name == "New Name"
    assert store.slug == "new-name"


@pytest.mark.asyncio
@pytest.mark.parametrize("product_count", [0, 1, 4])
async def test_delete_store_cascades_to_products(seed, session_factory, cache, cache_backend, product_count):
    ids = await seed({"name": "Doomed", "products": product_count}, {"name": "Survivor", "products": 2})

    outcome = await delete_store(ids["Doomed"], session_factory=session_factory, cache=cache)
    assert outcome == Redirected(destination="/dashboard/stores")

    assert await _store(session_factory, ids["Doomed"]) is None
    orphans = select(func.count(Product.id)).where(Product.store_id == ids["Doomed"])
    assert await _count(session_factory, orphans) == 0
    survivors = select(func.count(Product.id)).where(Product.store_id == ids["Survivor"])
    assert await _count(session_factory, survivors) == 2
    assert path_tag("/dashboard/stores") in cache_backend.invalidated


@pytest.mark.asyncio
async def test_delete_missing_store_fails(session_factory, cache, cache_backend):
    outcome = await delete_store(999, session_factory=session_factory, cache=cache)
    assert outcome == Failed(error="Store not found")
    assert cache_backend.invalidated == []


@pytest.mark.asyncio
async def test_delete_store_removes_it_from_owner_list(seed, session_factory, cache):
    ids = await seed({"name": "Gone", "user_id": "u1"}, {"name": "Stays", "user_id": "u1"})
    await get_user_stores("u1", session_factory=session_factory, cache=cache)

    await delete_store(ids["Gone"], session_factory=session_factory, cache=cache)
    stores = await get_user_stores("u1", session_factory=session_factory, cache=cache)
    assert [s.name for s in stores] == ["Stays"]


@pytest.mark.asyncio
async def test_mutation_storage_failure_is_a_message(session_factory, cache, engine):
    async with engine.begin() as conn:
        await conn.run_sync(Store.__table__.drop)

    result = await add_store({"name": "Nowhere"}, user_id="u1", session_factory=session_factory, cache=cache)
    assert result.error == "Something went wrong, please try again later."


@pytest.mark.asyncio
async def test_delete_store_rolls_back_products_when_store_delete_fails(
    seed, session_factory, cache, engine, cache_backend
):
    ids = await seed({"name": "Guarded", "products": 3})
    async with engine.begin() as conn:
        await conn.execute(
            text(
                "CREATE TRIGGER block_store_delete BEFORE DELETE ON stores "
                "BEGIN SELECT RAISE(ABORT, 'blocked'); END"
            )
        )

    outcome = await delete_store(ids["Guarded"], session_factory=session_factory, cache=cache)
    assert outcome == Failed(error="Something went wrong, please try again later.")

    assert await _store(session_factory, ids["Guarded"]) is not None
    products = select(func.count(Product.id)).where(Product.store_id == ids["Guarded"])
    assert await _count(session_factory, products) == 3
    assert cache_backend.invalidated == []


@pytest.mark.asyncio
async def test_add_store_succeeds_when_invalidation_fails(session_factory, broken_cache):
    result = await add_store(
        {"name": "Committed"}, user_id="u1", session_factory=session_factory, cache=broken_cache
    )
    assert result.error is None
    assert await _count(session_factory, select(func.count(Store.id))) == 1


@pytest.mark.asyncio
async def test_update_store_succeeds_when_invalidation_fails(seed, session_factory, broken_cache):
    ids = await seed({"name": "Before"})
    result = await update_store(
        ids["Before"], {"name": "After"}, session_factory=session_factory, cache=broken_cache
    )
    assert result.error is None
    store = await _store(session_factory, ids["Before"])
    assert store.name == "After"


@pytest.mark.asyncio
async def test_delete_store_redirects_when_invalidation_fails(seed, session_factory, broken_cache):
    ids = await seed({"name": "Removed", "products": 2})
    outcome = await delete_store(ids["Removed"], session_factory=session_factory, cache=broken_cache)
    assert outcome == Redirected(destination="/dashboard/stores")
    assert await _store(session_factory, ids["Removed"]) is None
