"""Store catalog endpoints.

GET    /v1/stores                  - Dynamic search (never fails, empty page on error)
GET    /v1/stores/featured         - Featured stores (cached)
GET    /v1/stores/{storeId}        - Store detail (cached)
GET    /v1/users/{userId}/stores   - One owner's stores (cached)
POST   /v1/stores                  - Create store
PATCH  /v1/stores/{storeId}        - Rename/describe store
DELETE /v1/stores/{storeId}        - Delete store + products, 303 to the listing

Routers are thin: call services for catalog logic.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.schemas import (
    CreateStoreBody,
    MutationResult,
    StorePage,
    StoreSummary,
    UpdateStoreRequest,
    error_payload,
)
from app.services.store_cache import StoreCache, get_featured_stores, get_store, get_user_stores
from app.services.store_mutations import Redirected, add_store, delete_store, update_store
from app.services.store_search import get_stores
from app.settings import get_settings
from app.stores.postgres import get_session_factory
from app.stores.redis import get_cache_backend

router = APIRouter()

SEARCH_PARAMS = ("page", "per_page", "sort", "statuses", "user_id")


def get_store_cache() -> StoreCache:
    """Cache tier bound to the shared Redis client."""
    return StoreCache(get_cache_backend())


def _mutation_response(result: MutationResult) -> JSONResponse:
    return JSONResponse(
        status_code=400 if result.error else 200,
        content=result.model_dump(),
    )


@router.get("/stores", response_model=StorePage, response_model_by_alias=True)
async def search_stores_endpoint(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> StorePage:
    """Search stores: ?page=&per_page=&sort=name.asc&statuses=active&user_id=.

    Query params are passed through unparsed; malformed input yields an
    empty page rather than an error.
    """
    raw = {k: v for k, v in request.query_params.items() if k in SEARCH_PARAMS}
    return await get_stores(
        raw,
        session_factory=session_factory,
        isolation_level=get_settings().search_isolation_level,
    )


@router.get("/stores/featured", response_model=list[StoreSummary])
async def featured_stores_endpoint(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: StoreCache = Depends(get_store_cache),
) -> list[StoreSummary]:
    return await get_featured_stores(
        session_factory=session_factory,
        cache=cache,
        limit=get_settings().featured_stores_limit,
    )


@router.get("/stores/{store_id}", response_model=StoreSummary)
async def store_detail_endpoint(
    store_id: int = Path(ge=1),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: StoreCache = Depends(get_store_cache),
) -> StoreSummary:
    store = await get_store(store_id, session_factory=session_factory, cache=cache)
    if store is None:
        raise HTTPException(
            status_code=404,
            detail=error_payload(
                "STORE_NOT_FOUND",
                f"Store {store_id} not found",
                {"store_id": store_id},
            ),
        )
    return store


@router.get("/users/{user_id}/stores", response_model=list[StoreSummary])
async def user_stores_endpoint(
    user_id: str = Path(min_length=1, max_length=191),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: StoreCache = Depends(get_store_cache),
) -> list[StoreSummary]:
    return await get_user_stores(user_id, session_factory=session_factory, cache=cache)


@router.post("/stores")
async def create_store_endpoint(
    body: CreateStoreBody,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: StoreCache = Depends(get_store_cache),
) -> JSONResponse:
    result = await add_store(
        {"name": body.name, "description": body.description},
        user_id=body.user_id,
        session_factory=session_factory,
        cache=cache,
    )
    return _mutation_response(result)


@router.patch("/stores/{store_id}")
async def update_store_endpoint(
    body: UpdateStoreRequest,
    store_id: int = Path(ge=1),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: StoreCache = Depends(get_store_cache),
) -> JSONResponse:
    result = await update_store(store_id, body, session_factory=session_factory, cache=cache)
    return _mutation_response(result)


@router.delete("/stores/{store_id}", response_model=None)
async def delete_store_endpoint(
    store_id: int = Path(ge=1),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: StoreCache = Depends(get_store_cache),
) -> RedirectResponse | JSONResponse:
    outcome = await delete_store(store_id, session_factory=session_factory, cache=cache)
    if isinstance(outcome, Redirected):
        return RedirectResponse(url=outcome.destination, status_code=303)
    return _mutation_response(MutationResult(error=outcome.error))
