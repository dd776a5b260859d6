"""API routes."""

from fastapi import APIRouter

from app.routes import stores

api_router = APIRouter()

# Store catalog endpoints (search, cached lists, mutations)
api_router.include_router(stores.router, prefix="/v1", tags=["stores"])
