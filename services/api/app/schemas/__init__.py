"""Pydantic schemas for API request/response validation."""

from app.schemas.common import ErrorDetail, ErrorResponse, error_payload
from app.schemas.store import (
    AddStoreRequest,
    CreateStoreBody,
    MutationResult,
    StorePage,
    StoreRow,
    StoreSearchParams,
    StoreSummary,
    UpdateStoreRequest,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "error_payload",
    "AddStoreRequest",
    "CreateStoreBody",
    "MutationResult",
    "StorePage",
    "StoreRow",
    "StoreSearchParams",
    "StoreSummary",
    "UpdateStoreRequest",
]
