"""Schemas for store catalog reads and mutations (/v1/stores)."""

from pydantic import BaseModel, Field, field_validator


class StoreSearchParams(BaseModel):
    """Raw search request as it arrives from a query string.

    `sort` is "<field>.<direction>" and `statuses` is "<status>.<status>";
    both are interpreted by the query plan resolver, not here.
    """

    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1, le=100)
    sort: str | None = None
    statuses: str | None = None
    user_id: str | None = None

    @field_validator("sort", "statuses", "user_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AddStoreRequest(BaseModel):
    """Payload for creating a store."""

    name: str = Field(min_length=3, max_length=50)
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class UpdateStoreRequest(AddStoreRequest):
    """Payload for renaming/describing a store."""


class CreateStoreBody(AddStoreRequest):
    """HTTP body for POST /v1/stores (owner supplied by the caller)."""

    user_id: str = Field(alias="userId", min_length=1)

    model_config = {"populate_by_name": True}


class StoreSummary(BaseModel):
    """Store as returned by the cached featured/owner/detail reads."""

    id: int
    name: str
    description: str | None = None
    stripe_account_id: str | None = Field(alias="stripeAccountId", default=None)

    model_config = {"populate_by_name": True}


class StoreRow(StoreSummary):
    """Store enriched with its product count (dynamic search)."""

    product_count: int = Field(alias="productCount", ge=0)


class StorePage(BaseModel):
    """One page of search results.

    pageCount = ceil(total matching stores / per_page).
    """

    data: list[StoreRow] = Field(default_factory=list)
    page_count: int = Field(alias="pageCount", ge=0, default=0)

    model_config = {"populate_by_name": True}


class MutationResult(BaseModel):
    """Outcome of a store mutation. `error` is a human-readable message."""

    data: None = None
    error: str | None = None
