"""Dynamic store search (filtered, sorted, paginated, uncached).

Two statements per request:
1. Data page: store columns + product count (LEFT JOIN products, GROUP BY
   store), ordered by the plan's sort spec, LIMIT/OFFSET.
2. Total: count of stores matching the same predicates.

Both run in one transaction so page and total describe the same snapshot.
The HTTP-facing `get_stores` is fail-soft: any failure is logged and mapped to
an empty page. `search_stores` keeps the failure inspectable.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
import math
from typing import Any

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Product, Store
from app.schemas import StorePage, StoreRow, StoreSearchParams
from app.services.query_plan import (
    OwnerPredicate,
    PaymentAccountPredicate,
    Predicate,
    QueryPlan,
    SortColumn,
    SortDirection,
    resolve_plan,
)

logger = logging.getLogger("uvicorn.error")

product_count = func.count(Product.id).label("product_count")

_SORT_COLUMNS: dict[SortColumn, ColumnElement[Any]] = {
    SortColumn.ID: Store.id,
    SortColumn.NAME: Store.name,
    SortColumn.SLUG: Store.slug,
    SortColumn.DESCRIPTION: Store.description,
    SortColumn.USER_ID: Store.user_id,
    SortColumn.STRIPE_ACCOUNT_ID: Store.stripe_account_id,
    SortColumn.CREATED_AT: Store.created_at,
    SortColumn.UPDATED_AT: Store.updated_at,
    SortColumn.PRODUCT_COUNT: product_count,
}


@dataclass(frozen=True)
class SearchOutcome:
    """Search result; `error` is set when a failure was mapped to an empty page."""

    page: StorePage
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def compile_predicate(predicate: Predicate) -> ColumnElement[bool]:
    if isinstance(predicate, OwnerPredicate):
        return Store.user_id == predicate.user_id
    if isinstance(predicate, PaymentAccountPredicate):
        if predicate.present:
            return Store.stripe_account_id.is_not(None)
        return Store.stripe_account_id.is_(None)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _apply_predicates(stmt: Select, plan: QueryPlan) -> Select:
    clauses = [compile_predicate(p) for p in plan.predicates]
    if clauses:
        stmt = stmt.where(*clauses)
    return stmt


def build_page_query(plan: QueryPlan) -> Select:
    """Data query: filtered, grouped, sorted, paged."""
    column = _SORT_COLUMNS[plan.sort.column]
    order = column.asc() if plan.sort.direction is SortDirection.ASC else column.desc()

    stmt = (
        select(
            Store.id,
            Store.name,
            Store.description,
            Store.stripe_account_id,
            product_count,
        )
        .select_from(Store)
        .outerjoin(Product, Product.store_id == Store.id)
    )
    stmt = _apply_predicates(stmt, plan)
    return (
        stmt.group_by(Store.id)
        .order_by(order, Store.id.asc())
        .limit(plan.limit)
        .offset(plan.offset)
    )


def build_count_query(plan: QueryPlan) -> Select:
    """Count query: same predicates, no join/order/paging."""
    return _apply_predicates(select(func.count(Store.id)), plan)


async def execute_plan(session: AsyncSession, plan: QueryPlan) -> tuple[list[StoreRow], int]:
    """Run page + count queries on one session.

    Returns:
        (rows on the requested page, total matching stores)
    """
    result = await session.execute(build_page_query(plan))
    rows = [
        StoreRow(
            id=row.id,
            name=row.name,
            description=row.description,
            stripe_account_id=row.stripe_account_id,
            product_count=row.product_count or 0,
        )
        for row in result
    ]

    count_result = await session.execute(build_count_query(plan))
    total = count_result.scalar() or 0
    return rows, total


async def search_stores(
    raw: Mapping[str, Any] | StoreSearchParams,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    isolation_level: str | None = None,
) -> SearchOutcome:
    """Resolve and execute a search; failures become an empty page + error.

    Args:
        raw: Raw search params (page, per_page, sort, statuses, user_id).
        session_factory: Session factory for the catalog database.
        isolation_level: Transaction isolation for the page + count pair
            (e.g. "REPEATABLE READ"); None keeps the engine default.
    """
    try:
        plan = resolve_plan(raw)
        async with session_factory() as session:
            async with session.begin():
                if isolation_level:
                    await session.connection(
                        execution_options={"isolation_level": isolation_level}
                    )
                rows, total = await execute_plan(session, plan)
    except Exception as e:
        logger.exception(f"Store search failed: {e}")
        return SearchOutcome(page=StorePage(), error=e)

    return SearchOutcome(
        page=StorePage(data=rows, page_count=math.ceil(total / plan.limit)),
    )


async def get_stores(
    raw: Mapping[str, Any] | StoreSearchParams,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    isolation_level: str | None = None,
) -> StorePage:
    """Search stores; never raises (failures yield {data: [], pageCount: 0})."""
    outcome = await search_stores(
        raw,
        session_factory=session_factory,
        isolation_level=isolation_level,
    )
    return outcome.page
