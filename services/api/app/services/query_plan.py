"""Query plan resolution for store search.

Turns a raw search request (stringly query params) into an immutable plan:
- limit/offset from page + per_page
- sort spec from "<field>.<direction>" against a fixed allow-list
- AND-able predicates from user_id and "<status>.<status>"

Nothing from the request is interpolated into SQL: sort fields are resolved to
enum members here and to ORM columns by the executor.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

import pydantic

from app.schemas import StoreSearchParams
from app.services.errors import ValidationError, format_validation_error


class SortColumn(Enum):
    """Sortable fields, keyed by their API names."""

    ID = "id"
    NAME = "name"
    SLUG = "slug"
    DESCRIPTION = "description"
    USER_ID = "userId"
    STRIPE_ACCOUNT_ID = "stripeAccountId"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    PRODUCT_COUNT = "productCount"  # aggregate, not a row column


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    column: SortColumn
    direction: SortDirection


DEFAULT_SORT = SortSpec(SortColumn.CREATED_AT, SortDirection.DESC)


class StoreStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class OwnerPredicate:
    """Store belongs to user_id."""

    user_id: str


@dataclass(frozen=True)
class PaymentAccountPredicate:
    """Store has (present=True) or lacks (present=False) a payment account."""

    present: bool


Predicate = Union[OwnerPredicate, PaymentAccountPredicate]


@dataclass(frozen=True)
class QueryPlan:
    limit: int
    offset: int
    sort: SortSpec
    predicates: tuple[Predicate, ...] = ()

    @property
    def owner_filter(self) -> str | None:
        for predicate in self.predicates:
            if isinstance(predicate, OwnerPredicate):
                return predicate.user_id
        return None


def parse_sort(token: str | None) -> SortSpec:
    """Parse "<field>.<direction>" into a SortSpec.

    - Unknown/absent field -> DEFAULT_SORT (createdAt desc)
    - Direction outside {asc, desc} is treated as absent
    - Absent direction -> desc for row columns, DEFAULT_SORT for productCount
    """
    if not token:
        return DEFAULT_SORT

    field, raw_direction = (token.split(".") + [""])[:2]
    try:
        column = SortColumn(field)
    except ValueError:
        return DEFAULT_SORT

    try:
        direction: SortDirection | None = SortDirection(raw_direction)
    except ValueError:
        direction = None

    if direction is None:
        if column is SortColumn.PRODUCT_COUNT:
            return DEFAULT_SORT
        direction = SortDirection.DESC

    return SortSpec(column, direction)


def parse_statuses(token: str | None) -> set[StoreStatus]:
    """Parse "<status>.<status>..." keeping only known statuses."""
    statuses: set[StoreStatus] = set()
    for part in (token or "").split("."):
        try:
            statuses.add(StoreStatus(part.strip()))
        except ValueError:
            continue
    return statuses


def status_predicate(statuses: set[StoreStatus]) -> PaymentAccountPredicate | None:
    """Exactly one status filters; both or neither is a no-op."""
    if statuses == {StoreStatus.ACTIVE}:
        return PaymentAccountPredicate(present=True)
    if statuses == {StoreStatus.INACTIVE}:
        return PaymentAccountPredicate(present=False)
    return None


def resolve_plan(raw: Mapping[str, Any] | StoreSearchParams) -> QueryPlan:
    """Validate a raw search request and resolve it into a QueryPlan.

    Raises:
        ValidationError: If page/per_page are not positive integers (or the
            payload is otherwise malformed).
    """
    if isinstance(raw, StoreSearchParams):
        search = raw
    else:
        try:
            search = StoreSearchParams.model_validate(dict(raw))
        except pydantic.ValidationError as e:
            raise ValidationError(format_validation_error(e)) from e

    predicates: list[Predicate] = []
    if search.user_id:
        predicates.append(OwnerPredicate(search.user_id))
    status = status_predicate(parse_statuses(search.statuses))
    if status is not None:
        predicates.append(status)

    return QueryPlan(
        limit=search.per_page,
        offset=(search.page - 1) * search.per_page,
        sort=parse_sort(search.sort),
        predicates=tuple(predicates),
    )
