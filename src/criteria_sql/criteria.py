"""
Criteria value objects: ``Filter``, ``Order`` and ``Criteria``.

``Criteria`` describes *what* to fetch (a flat conjunction of filters, at
most one sort key and optional limit/offset) without reference to any
backend.  All three types are immutable and compared structurally; two
instances with equal fields are interchangeable.

Value shapes are checked at construction: membership operators take a
non-empty list or tuple (stored as a tuple), every other operator a single
value.  Field paths must be dotted identifiers (``name``, ``user.name``)
because they end up in clause text.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

from .operators import MEMBERSHIP_OPERATORS, FilterOperator, OrderDirection
from .table import check_value

FIELD_PATH_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$"
PATH_SEPARATOR = "."


class Filter(BaseModel):
    """
    A single ``field operator value`` condition.

    Example::

        Filter("name", FilterOperator.CONTAINS, "Laptop")
        Filter("category.id", FilterOperator.IN, [1, 2, 3])
    """

    model_config = ConfigDict(frozen=True)

    field: str = Field(min_length=1, pattern=FIELD_PATH_PATTERN)
    operator: FilterOperator
    value: Any

    def __init__(
        self,
        field: str,
        operator: FilterOperator | str,
        value: Any,
        **data: Any,
    ) -> None:
        super().__init__(field=field, operator=operator, value=value, **data)

    @field_validator("operator", mode="before")
    @classmethod
    def _resolve_operator(cls, v: Any) -> FilterOperator:
        return FilterOperator.from_value(v)

    @field_validator("value")
    @classmethod
    def _check_value(cls, v: Any, info: ValidationInfo) -> Any:
        operator = info.data.get("operator")
        if operator is None:
            # operator already failed validation
            return v
        check_value(info.data.get("field", ""), operator, v)
        if operator in MEMBERSHIP_OPERATORS:
            return tuple(v)
        return v

    @property
    def is_qualified(self) -> bool:
        return PATH_SEPARATOR in self.field


class Order(BaseModel):
    """
    Single-key sort directive.

    Example::

        Order("price", OrderDirection.DESC)
    """

    model_config = ConfigDict(frozen=True)

    order_by: str = Field(min_length=1, pattern=FIELD_PATH_PATTERN)
    order_direction: OrderDirection = OrderDirection.ASC

    def __init__(
        self,
        order_by: str,
        order_direction: OrderDirection | str = OrderDirection.ASC,
        **data: Any,
    ) -> None:
        super().__init__(order_by=order_by, order_direction=order_direction, **data)

    @field_validator("order_direction", mode="before")
    @classmethod
    def _resolve_direction(cls, v: Any) -> OrderDirection:
        return OrderDirection.parse(v)


class Criteria(BaseModel):
    """
    Immutable aggregate of filters, ordering and pagination.

    Attributes:
        filters: Conditions combined with AND, in declaration order.
        order: Optional sort directive (``None`` = backend default order).
        limit: Maximum number of rows (``None`` = unbounded).
        offset: Number of leading rows to skip (``None`` = none).
    """

    model_config = ConfigDict(frozen=True)

    filters: tuple[Filter, ...] = ()
    order: Order | None = None
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)

    @property
    def is_empty(self) -> bool:
        return (
            not self.filters
            and self.order is None
            and self.limit is None
            and self.offset is None
        )

    def field_paths(self) -> Iterator[str]:
        """Yield every referenced field path, filters first."""
        for f in self.filters:
            yield f.field
        if self.order is not None:
            yield self.order.order_by

    def and_filter(self, *filters: Filter) -> Criteria:
        """Return a copy with *filters* appended."""
        return Criteria(
            filters=self.filters + filters,
            order=self.order,
            limit=self.limit,
            offset=self.offset,
        )

    def with_order(self, order: Order | None) -> Criteria:
        """Return a copy with the ordering replaced."""
        return Criteria(
            filters=self.filters,
            order=order,
            limit=self.limit,
            offset=self.offset,
        )

    def with_pagination(
        self,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Criteria:
        """Return a copy with updated pagination parameters."""
        return Criteria(
            filters=self.filters,
            order=self.order,
            limit=limit if limit is not None else self.limit,
            offset=offset if offset is not None else self.offset,
        )

    def without_pagination(self) -> Criteria:
        """Return a copy keeping only the filters, as used for counting."""
        return Criteria(filters=self.filters)
