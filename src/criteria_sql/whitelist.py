"""FieldWhitelist — per-resource filterable and sortable fields."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .exceptions import FieldNotAllowedError
from .parser import parse_operator

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .operators import FilterOperator


class FieldWhitelist:
    """Per-resource allowed fields and operators.

    Operators may be given by symbol or name (``"="``, ``"eq"``, ``"IN"``).
    """

    def __init__(
        self,
        *,
        filterable_fields: Mapping[str, Iterable[str | FilterOperator]] | None = None,
        sortable_fields: Iterable[str] | None = None,
    ) -> None:
        self.filterable_fields: dict[str, frozenset[FilterOperator]] = {
            field: frozenset(parse_operator(op) for op in ops)
            for field, ops in (filterable_fields or {}).items()
        }
        self.sortable_fields = frozenset(sortable_fields or ())

    def allow_filter(self, field: str, operator: FilterOperator) -> None:
        """Raise FieldNotAllowedError if field or operator is not allowed."""
        if field not in self.filterable_fields:
            raise FieldNotAllowedError(f"Field {field!r} is not filterable")
        if operator not in self.filterable_fields[field]:
            raise FieldNotAllowedError(
                f"Operator {operator.value!r} not allowed for field {field!r}"
            )

    def allow_sort(self, field: str) -> None:
        if field not in self.sortable_fields:
            raise FieldNotAllowedError(f"Field {field!r} is not sortable")

