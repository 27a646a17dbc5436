"""QueryContext — protocol for backend-specific query building."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from .operators import OrderDirection


@runtime_checkable
class QueryContext(Protocol):
    """Mutable query under construction, scoped to one primary collection.

    Implementations accumulate conjunctive predicates, a single sort key and
    limit/offset before the query is executed elsewhere.
    """

    @property
    def alias(self) -> str:
        """Identifier of the primary collection, used to qualify fields."""
        ...

    @property
    def parameter_names(self) -> frozenset[str]:
        """Names of parameters already bound in this context."""
        ...

    def and_where(
        self,
        clause: str,
        parameters: Mapping[str, Any],
        *,
        expanding: Collection[str] = (),
    ) -> None:
        """AND a parameterized predicate onto the query."""
        ...

    def order_by(self, field: str, direction: OrderDirection) -> None:
        """Replace the sort directive."""
        ...

    def take(self, limit: int) -> None:
        """Bound the number of returned rows."""
        ...

    def skip(self, offset: int) -> None:
        """Skip leading rows."""
        ...
