"""
CriteriaParser — request query params -> ``Criteria``.

Recognised parameters (keys are configurable per call)::

    filter=name:contains:laptop,price:lte:500,id:in:1,2,3
    sort=-price                      (or order_by=price&order_direction=DESC)
    limit=20
    offset=40

Filter clauses are ``field:op:value`` joined by commas; a comma-separated
tail without colons belongs to the previous clause's value, which is how
membership lists are written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .criteria import Criteria, Filter, Order
from .exceptions import FilterParseError, UnsupportedOperatorError
from .operators import MEMBERSHIP_OPERATORS, FilterOperator, OrderDirection

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .whitelist import FieldWhitelist

# Request-layer spellings for operators, on top of member names and values.
_NAME_ALIASES: dict[str, str] = {
    "eq": "EQUALS",
    "ne": "NOT_EQUAL",
    "neq": "NOT_EQUAL",
}


def parse_operator(token: str | FilterOperator) -> FilterOperator:
    """
    Resolve a request token to an operator.

    Accepts member values (``">="``, ``"IN"``), member names
    (``"GTE"``, ``"not_in"``) and the short aliases ``eq``/``ne``.
    Word tokens are case-insensitive.

    Raises:
        UnsupportedOperatorError: If the token names no operator.
    """
    if isinstance(token, FilterOperator):
        return token
    if isinstance(token, str):
        candidate = token.strip()
        try:
            return FilterOperator(candidate)
        except ValueError:
            pass
        name = _NAME_ALIASES.get(candidate.lower(), candidate.upper())
        if name in FilterOperator.__members__:
            return FilterOperator.__members__[name]
    raise UnsupportedOperatorError(str(token), [op.value for op in FilterOperator])


class FilterSyntax:
    """Parse ``field:op:value`` clauses (comma-separated, AND)."""

    def parse_filter(self, raw: Any) -> list[Filter]:
        if not raw or not isinstance(raw, str):
            return []
        filters: list[Filter] = []
        for part in self._smart_split(raw):
            tokens = part.split(":", 2)
            if len(tokens) != 3:
                raise FilterParseError(f"Expected field:op:value, got: {part!r}")
            field, op, value = (t.strip() for t in tokens)
            operator = parse_operator(op)
            parsed = self._parse_value(value, operator)
            filters.append(_build(Filter, field, operator, parsed))
        return filters

    def _smart_split(self, raw: str) -> list[str]:
        """
        Split by commas, keeping commas that belong to a clause value.

        Example:
            "id:in:1,2,3,name:contains:x"
            → ["id:in:1,2,3", "name:contains:x"]
        """
        clauses: list[str] = []
        for segment in raw.split(","):
            segment = segment.strip()
            if not segment:
                continue
            if segment.count(":") >= 2 or not clauses:
                clauses.append(segment)
            else:
                clauses[-1] += "," + segment
        return clauses

    def _parse_value(self, s: str, operator: FilterOperator) -> Any:
        if operator in MEMBERSHIP_OPERATORS:
            return [self._parse_scalar(v.strip()) for v in s.split(",") if v.strip()]
        if operator in (FilterOperator.CONTAINS, FilterOperator.NOT_CONTAINS):
            return s
        return self._parse_scalar(s)

    def _parse_scalar(self, s: str) -> Any:
        lowered = s.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        if lowered == "null":
            return None
        try:
            return int(s)
        except ValueError:
            pass
        try:
            return float(s)
        except ValueError:
            pass
        return s


class CriteriaParser:
    """Parse API params into a ``Criteria``.

    Args:
        default_limit: Limit applied when the request gives none.
        max_limit: Upper bound for requested limits.
        default_order: Ordering applied when the request gives none.
        syntax: Filter clause parser.
    """

    def __init__(
        self,
        *,
        default_limit: int | None = 10,
        max_limit: int = 100,
        default_order: Order | None = None,
        syntax: FilterSyntax | None = None,
    ) -> None:
        if max_limit < 1:
            raise ValueError("max_limit must be at least 1")
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._default_order = default_order
        self._syntax = syntax or FilterSyntax()

    def parse(
        self,
        query_params: Mapping[str, Any],
        whitelist: FieldWhitelist | None = None,
        *,
        filter_key: str = "filter",
        sort_key: str = "sort",
        limit_key: str = "limit",
        offset_key: str = "offset",
    ) -> Criteria:
        filters = self._syntax.parse_filter(query_params.get(filter_key))
        order = self._parse_order(query_params, sort_key) or self._default_order
        if whitelist is not None:
            for f in filters:
                whitelist.allow_filter(f.field, f.operator)
            if order is not None:
                whitelist.allow_sort(order.order_by)

        limit = self._int_param(query_params, limit_key)
        if limit is None:
            limit = self._default_limit
        else:
            limit = min(self._max_limit, max(1, limit))
        offset = self._int_param(query_params, offset_key)
        if offset is not None:
            offset = max(0, offset)

        return Criteria(filters=tuple(filters), order=order, limit=limit, offset=offset)

    def _parse_order(self, params: Mapping[str, Any], sort_key: str) -> Order | None:
        raw = params.get(sort_key)
        if raw:
            if not isinstance(raw, str) or "," in raw:
                raise FilterParseError(f"Expected a single sort field, got: {raw!r}")
            raw = raw.strip()
            if raw.startswith("-"):
                return _build(Order, raw[1:], OrderDirection.DESC)
            return _build(Order, raw.lstrip("+"), OrderDirection.ASC)

        order_by = params.get("order_by")
        if not order_by:
            return None
        direction = params.get("order_direction") or OrderDirection.ASC
        try:
            direction = OrderDirection.parse(direction)
        except ValueError as e:
            raise FilterParseError(f"Invalid order direction: {direction!r}") from e
        return _build(Order, order_by, direction)

    def _int_param(self, params: Mapping[str, Any], key: str) -> int | None:
        v = params.get(key)
        if v is None or v == "":
            return None
        if isinstance(v, bool) or not isinstance(v, int | str):
            raise FilterParseError(f"Parameter {key!r} must be an integer")
        try:
            return int(v)
        except (TypeError, ValueError) as e:
            raise FilterParseError(f"Parameter {key!r} must be an integer") from e


def _build(model: Any, *args: Any) -> Any:
    try:
        return model(*args)
    except ValidationError as e:
        raise FilterParseError(str(e)) from e
