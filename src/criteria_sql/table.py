"""
Operator table: the fixed mapping from ``FilterOperator`` to clause rule.

Each rule carries a clause template with ``{field}`` and ``{param}``
placeholders and the transform applied to the filter value before it is
bound.  Values never appear in clause text; they are always bound as named
parameters.

Membership rules are *expanding*: the sequence is bound as a single
parameter that the SQL compiler renders as a parenthesised placeholder list.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .exceptions import MalformedFilterValueError, UnsupportedOperatorError
from .operators import MEMBERSHIP_OPERATORS, FilterOperator


def _identity(value: Any) -> Any:
    return value


def _wrap_wildcards(value: Any) -> str:
    return f"%{value}%"


def _as_tuple(value: Any) -> tuple[Any, ...]:
    return tuple(value)


@dataclass(frozen=True)
class OperatorRule:
    operator: FilterOperator
    template: str
    transform: Callable[[Any], Any] = _identity
    expanding: bool = False

    def render(self, field: str, param: str) -> str:
        return self.template.format(field=field, param=param)


OPERATOR_TABLE: Mapping[FilterOperator, OperatorRule] = MappingProxyType(
    {
        rule.operator: rule
        for rule in (
            OperatorRule(FilterOperator.EQUALS, "{field} = :{param}"),
            OperatorRule(FilterOperator.NOT_EQUAL, "{field} != :{param}"),
            OperatorRule(FilterOperator.GT, "{field} > :{param}"),
            OperatorRule(FilterOperator.LT, "{field} < :{param}"),
            OperatorRule(FilterOperator.GTE, "{field} >= :{param}"),
            OperatorRule(FilterOperator.LTE, "{field} <= :{param}"),
            OperatorRule(
                FilterOperator.CONTAINS,
                "lower({field}) like lower(:{param})",
                _wrap_wildcards,
            ),
            OperatorRule(
                FilterOperator.NOT_CONTAINS,
                "lower({field}) not like lower(:{param})",
                _wrap_wildcards,
            ),
            OperatorRule(
                FilterOperator.IN, "{field} in :{param}", _as_tuple, expanding=True
            ),
            OperatorRule(
                FilterOperator.NOT_IN,
                "{field} not in :{param}",
                _as_tuple,
                expanding=True,
            ),
        )
    }
)


def rule_for(operator: Any) -> OperatorRule:
    """
    Look up the rule for *operator*.

    Raises:
        UnsupportedOperatorError: If *operator* is not in the table.
    """
    rule = None
    if isinstance(operator, FilterOperator):
        rule = OPERATOR_TABLE.get(operator)
    if rule is None:
        raise UnsupportedOperatorError(
            str(getattr(operator, "value", operator)),
            [op.value for op in OPERATOR_TABLE],
        )
    return rule


def _is_sequence(value: Any) -> bool:
    return isinstance(value, list | tuple)


def _is_collection(value: Any) -> bool:
    return isinstance(value, list | tuple | set | frozenset | Mapping)


def check_value(field: str, operator: FilterOperator, value: Any) -> None:
    """
    Check that *value* has the shape *operator* requires.

    Raises:
        MalformedFilterValueError: On a shape mismatch.
    """
    if operator in MEMBERSHIP_OPERATORS:
        if not _is_sequence(value):
            raise MalformedFilterValueError(
                field,
                operator.value,
                f"expected a list or tuple, got {type(value).__name__}",
            )
        if not value:
            raise MalformedFilterValueError(
                field, operator.value, "sequence must not be empty"
            )
        return

    if _is_collection(value):
        raise MalformedFilterValueError(
            field,
            operator.value,
            f"expected a single value, got {type(value).__name__}",
        )
    if value is None and operator in (
        FilterOperator.CONTAINS,
        FilterOperator.NOT_CONTAINS,
    ):
        raise MalformedFilterValueError(
            field, operator.value, "substring must not be None"
        )
