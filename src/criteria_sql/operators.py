from __future__ import annotations

from enum import Enum

from .exceptions import UnsupportedOperatorError


class FilterOperator(str, Enum):
    """Comparison operators a ``Filter`` may use."""

    # Comparison
    EQUALS = "="
    NOT_EQUAL = "!="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="

    # Case-insensitive substring
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"

    # Membership
    IN = "IN"
    NOT_IN = "NOT_IN"

    @classmethod
    def from_value(cls, token: str | FilterOperator) -> FilterOperator:
        """
        Resolve an exact wire value (``"="``, ``"NOT_IN"``) to an operator.

        Raises:
            UnsupportedOperatorError: If the token is not a wire value.
        """
        if isinstance(token, cls):
            return token
        if isinstance(token, str):
            try:
                return cls(token)
            except ValueError:
                pass
        raise UnsupportedOperatorError(str(token), [op.value for op in cls])


class OrderDirection(str, Enum):
    """Sort direction for an ``Order``."""

    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, token: str | OrderDirection) -> OrderDirection:
        if isinstance(token, cls):
            return token
        return cls(str(token).strip().upper())


MEMBERSHIP_OPERATORS: frozenset[FilterOperator] = frozenset(
    {FilterOperator.IN, FilterOperator.NOT_IN}
)
