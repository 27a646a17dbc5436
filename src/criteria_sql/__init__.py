"""Backend-agnostic query criteria and their translation to parameterized SQL."""

from .converter import (
    DEFAULT_CONVERTER,
    CriteriaConverter,
    Predicate,
    Translation,
    parameter_name,
    resolve_field,
)
from .criteria import Criteria, Filter, Order
from .exceptions import (
    AmbiguousFieldReferenceError,
    CriteriaError,
    FieldNotAllowedError,
    FilterParseError,
    MalformedFieldPathError,
    MalformedFilterValueError,
    RepositoryError,
    UnsupportedOperatorError,
)
from .operators import MEMBERSHIP_OPERATORS, FilterOperator, OrderDirection
from .parser import CriteriaParser, FilterSyntax, parse_operator
from .ports import QueryContext
from .table import OPERATOR_TABLE, OperatorRule
from .whitelist import FieldWhitelist

__all__ = [
    # Core types
    "Criteria",
    "Filter",
    "Order",
    "FilterOperator",
    "OrderDirection",
    "MEMBERSHIP_OPERATORS",
    # Operator table
    "OPERATOR_TABLE",
    "OperatorRule",
    # Converter
    "CriteriaConverter",
    "DEFAULT_CONVERTER",
    "Predicate",
    "Translation",
    "QueryContext",
    "parameter_name",
    "resolve_field",
    # Request parsing
    "CriteriaParser",
    "FilterSyntax",
    "parse_operator",
    "FieldWhitelist",
    # Exceptions
    "CriteriaError",
    "UnsupportedOperatorError",
    "MalformedFilterValueError",
    "MalformedFieldPathError",
    "AmbiguousFieldReferenceError",
    "FilterParseError",
    "FieldNotAllowedError",
    "RepositoryError",
]
