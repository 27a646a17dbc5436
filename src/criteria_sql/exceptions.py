"""
Criteria exception hierarchy.

All exceptions inherit from ``CriteriaError`` and provide ``to_dict()``
for API-friendly error responses.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class CriteriaError(Exception):
    """Base exception for all criteria errors."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class UnsupportedOperatorError(CriteriaError):
    """
    Operator symbol outside the supported set.

    Provides fuzzy-matched suggestions for likely intended operators.
    """

    def __init__(self, operator: str, valid_operators: list[str]) -> None:
        self.operator = operator
        self.valid_operators = valid_operators
        self.suggestions = get_close_matches(
            operator.upper(), valid_operators, n=3, cutoff=0.6
        )

        message = f"Operator '{operator}' is not supported."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        message += f" Valid operators: {', '.join(valid_operators)}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNSUPPORTED_OPERATOR",
            "operator": self.operator,
            "suggestions": self.suggestions,
            "valid_operators": list(self.valid_operators),
        }


class MalformedFilterValueError(CriteriaError):
    """
    Filter value does not have the shape its operator requires.

    Membership operators need a non-empty sequence; every other operator
    needs a single scalar.
    """

    def __init__(self, field: str, operator: str, reason: str) -> None:
        self.field = field
        self.operator = operator
        self.reason = reason
        super().__init__(
            f"Malformed value for filter '{field}' ({operator}): {reason}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "MALFORMED_FILTER_VALUE",
            "field": self.field,
            "operator": self.operator,
            "reason": self.reason,
        }


class MalformedFieldPathError(CriteriaError):
    """
    Field path is not a dotted identifier path.

    Field paths are emitted into clause text, so anything other than
    ``name`` or ``relation.name`` segments is refused before translation.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Malformed field path '{path}': expected dotted identifiers "
            "such as 'name' or 'user.name'"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "MALFORMED_FIELD_PATH",
            "path": self.path,
        }


class AmbiguousFieldReferenceError(CriteriaError):
    """
    Qualified field path references a relation that is not part of the query.

    Example error message::

        Field 'author.name' references 'author', which is not joined
        into the query. Known aliases: items, category
    """

    def __init__(self, path: str, known_aliases: list[str]) -> None:
        self.path = path
        self.relation = path.rsplit(".", 1)[0]
        self.known_aliases = known_aliases
        self.suggestions = get_close_matches(
            self.relation, known_aliases, n=3, cutoff=0.6
        )

        message = (
            f"Field '{path}' references '{self.relation}', which is not joined "
            f"into the query."
        )
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        message += f" Known aliases: {', '.join(known_aliases)}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "AMBIGUOUS_FIELD_REFERENCE",
            "path": self.path,
            "relation": self.relation,
            "suggestions": self.suggestions,
            "known_aliases": list(self.known_aliases),
        }


class FilterParseError(CriteriaError):
    """Raised when request parameters cannot be parsed into criteria."""


class FieldNotAllowedError(CriteriaError):
    """Raised when a field is not whitelisted or an operator is disallowed."""


class RepositoryError(CriteriaError):
    """Raised when the backend fails while executing a translated query."""
