"""
Translate ``Criteria`` into parameterized clauses on a ``QueryContext``.

Translation is split in two steps:

``CriteriaConverter.translate``
    Pure function of ``(alias, criteria)``.  Resolves field paths, picks
    parameter names and renders one predicate per filter using the operator
    table.  Every filter is validated here, so an invalid filter fails the
    whole translation.

``CriteriaConverter.apply``
    Translates, then pushes the result onto the context: one ``and_where``
    per predicate in declaration order, the sort directive, then
    limit/offset.  The context is only touched after translation succeeded.

Field resolution
----------------
A path containing ``"."`` is already qualified (``relation.column``) and is
used verbatim.  Anything else is prefixed with the context alias.  Joining
the referenced relation is the caller's job.

Parameter naming
----------------
``<field>_<index>`` where every character outside ``[A-Za-z0-9_]`` in the
field is replaced by ``_``.  A name already bound in the context gets a
numeric suffix.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from .criteria import FIELD_PATH_PATTERN, PATH_SEPARATOR
from .exceptions import MalformedFieldPathError
from .table import check_value, rule_for

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from .criteria import Criteria, Filter
    from .operators import OrderDirection
    from .ports import QueryContext

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="QueryContext")

_INVALID_PARAM_CHARS = re.compile(r"[^A-Za-z0-9_]")
_FIELD_PATH = re.compile(FIELD_PATH_PATTERN)


def resolve_field(alias: str, path: str) -> str:
    """Qualify *path* with *alias* unless it is already qualified."""
    if PATH_SEPARATOR in path:
        return path
    return f"{alias}.{path}"


def parameter_name(path: str, index: int) -> str:
    """Derive the bind parameter name for the filter at *index*."""
    return f"{_INVALID_PARAM_CHARS.sub('_', path)}_{index}"


def check_field_path(path: str) -> None:
    """
    Raise MalformedFieldPathError unless *path* is a dotted identifier path.

    Field paths end up in clause text, so instances built without validation
    (``model_construct``) are checked again here.
    """
    if not isinstance(path, str) or _FIELD_PATH.fullmatch(path) is None:
        raise MalformedFieldPathError(str(path))


@dataclass(frozen=True)
class Predicate:
    """One translated filter: clause text plus its single bound parameter."""

    clause: str
    parameter: str
    value: Any
    expanding: bool = False

    @property
    def parameters(self) -> dict[str, Any]:
        return {self.parameter: self.value}


@dataclass(frozen=True)
class Translation:
    """Backend-ready rendering of a ``Criteria``."""

    predicates: tuple[Predicate, ...] = ()
    order: tuple[str, OrderDirection] | None = None
    limit: int | None = None
    offset: int | None = None

    @property
    def parameters(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for predicate in self.predicates:
            merged.update(predicate.parameters)
        return merged


class CriteriaConverter:
    """
    Applies ``Criteria`` to query contexts.

    Stateless; one instance can be shared across repositories and threads.
    """

    def translate(
        self,
        alias: str,
        criteria: Criteria,
        reserved: Collection[str] = (),
    ) -> Translation:
        """
        Translate *criteria* for a context whose base alias is *alias*.

        Args:
            alias: Base alias used to qualify unqualified field paths.
            criteria: The criteria to translate.
            reserved: Parameter names already in use by the target context.

        Raises:
            UnsupportedOperatorError: A filter uses an unknown operator.
            MalformedFilterValueError: A filter value has the wrong shape.
            MalformedFieldPathError: A field path is not a dotted identifier.
        """
        predicates = tuple(self._translate_filters(alias, criteria.filters, reserved))

        order = None
        if criteria.order is not None:
            check_field_path(criteria.order.order_by)
            order = (
                resolve_field(alias, criteria.order.order_by),
                criteria.order.order_direction,
            )

        translation = Translation(
            predicates=predicates,
            order=order,
            limit=criteria.limit or None,
            offset=criteria.offset or None,
        )
        logger.debug(
            "Translated criteria for alias %r: %d predicate(s), order=%s, "
            "limit=%s, offset=%s",
            alias,
            len(predicates),
            order,
            translation.limit,
            translation.offset,
        )
        return translation

    def apply(self, context: C, criteria: Criteria) -> C:
        """
        Apply *criteria* to *context* and return the same context.

        Nothing is added to the context unless every filter translates.
        """
        translation = self.translate(
            context.alias, criteria, reserved=context.parameter_names
        )

        for predicate in translation.predicates:
            context.and_where(
                predicate.clause,
                predicate.parameters,
                expanding=(predicate.parameter,) if predicate.expanding else (),
            )
        if translation.order is not None:
            context.order_by(*translation.order)
        if translation.limit is not None:
            context.take(translation.limit)
        if translation.offset is not None:
            context.skip(translation.offset)
        return context

    # -- internals -----------------------------------------------------------

    def _translate_filters(
        self,
        alias: str,
        filters: Iterable[Filter],
        reserved: Collection[str],
    ) -> Iterable[Predicate]:
        taken = set(reserved)
        for index, f in enumerate(filters):
            check_field_path(f.field)
            rule = rule_for(f.operator)
            check_value(f.field, rule.operator, f.value)

            param = self._unique_name(parameter_name(f.field, index), taken)
            taken.add(param)

            yield Predicate(
                clause=rule.render(resolve_field(alias, f.field), param),
                parameter=param,
                value=rule.transform(f.value),
                expanding=rule.expanding,
            )

    @staticmethod
    def _unique_name(base: str, taken: set[str]) -> str:
        name = base
        suffix = 1
        while name in taken:
            name = f"{base}_{suffix}"
            suffix += 1
        return name


DEFAULT_CONVERTER = CriteriaConverter()
