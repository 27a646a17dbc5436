"""
``QueryContext`` implementation over a SQLAlchemy ``Select``.

Predicates are added as ``text()`` fragments with explicit ``bindparam``
objects, so translated clause text reaches the database verbatim while
every value travels as a bound parameter.  Membership parameters are bound
with ``expanding=True`` and rendered by the compiler as ``(?, ?, ...)``.

Results are always distinct entities: joining a to-many relationship turns
the select into ``SELECT DISTINCT`` and counts are taken over the distinct
primary keys, so LIMIT and OFFSET count entities rather than joined rows.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sqlalchemy import bindparam, func, inspect, select, text
from sqlalchemy.orm import RelationshipProperty, aliased

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from sqlalchemy import Select

    from ..operators import OrderDirection


def _source_for(model: type[Any], alias: str | None) -> tuple[Any, str]:
    """Return the selectable entity for *model* and the alias it answers to."""
    table_name: str = inspect(model).local_table.name
    if alias is None or alias == table_name:
        return model, table_name
    return aliased(model, name=alias), alias


def _primary_key(model: type[Any], source: Any) -> list[Any]:
    """Primary key attributes of *model* as seen through *source*."""
    mapper = inspect(model)
    return [
        getattr(source, mapper.get_property_by_column(column).key)
        for column in mapper.primary_key
    ]


class SelectQueryContext:
    """
    Mutable wrapper around a ``Select`` scoped to one mapped entity.

    Build one per query; contexts are not meant to be reused::

        ctx = SelectQueryContext.for_model(ItemModel)
        converter.apply(ctx, criteria)
        rows = (await session.execute(ctx.statement)).scalars().all()
    """

    def __init__(
        self,
        statement: Select[Any],
        alias: str,
        *,
        entity: Any | None = None,
        count: bool = False,
    ) -> None:
        self._statement = statement
        self._count = count
        self._distinct = count
        self._alias = alias
        self._entity = entity
        self._joined: dict[str, Any] = {}
        self._parameters: dict[str, Any] = {}

    # -- construction -------------------------------------------------------

    @classmethod
    def for_model(
        cls, model: type[Any], alias: str | None = None
    ) -> SelectQueryContext:
        """Select rows of *model*, aliased when *alias* differs from the table."""
        source, name = _source_for(model, alias)
        return cls(select(source), name, entity=source)

    @classmethod
    def count_for_model(
        cls, model: type[Any], alias: str | None = None
    ) -> SelectQueryContext:
        """Count distinct *model* rows under the same aliasing rules.

        The context builds a select of primary keys; :attr:`statement` wraps it
        as ``count(*)`` over the distinct keys.
        """
        source, name = _source_for(model, alias)
        return cls(
            select(*_primary_key(model, source)), name, entity=source, count=True
        )

    # -- introspection ------------------------------------------------------

    @property
    def alias(self) -> str:
        return self._alias

    @property
    def aliases(self) -> tuple[str, ...]:
        """Base alias followed by joined aliases, in join order."""
        return (self._alias, *self._joined)

    @property
    def parameter_names(self) -> frozenset[str]:
        return frozenset(self._parameters)

    @property
    def parameters(self) -> Mapping[str, Any]:
        return MappingProxyType(self._parameters)

    @property
    def statement(self) -> Select[Any]:
        statement = self._statement
        if self._distinct:
            statement = statement.distinct()
        if self._count:
            return select(func.count()).select_from(statement.subquery())
        return statement

    # -- joins --------------------------------------------------------------

    def join(
        self,
        relationship: str,
        alias: str | None = None,
        *,
        isouter: bool = False,
    ) -> SelectQueryContext:
        """
        Join a relationship of the primary entity under *alias*.

        The alias defaults to the relationship name, so ``ctx.join("category")``
        lets criteria reference ``category.name``.

        Raises:
            ValueError: If *relationship* is not a mapped relationship or the
                alias is already in use.
        """
        attr = getattr(self._entity, relationship, None)
        prop = getattr(attr, "property", None)
        if not isinstance(prop, RelationshipProperty):
            raise ValueError(
                f"'{relationship}' is not a relationship of alias '{self._alias}'"
            )
        name = alias or relationship
        if name in self.aliases:
            raise ValueError(f"Alias '{name}' is already in use")

        target = aliased(prop.mapper.class_, name=name)
        self._statement = self._statement.join(attr.of_type(target), isouter=isouter)
        self._joined[name] = target
        if prop.uselist:
            self._distinct = True
        return self

    # -- QueryContext -------------------------------------------------------

    def and_where(
        self,
        clause: str,
        parameters: Mapping[str, Any],
        *,
        expanding: Collection[str] = (),
    ) -> None:
        clashes = self._parameters.keys() & parameters.keys()
        if clashes:
            raise ValueError(
                f"Parameter(s) already bound: {', '.join(sorted(clashes))}"
            )
        binds = [
            bindparam(name, value, expanding=name in expanding)
            for name, value in parameters.items()
        ]
        self._statement = self._statement.where(text(clause).bindparams(*binds))
        self._parameters.update(parameters)

    def order_by(self, field: str, direction: OrderDirection) -> None:
        self._statement = self._statement.order_by(None).order_by(
            text(f"{field} {direction.value}")
        )

    def take(self, limit: int) -> None:
        self._statement = self._statement.limit(limit)

    def skip(self, offset: int) -> None:
        self._statement = self._statement.offset(offset)
