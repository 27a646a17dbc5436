from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy.exc import DBAPIError

from ..converter import DEFAULT_CONVERTER
from ..criteria import PATH_SEPARATOR
from ..exceptions import AmbiguousFieldReferenceError, RepositoryError
from .context import SelectQueryContext

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from ..converter import CriteriaConverter
    from ..criteria import Criteria

    AsyncSessionFactory = Callable[[], AsyncSession]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CriteriaRepository(Generic[T]):
    """
    Base repository that finds and counts mapped entities by ``Criteria``.

    Every call builds a fresh :class:`SelectQueryContext`; no query state is
    shared between calls.  Subclasses that filter or sort on related entities
    override :meth:`build_context` to join them::

        class ProductRepository(CriteriaRepository[ProductModel]):
            def build_context(self, *, count: bool = False) -> SelectQueryContext:
                return super().build_context(count=count).join("category")

    Supports two session patterns:

    1. **Per-call session**:
       ``await repo.find_by_criteria(criteria, session=session)``

    2. **Factory-injected session** (the repository opens and closes it):
       ``CriteriaRepository(ProductModel, session_factory=factory)``
    """

    def __init__(
        self,
        model: type[T],
        session_factory: AsyncSessionFactory | None = None,
        *,
        converter: CriteriaConverter | None = None,
        alias: str | None = None,
    ) -> None:
        self.model = model
        self.alias = alias
        self._session_factory = session_factory
        self._converter = converter or DEFAULT_CONVERTER

    # -- context ------------------------------------------------------------

    def build_context(self, *, count: bool = False) -> SelectQueryContext:
        """Create the query context for one call."""
        if count:
            return SelectQueryContext.count_for_model(self.model, self.alias)
        return SelectQueryContext.for_model(self.model, self.alias)

    # -- queries ------------------------------------------------------------

    async def find_by_criteria(
        self,
        criteria: Criteria,
        session: AsyncSession | None = None,
    ) -> list[T]:
        """Return the entities matching *criteria*, ordered and paginated."""
        context = self._prepare(self.build_context(), criteria)
        async with self._session_scope(session) as active:
            result = await self._execute(active, context.statement)
            return list(result.scalars().all())

    async def count_by_criteria(
        self,
        criteria: Criteria,
        session: AsyncSession | None = None,
    ) -> int:
        """Count the entities matching the filters of *criteria*.

        Ordering, limit and offset are dropped before translation.
        """
        context = self._prepare(
            self.build_context(count=True), criteria.without_pagination()
        )
        async with self._session_scope(session) as active:
            result = await self._execute(active, context.statement)
            return int(result.scalar_one())

    async def find_by_id(
        self,
        entity_id: Any,
        session: AsyncSession | None = None,
    ) -> T | None:
        async with self._session_scope(session) as active:
            return await active.get(self.model, entity_id)

    # -- internals ----------------------------------------------------------

    def _prepare(
        self, context: SelectQueryContext, criteria: Criteria
    ) -> SelectQueryContext:
        known = context.aliases
        for path in criteria.field_paths():
            if PATH_SEPARATOR not in path:
                continue
            if path.rsplit(PATH_SEPARATOR, 1)[0] not in known:
                raise AmbiguousFieldReferenceError(path, list(known))
        return self._converter.apply(context, criteria)

    @contextlib.asynccontextmanager
    async def _session_scope(
        self, session: AsyncSession | None
    ) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        if self._session_factory is None:
            raise ValueError("No session provided or configured.")
        async with self._session_factory() as owned:
            yield owned

    async def _execute(self, session: AsyncSession, statement: Select[Any]) -> Any:
        logger.debug("Executing criteria query on %s", self.model.__name__)
        try:
            return await session.execute(statement)
        except DBAPIError as e:
            logger.warning(
                "Criteria query on %s failed: %s", self.model.__name__, e.orig
            )
            raise RepositoryError(
                f"Query on {self.model.__name__} failed: {e.orig}"
            ) from e
