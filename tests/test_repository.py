"""
Integration tests for CriteriaRepository against in-memory SQLite.

Covers:
- find_by_criteria with filters, ordering and pagination
- count_by_criteria ignoring pagination
- relation filters through build_context joins
- unjoined relation references
- per-call session vs. session factory
- backend errors wrapped in RepositoryError
"""

from __future__ import annotations

import pytest
from conftest import AuthorModel, ProductModel

from criteria_sql import (
    AmbiguousFieldReferenceError,
    Criteria,
    CriteriaConverter,
    Filter,
    FilterOperator,
    Order,
    OrderDirection,
    RepositoryError,
)
from criteria_sql.persistence import CriteriaRepository, SelectQueryContext


class ProductRepository(CriteriaRepository[ProductModel]):
    def build_context(self, *, count: bool = False) -> SelectQueryContext:
        return super().build_context(count=count).join("category")


class AuthorRepository(CriteriaRepository[AuthorModel]):
    def build_context(self, *, count: bool = False) -> SelectQueryContext:
        return super().build_context(count=count).join("books")


class SpyConverter(CriteriaConverter):
    def __init__(self) -> None:
        self.seen: list[Criteria] = []

    def apply(self, context, criteria):
        self.seen.append(criteria)
        return super().apply(context, criteria)


def _names(products: list[ProductModel]) -> list[str]:
    return [p.name for p in products]


# ---------------------------------------------------------------------------
# find_by_criteria
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_find_contains_is_case_insensitive(session):
    repo = CriteriaRepository(ProductModel)
    criteria = Criteria(
        filters=[Filter("name", FilterOperator.CONTAINS, "LAPTOP")],
        order=Order("price", OrderDirection.DESC),
    )

    found = await repo.find_by_criteria(criteria, session=session)

    assert _names(found) == ["Laptop Pro", "Laptop Air", "Laptop Stand"]


@pytest.mark.asyncio
async def test_find_paginates(session):
    repo = CriteriaRepository(ProductModel)
    criteria = Criteria(
        filters=[Filter("name", "CONTAINS", "laptop")],
        order=Order("price", "DESC"),
        limit=2,
        offset=1,
    )

    found = await repo.find_by_criteria(criteria, session=session)

    assert _names(found) == ["Laptop Air", "Laptop Stand"]


@pytest.mark.asyncio
async def test_find_with_empty_criteria_returns_everything(session):
    repo = CriteriaRepository(ProductModel)
    found = await repo.find_by_criteria(Criteria(), session=session)
    assert len(found) == 6


@pytest.mark.asyncio
async def test_find_conjoins_filters(session):
    repo = CriteriaRepository(ProductModel)
    criteria = Criteria(
        filters=[
            Filter("price", ">=", 30),
            Filter("price", "<", 1000),
            Filter("name", "NOT_CONTAINS", "stand"),
        ],
        order=Order("id"),
    )

    found = await repo.find_by_criteria(criteria, session=session)

    assert [p.id for p in found] == [3, 4]


@pytest.mark.asyncio
async def test_find_membership(session):
    repo = CriteriaRepository(ProductModel)

    found_in = await repo.find_by_criteria(
        Criteria(filters=[Filter("id", "IN", [6, 1, 4])], order=Order("id")),
        session=session,
    )
    found_not_in = await repo.find_by_criteria(
        Criteria(filters=[Filter("id", "NOT_IN", [1, 2, 3, 4])], order=Order("id")),
        session=session,
    )

    assert [p.id for p in found_in] == [1, 4, 6]
    assert [p.id for p in found_not_in] == [5, 6]


@pytest.mark.asyncio
async def test_find_with_custom_alias(session):
    repo = CriteriaRepository(ProductModel, alias="p")
    criteria = Criteria(filters=[Filter("p.price", "<", 40)], order=Order("name"))

    found = await repo.find_by_criteria(criteria, session=session)

    assert _names(found) == ["Laptop Stand", "Novel"]


# ---------------------------------------------------------------------------
# count_by_criteria
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_count_ignores_pagination(session):
    spy = SpyConverter()
    repo = CriteriaRepository(ProductModel, converter=spy)
    criteria = Criteria(
        filters=[Filter("name", "CONTAINS", "laptop")],
        order=Order("price", "DESC"),
        limit=1,
        offset=1,
    )

    count = await repo.count_by_criteria(criteria, session=session)

    assert count == 3
    assert spy.seen == [Criteria(filters=criteria.filters)]


def test_count_statement_binds_no_limit_or_offset():
    repo = CriteriaRepository(ProductModel)
    context = repo.build_context(count=True)
    criteria = Criteria(filters=[Filter("price", ">", 1)], limit=5, offset=10)

    repo._prepare(context, criteria.without_pagination())
    sql = str(context.statement.compile())

    assert "LIMIT" not in sql
    assert "OFFSET" not in sql
    assert "products.price > :price_0" in sql


@pytest.mark.asyncio
async def test_count_everything(session):
    repo = CriteriaRepository(ProductModel)
    assert await repo.count_by_criteria(Criteria(limit=2), session=session) == 6


# ---------------------------------------------------------------------------
# related entities
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_filter_on_joined_relation(session):
    repo = ProductRepository(ProductModel)
    criteria = Criteria(
        filters=[Filter("category.name", "=", "Books")],
        order=Order("price", "DESC"),
    )

    found = await repo.find_by_criteria(criteria, session=session)
    count = await repo.count_by_criteria(criteria, session=session)

    assert _names(found) == ["Python Cookbook", "Novel"]
    assert count == 2


@pytest.mark.asyncio
async def test_order_on_joined_relation(session):
    repo = ProductRepository(ProductModel)
    criteria = Criteria(
        filters=[Filter("price", "<", 50)],
        order=Order("category.name", "ASC"),
    )

    found = await repo.find_by_criteria(criteria, session=session)

    assert [p.category_id for p in found] == [2, 2, 1]


@pytest.mark.asyncio
async def test_one_to_many_join_yields_distinct_entities(session):
    repo = AuthorRepository(AuthorModel)
    criteria = Criteria(
        filters=[Filter("books.title", "CONTAINS", "python")],
        order=Order("id"),
        limit=2,
    )

    found = await repo.find_by_criteria(criteria, session=session)
    count = await repo.count_by_criteria(criteria, session=session)

    # Guido has three matching books; the limit still covers two authors
    assert [a.id for a in found] == [1, 2]
    assert count == 2


@pytest.mark.asyncio
async def test_one_to_many_join_pages_by_entity(session):
    repo = AuthorRepository(AuthorModel)
    criteria = Criteria(
        filters=[Filter("books.title", "CONTAINS", "python")],
        order=Order("id"),
        limit=1,
        offset=1,
    )

    found = await repo.find_by_criteria(criteria, session=session)

    assert [a.id for a in found] == [2]


@pytest.mark.asyncio
async def test_unjoined_relation_is_reported(session):
    repo = CriteriaRepository(ProductModel)
    criteria = Criteria(filters=[Filter("category.name", "=", "Books")])

    with pytest.raises(AmbiguousFieldReferenceError) as exc:
        await repo.find_by_criteria(criteria, session=session)

    assert exc.value.relation == "category"
    assert exc.value.known_aliases == ["products"]


@pytest.mark.asyncio
async def test_unjoined_relation_in_order_is_reported(session):
    repo = CriteriaRepository(ProductModel)
    with pytest.raises(AmbiguousFieldReferenceError):
        await repo.find_by_criteria(
            Criteria(order=Order("category.name")), session=session
        )


# ---------------------------------------------------------------------------
# sessions and errors
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_session_factory(session, session_factory):
    repo = CriteriaRepository(ProductModel, session_factory=session_factory)

    found = await repo.find_by_criteria(Criteria(filters=[Filter("id", "=", 4)]))

    assert _names(found) == ["Python Cookbook"]
    assert await repo.count_by_criteria(Criteria()) == 6


@pytest.mark.asyncio
async def test_missing_session_raises():
    repo = CriteriaRepository(ProductModel)
    with pytest.raises(ValueError, match="No session"):
        await repo.find_by_criteria(Criteria())


@pytest.mark.asyncio
async def test_find_by_id(session):
    repo = CriteriaRepository(ProductModel)
    product = await repo.find_by_id(2, session=session)
    assert product is not None
    assert product.name == "Laptop Air"
    assert await repo.find_by_id(99, session=session) is None


@pytest.mark.asyncio
async def test_backend_error_is_wrapped(session):
    repo = CriteriaRepository(ProductModel)
    criteria = Criteria(filters=[Filter("missing", "=", 1)])

    with pytest.raises(RepositoryError, match="ProductModel"):
        await repo.find_by_criteria(criteria, session=session)
