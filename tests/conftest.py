"""Shared models and fixtures for criteria tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Collection, Mapping

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from criteria_sql import OrderDirection

# ---------------------------------------------------------------------------
# Test models
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class CategoryModel(Base):
    __tablename__ = "categories"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String)


class ProductModel(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    price: Mapped[int] = mapped_column(Integer)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"))
    category: Mapped[CategoryModel] = relationship()


class BookModel(Base):
    __tablename__ = "books"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String)
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.id"))


class AuthorModel(Base):
    __tablename__ = "authors"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    books: Mapped[list[BookModel]] = relationship()


# ---------------------------------------------------------------------------
# Recording context
# ---------------------------------------------------------------------------


class RecordingContext:
    """QueryContext that records every call instead of building SQL."""

    def __init__(self, alias: str = "t", bound: Mapping[str, Any] | None = None):
        self.alias = alias
        self.bound: dict[str, Any] = dict(bound or {})
        self.calls: list[tuple[Any, ...]] = []

    @property
    def parameter_names(self) -> frozenset[str]:
        return frozenset(self.bound)

    def and_where(
        self,
        clause: str,
        parameters: Mapping[str, Any],
        *,
        expanding: Collection[str] = (),
    ) -> None:
        self.calls.append(("and_where", clause, dict(parameters), tuple(expanding)))
        self.bound.update(parameters)

    def order_by(self, field: str, direction: OrderDirection) -> None:
        self.calls.append(("order_by", field, direction))

    def take(self, limit: int) -> None:
        self.calls.append(("take", limit))

    def skip(self, offset: int) -> None:
        self.calls.append(("skip", offset))


@pytest.fixture
def ctx() -> RecordingContext:
    return RecordingContext()


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

CATEGORIES = [(1, "Electronics"), (2, "Books")]
PRODUCTS = [
    (1, "Laptop Pro", 1500, 1),
    (2, "Laptop Air", 1100, 1),
    (3, "Desktop Tower", 900, 1),
    (4, "Python Cookbook", 45, 2),
    (5, "Laptop Stand", 30, 1),
    (6, "Novel", 15, 2),
]
AUTHORS = [(1, "Guido"), (2, "Ann"), (3, "Zed")]
BOOKS = [
    (1, "Python Basics", 1),
    (2, "Advanced Python", 1),
    (3, "Python Tricks", 1),
    (4, "Cooking", 2),
    (5, "Python for Chefs", 2),
    (6, "Poems", 3),
]


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as sess:
        sess.add_all(CategoryModel(id=i, name=n) for i, n in CATEGORIES)
        sess.add_all(
            ProductModel(id=i, name=n, price=p, category_id=c)
            for i, n, p, c in PRODUCTS
        )
        sess.add_all(AuthorModel(id=i, name=n) for i, n in AUTHORS)
        sess.add_all(BookModel(id=i, title=t, author_id=a) for i, t, a in BOOKS)
        await sess.commit()
        yield sess
