"""Pytest fixtures for database, cache and record testing."""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from ecom_grade.api.app import app
from ecom_grade.cache import MemoryCache, get_cache
from ecom_grade.db.base import Base, build_engine, build_session_maker, get_db
from ecom_grade.db.store import RecordStore
from ecom_grade.records import KeywordSignal, MarketRecord, ProductRecord

# Use SQLite in-memory for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest_asyncio.fixture
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session.

    Creates an in-memory SQLite database, creates all tables,
    and yields a session. Overrides app's get_db dependency.
    """
    engine = build_engine(TEST_DATABASE_URL)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with build_session_maker(engine)() as session:
        # Override app's get_db dependency
        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

        app.dependency_overrides[get_db] = override_get_db

        try:
            yield session
        finally:
            # Clean up
            app.dependency_overrides.pop(get_db, None)
            await session.rollback()

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def cache() -> MemoryCache:
    """Fresh in-process cache, also used by the app."""
    memory_cache = MemoryCache()
    app.dependency_overrides[get_cache] = lambda: memory_cache
    yield memory_cache
    app.dependency_overrides.pop(get_cache, None)


@pytest.fixture
def store(test_db) -> RecordStore:
    return RecordStore(test_db)


@pytest.fixture
def product_factory() -> Callable[..., ProductRecord]:
    """Build verified products with healthy defaults."""

    def make(product_id: str, **fields: Any) -> ProductRecord:
        data: dict[str, Any] = {
            "id": product_id,
            "user_id": USER_ID,
            "market_id": "market-1",
            "asin": f"B0{product_id.upper()[-8:]:0>8}",
            "title": f"Product {product_id}",
            "price": 40.0,
            "bsr": 20000,
            "reviews": 100,
            "rating": 4.5,
            "monthly_sales": 500,
            "monthly_revenue": 20000.0,
            "margin": 0.30,
            "profit_per_unit": 0.15,
            "daily_revenue": 666.67,
            "launch_budget": 5000.0,
            "keywords": [KeywordSignal(keyword="garden kneeler", search_volume=12000, cpc=0.80)],
            "verified": True,
        }
        data.update(fields)
        return ProductRecord(**data)

    return make


@pytest_asyncio.fixture
async def seeded_market(store, product_factory) -> MarketRecord:
    """A market with three members, a legacy product and another user's product.

    Members p1 and p2 are verified; p3 is unverified and never counts.
    """
    market = MarketRecord(id="market-1", user_id=USER_ID, keyword="garden kneeler")
    await store.save_market(market)

    await store.save_product(product_factory("p1", grade="B6"))
    await store.save_product(
        product_factory("p2", price=60.0, monthly_revenue=40000.0, margin=0.40, grade="A1")
    )
    await store.save_product(product_factory("p3", verified=False, price=10.0))
    await store.save_product(product_factory("legacy", market_id=None))

    other_market = MarketRecord(id="market-2", user_id=OTHER_USER_ID, keyword="yoga mat")
    await store.save_market(other_market)
    await store.save_product(
        product_factory("foreign", user_id=OTHER_USER_ID, market_id="market-2")
    )

    await store.commit()
    return await store.get_market(USER_ID, "market-1")
