#!/usr/bin/env python3
"""Seed the database with a sample market and its products."""

import asyncio
from datetime import datetime, timezone

from ecom_grade.db.base import get_session_maker
from ecom_grade.db.store import RecordStore
from ecom_grade.records import KeywordSignal, MarketRecord, ProductRecord

SEED_USER_ID = "seed-user"

SAMPLE_MARKET = MarketRecord(
    id="market-garden-kneeler",
    user_id=SEED_USER_ID,
    keyword="garden kneeler",
    research_date=datetime(2025, 3, 1, tzinfo=timezone.utc),
)

SAMPLE_PRODUCTS = [
    ProductRecord(
        id="product-kneeler-foam",
        user_id=SEED_USER_ID,
        market_id=SAMPLE_MARKET.id,
        asin="B0SEED0001",
        title="Foldable Garden Kneeler and Seat with Tool Pouches",
        brand="GreenStep",
        price=44.99,
        bsr=8200,
        reviews=35,
        rating=4.6,
        monthly_sales=1400,
        monthly_revenue=62986.0,
        margin=0.42,
        profit_per_unit=0.22,
        daily_revenue=2099.5,
        launch_budget=6500.0,
        keywords=[
            KeywordSignal(keyword="garden kneeler", search_volume=27000, cpc=0.62),
            KeywordSignal(keyword="garden kneeler and seat", search_volume=9800, cpc=0.48),
        ],
        verified=True,
    ),
    ProductRecord(
        id="product-kneeler-pad",
        user_id=SEED_USER_ID,
        market_id=SAMPLE_MARKET.id,
        asin="B0SEED0002",
        title="Extra Thick Kneeling Pad for Gardening",
        brand="SoftRoot",
        price=26.99,
        bsr=15400,
        reviews=240,
        rating=4.3,
        monthly_sales=2100,
        monthly_revenue=56679.0,
        margin=0.31,
        profit_per_unit=0.12,
        daily_revenue=1889.3,
        launch_budget=4200.0,
        keywords=[
            KeywordSignal(keyword="kneeling pad", search_volume=33000, cpc=0.95),
        ],
        verified=True,
    ),
    ProductRecord(
        id="product-kneeler-bench",
        user_id=SEED_USER_ID,
        market_id=SAMPLE_MARKET.id,
        asin="B0SEED0003",
        title="Heavy Duty Garden Bench Kneeler",
        price=59.99,
        reviews=610,
        rating=3.9,
        monthly_sales=380,
        monthly_revenue=22796.2,
        margin=0.27,
        keywords=[],
        verified=False,
    ),
]


async def seed() -> None:
    """Seed the database with the sample market."""
    async with get_session_maker()() as session:
        store = RecordStore(session)

        if await store.get_market(SEED_USER_ID, SAMPLE_MARKET.id):
            print(f"Market '{SAMPLE_MARKET.keyword}' already exists, skipping...")
            return

        await store.save_market(SAMPLE_MARKET)
        print(f"Created market: {SAMPLE_MARKET.keyword}")

        for product in SAMPLE_PRODUCTS:
            await store.save_product(product)
            print(f"Created product: {product.title}")

        await store.commit()
        print("\nSeeding complete!")


if __name__ == "__main__":
    asyncio.run(seed())
