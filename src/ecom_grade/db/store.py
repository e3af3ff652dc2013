"""Record store: typed access to products, markets and overrides.

Every query is scoped to a user. The store never commits on its own;
callers decide where the durability boundaries are.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ecom_grade.db import models
from ecom_grade.overrides.models import OVERRIDE_FIELDS, Patch, ProductOverride
from ecom_grade.records import KeywordSignal, MarketRecord, MarketSnapshot, ProductRecord
from ecom_grade.scoring.models import Consistency, Grade, RiskClass

logger = logging.getLogger(__name__)

# Override columns written on every upsert (the row is replaced as a whole)
PRODUCT_OVERRIDE_UPDATE_COLUMNS: tuple[str, ...] = (
    "asin",
    "override_reason",
    "notes",
    *OVERRIDE_FIELDS,
    "cleared_fields",
    "updated_at",
)

MARKET_SNAPSHOT_COLUMNS: tuple[str, ...] = (
    "keyword",
    "avg_price",
    "avg_monthly_sales",
    "avg_monthly_revenue",
    "avg_daily_revenue",
    "avg_profit_margin",
    "avg_profit_per_unit",
    "avg_reviews",
    "avg_rating",
    "avg_bsr",
    "avg_cpc",
    "avg_launch_budget",
    "market_grade",
    "market_consistency",
    "market_risk",
    "opportunity_score",
    "total_products_analyzed",
    "products_verified",
    "override_reason",
    "recalculated_at",
)

ENUM_FIELDS = {"risk": RiskClass, "consistency": Consistency, "grade": Grade}


def _column_value(name: str, patch: Patch[Any]) -> Any:
    """Database value of a SET patch."""
    if name == "keywords":
        return [kw.model_dump() for kw in patch.value]
    if name in ENUM_FIELDS:
        return patch.value.value
    return patch.value


def _patch_from_column(name: str, value: Any, cleared: Sequence[str]) -> Patch[Any]:
    if name in cleared:
        return Patch.clear()
    if value is None:
        return Patch()
    if name == "keywords":
        return Patch.of([KeywordSignal.model_validate(kw) for kw in value])
    if name in ENUM_FIELDS:
        return Patch.of(ENUM_FIELDS[name](value))
    return Patch.of(value)


def override_to_row(override: ProductOverride) -> dict[str, Any]:
    """Column values of a ProductOverride."""
    row: dict[str, Any] = {
        "id": override.id or models.new_id(),
        "user_id": override.user_id,
        "product_id": override.product_id,
        "asin": override.asin,
        "override_reason": override.override_reason,
        "notes": override.notes,
        "cleared_fields": [],
        "updated_at": datetime.now(timezone.utc),
    }

    for name, patch in override.patches().items():
        row[name] = _column_value(name, patch) if patch.is_set else None
        if patch.is_clear:
            row["cleared_fields"].append(name)

    return row


def override_from_row(row: models.ProductOverride) -> ProductOverride:
    """ProductOverride from its database row."""
    cleared = row.cleared_fields or []
    patches = {
        name: _patch_from_column(name, getattr(row, name), cleared) for name in OVERRIDE_FIELDS
    }

    return ProductOverride(
        id=row.id,
        user_id=row.user_id,
        product_id=row.product_id,
        asin=row.asin,
        override_reason=row.override_reason,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
        **patches,
    )


class RecordStore:
    """Products, markets and overrides for one unit of work."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self, table: type[models.Base]):
        """Dialect insert that supports ON CONFLICT."""
        if self.session.bind.dialect.name == "postgresql":
            return pg_insert(table)
        return sqlite_insert(table)

    # --- Products ---

    async def get_product(self, user_id: str, product_id: str) -> Optional[ProductRecord]:
        row = await self.session.scalar(
            select(models.Product).where(
                models.Product.user_id == user_id,
                models.Product.id == product_id,
            )
        )
        return ProductRecord.model_validate(row) if row else None

    async def get_products(self, user_id: str, product_ids: Iterable[str]) -> list[ProductRecord]:
        """Products owned by the user among the given ids."""
        ids = list(product_ids)
        if not ids:
            return []

        rows = await self.session.scalars(
            select(models.Product).where(
                models.Product.user_id == user_id,
                models.Product.id.in_(ids),
            )
        )
        return [ProductRecord.model_validate(row) for row in rows]

    async def save_product(self, record: ProductRecord) -> ProductRecord:
        """Insert or replace a product and its keywords."""
        row = await self.session.get(models.Product, record.id)
        if row is None:
            row = models.Product(id=record.id)
            self.session.add(row)

        data = record.model_dump(exclude={"id", "keywords"})
        for name, value in data.items():
            if name in ENUM_FIELDS and value is not None:
                value = ENUM_FIELDS[name](value).value
            setattr(row, name, value)

        row.keywords = [
            models.ProductKeyword(
                position=position,
                keyword=kw.keyword,
                search_volume=kw.search_volume,
                cpc=kw.cpc,
            )
            for position, kw in enumerate(record.keywords)
        ]

        await self.session.flush()
        return record

    # --- Markets ---

    async def get_market(self, user_id: str, market_id: str) -> Optional[MarketRecord]:
        row = await self.session.scalar(
            select(models.Market).where(
                models.Market.user_id == user_id,
                models.Market.id == market_id,
            )
        )
        if row is None:
            return None

        product_ids = await self.session.scalars(
            select(models.Product.id)
            .where(models.Product.user_id == user_id, models.Product.market_id == market_id)
            .order_by(models.Product.created_at, models.Product.id)
        )

        record = MarketRecord.model_validate(row)
        record.product_ids = list(product_ids)
        return record

    async def save_market(self, record: MarketRecord) -> MarketRecord:
        """Insert or replace a market. Membership is stored on the products."""
        row = await self.session.get(models.Market, record.id)
        if row is None:
            row = models.Market(id=record.id)
            self.session.add(row)

        data = record.model_dump(exclude={"id", "product_ids"})
        for name, value in data.items():
            if name in ("market_grade", "market_consistency", "market_risk") and value is not None:
                value = getattr(value, "value", value)
            setattr(row, name, value)

        await self.session.flush()
        return record

    async def delete_market(self, user_id: str, market_id: str) -> bool:
        """Delete a market. Its products remain as legacy products."""
        result = await self.session.execute(
            delete(models.Market).where(
                models.Market.user_id == user_id,
                models.Market.id == market_id,
            )
        )
        return result.rowcount > 0

    async def get_market_members(self, user_id: str, market_id: str) -> list[ProductRecord]:
        rows = await self.session.scalars(
            select(models.Product)
            .where(models.Product.user_id == user_id, models.Product.market_id == market_id)
            .order_by(models.Product.created_at, models.Product.id)
        )
        return [ProductRecord.model_validate(row) for row in rows]

    async def find_market_ids(self, user_id: str, product_ids: Iterable[str]) -> list[str]:
        """Distinct markets of the given products, legacy products skipped.

        Returned in the order the products were given.
        """
        ids = list(product_ids)
        if not ids:
            return []

        rows = await self.session.execute(
            select(models.Product.id, models.Product.market_id).where(
                models.Product.user_id == user_id,
                models.Product.id.in_(ids),
                models.Product.market_id.is_not(None),
            )
        )
        market_by_product = {product_id: market_id for product_id, market_id in rows}

        market_ids: list[str] = []
        for product_id in ids:
            market_id = market_by_product.get(product_id)
            if market_id and market_id not in market_ids:
                market_ids.append(market_id)
        return market_ids

    # --- Product overrides ---

    async def get_overrides(
        self, user_id: str, product_ids: Iterable[str]
    ) -> dict[str, ProductOverride]:
        """Overrides of the given products, keyed by product id."""
        ids = list(product_ids)
        if not ids:
            return {}

        rows = await self.session.scalars(
            select(models.ProductOverride).where(
                models.ProductOverride.user_id == user_id,
                models.ProductOverride.product_id.in_(ids),
            )
        )
        return {row.product_id: override_from_row(row) for row in rows}

    async def list_overrides(self, user_id: str) -> list[ProductOverride]:
        rows = await self.session.scalars(
            select(models.ProductOverride)
            .where(models.ProductOverride.user_id == user_id)
            .order_by(models.ProductOverride.updated_at.desc())
        )
        return [override_from_row(row) for row in rows]

    async def upsert_product_overrides(
        self, overrides: Sequence[ProductOverride]
    ) -> list[ProductOverride]:
        """Insert or replace overrides keyed by (user_id, product_id).

        One INSERT ... ON CONFLICT DO UPDATE statement, so concurrent
        writers for the same key never produce duplicates.
        """
        if not overrides:
            return []

        rows = [override_to_row(override) for override in overrides]

        stmt = self._insert(models.ProductOverride).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "product_id"],
            set_={name: stmt.excluded[name] for name in PRODUCT_OVERRIDE_UPDATE_COLUMNS},
        )

        saved = await self.session.scalars(
            stmt.returning(models.ProductOverride),
            execution_options={"populate_existing": True},
        )
        by_product = {row.product_id: override_from_row(row) for row in saved}

        logger.info(f"Upserted {len(by_product)} product overrides")
        return [by_product[o.product_id] for o in overrides if o.product_id in by_product]

    async def delete_overrides(self, user_id: str, product_id: Optional[str] = None) -> list[str]:
        """Delete one or all of a user's overrides.

        Returns:
            Product ids whose override was removed
        """
        stmt = delete(models.ProductOverride).where(models.ProductOverride.user_id == user_id)
        if product_id is not None:
            stmt = stmt.where(models.ProductOverride.product_id == product_id)

        removed = await self.session.scalars(stmt.returning(models.ProductOverride.product_id))
        return list(removed)

    # --- Market snapshots ---

    async def upsert_market_snapshot(self, snapshot: MarketSnapshot) -> MarketSnapshot:
        """Insert or replace the latest snapshot of a market."""
        values: dict[str, Any] = {
            "id": snapshot.id or models.new_id(),
            "user_id": snapshot.user_id,
            "market_id": snapshot.market_id,
            "updated_at": datetime.now(timezone.utc),
        }
        for name in MARKET_SNAPSHOT_COLUMNS:
            value = getattr(snapshot, name)
            values[name] = getattr(value, "value", value)

        stmt = self._insert(models.MarketOverride).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "market_id"],
            set_={name: stmt.excluded[name] for name in (*MARKET_SNAPSHOT_COLUMNS, "updated_at")},
        )

        row = await self.session.scalar(
            stmt.returning(models.MarketOverride),
            execution_options={"populate_existing": True},
        )
        return MarketSnapshot.model_validate(row)

    async def get_market_snapshot(self, user_id: str, market_id: str) -> Optional[MarketSnapshot]:
        row = await self.session.scalar(
            select(models.MarketOverride).where(
                models.MarketOverride.user_id == user_id,
                models.MarketOverride.market_id == market_id,
            )
        )
        return MarketSnapshot.model_validate(row) if row else None

    async def list_market_snapshots(self, user_id: str) -> list[MarketSnapshot]:
        rows = await self.session.scalars(
            select(models.MarketOverride)
            .where(models.MarketOverride.user_id == user_id)
            .order_by(models.MarketOverride.recalculated_at.desc())
        )
        return [MarketSnapshot.model_validate(row) for row in rows]

    async def delete_market_snapshots(self, user_id: str, market_id: Optional[str] = None) -> int:
        stmt = delete(models.MarketOverride).where(models.MarketOverride.user_id == user_id)
        if market_id is not None:
            stmt = stmt.where(models.MarketOverride.market_id == market_id)

        result = await self.session.execute(stmt)
        return result.rowcount

    # --- Unit of work ---

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
