"""Recalculation Orchestrator - persists overrides and keeps markets and caches in step.

A batch override request runs in this order:

    validate -> check ownership -> upsert overrides -> COMMIT
    -> identify affected markets -> recompute each -> upsert snapshot -> COMMIT
    -> invalidate dashboard cache -> verify, retry once

Everything after the first commit is best effort: failures are logged and
reported as a warning on a successful result, and the cache is invalidated
regardless.

Usage:
    service = RecalculationService(RecordStore(session), cache)
    result = await service.batch_upsert_overrides(user_id, payloads)
    print(f"Saved {len(result.overrides)} overrides, recalculated {len(result.snapshots)} markets")
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from ecom_grade.cache import CacheService, DashboardCache
from ecom_grade.config import Settings, get_settings
from ecom_grade.db.store import RecordStore
from ecom_grade.errors import AggregationError, NotFoundError, RecalculationFailure
from ecom_grade.markets.aggregator import aggregate_market
from ecom_grade.overrides.merge import merge_overrides
from ecom_grade.overrides.models import EffectiveProductRecord, ProductOverride
from ecom_grade.overrides.validation import parse_override_batch
from ecom_grade.records import MarketSnapshot
from ecom_grade.scoring.models import GradingConfig

logger = logging.getLogger(__name__)


class RecalcState(str, Enum):
    """Progress of one recalculation request."""

    IDLE = "idle"
    OVERRIDES_PERSISTED = "overrides_persisted"
    MARKETS_IDENTIFIED = "markets_identified"
    RECOMPUTING = "recomputing"
    SNAPSHOT_PERSISTED = "snapshot_persisted"
    CACHE_INVALIDATED = "cache_invalidated"
    RECOMPUTE_FAILED = "recompute_failed"


@dataclass
class MarketRecalculation:
    """Outcome of recomputing a set of markets."""

    snapshots: list[MarketSnapshot] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    warning: Optional[str] = None


@dataclass
class BatchOverrideResult:
    """Result of a batch override request."""

    overrides: list[ProductOverride] = field(default_factory=list)
    products: list[EffectiveProductRecord] = field(default_factory=list)
    affected_markets: list[str] = field(default_factory=list)
    snapshots: list[MarketSnapshot] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    warning: Optional[str] = None
    reoverride_count: int = 0
    cache_invalidated: bool = False
    states: list[RecalcState] = field(default_factory=lambda: [RecalcState.IDLE])

    @property
    def state(self) -> RecalcState:
        return self.states[-1]

    def advance(self, state: RecalcState) -> None:
        self.states.append(state)


class RecalculationService:
    """Orchestrates override writes, market recomputation and cache invalidation."""

    def __init__(
        self,
        store: RecordStore,
        cache: CacheService,
        settings: Settings | None = None,
        config: GradingConfig | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.config = config or GradingConfig()
        self.dashboards = DashboardCache(cache, self.settings)

    async def batch_upsert_overrides(
        self,
        user_id: str,
        payloads: Sequence[dict[str, Any]],
    ) -> BatchOverrideResult:
        """Save a batch of product overrides and recalculate affected markets.

        Args:
            user_id: Authenticated caller
            payloads: Raw override payloads

        Returns:
            BatchOverrideResult. A recalculation failure after the overrides
            were committed is reported in `warning`, never raised.

        Raises:
            ValidationError: Invalid payload, nothing written
            NotFoundError: Unknown product or product of another user, nothing written
        """
        overrides = parse_override_batch(payloads, user_id)
        product_ids = [o.product_id for o in overrides]

        products = {p.id: p for p in await self.store.get_products(user_id, product_ids)}
        missing = [pid for pid in product_ids if pid not in products]
        if missing:
            raise NotFoundError(
                f"Products not found: {', '.join(missing)}",
                resource="product",
                resource_id=missing[0],
            )

        result = BatchOverrideResult()

        existing = await self.store.get_overrides(user_id, product_ids)
        result.reoverride_count = len(existing)
        logger.info(
            f"Override operation for user {user_id}: "
            f"{len(existing)}/{len(overrides)} products already overridden"
        )

        result.overrides = await self.store.upsert_product_overrides(overrides)
        await self.store.commit()
        result.advance(RecalcState.OVERRIDES_PERSISTED)

        result.products = merge_overrides(
            [products[pid] for pid in product_ids], result.overrides, self.config
        )

        reason = f"Triggered by batch product overrides: {overrides[0].override_reason}"
        try:
            result.affected_markets = await self.store.find_market_ids(user_id, product_ids)
            result.advance(RecalcState.MARKETS_IDENTIFIED)

            recalculation = await self._recompute_markets(
                user_id, result.affected_markets, reason, result
            )
            result.snapshots = recalculation.snapshots
            result.failures = recalculation.failures
            result.warning = recalculation.warning

        except Exception as e:
            failure = RecalculationFailure(
                "Market recalculation failed - markets may show outdated aggregated data",
                cause=e,
            )
            logger.error(f"Recalculation failed for user {user_id}: {e}")
            await self._safe_rollback()
            result.warning = str(failure)
            result.advance(RecalcState.RECOMPUTE_FAILED)

        # Invalidation is attempted either way; a failed recompute stays terminal
        failed = RecalcState.RECOMPUTE_FAILED in result.states
        result.cache_invalidated = await self.dashboards.invalidate(user_id)
        if result.cache_invalidated and not failed:
            result.advance(RecalcState.CACHE_INVALIDATED)

        return result

    async def recalculate_market(
        self,
        user_id: str,
        market_id: str,
        reason: Optional[str] = None,
    ) -> MarketSnapshot:
        """Recompute one market from its members' effective records.

        The snapshot is written but not committed.

        Raises:
            NotFoundError: Market missing or owned by another user
            AggregationError: No valid member to aggregate
        """
        market = await self.store.get_market(user_id, market_id)
        if market is None:
            raise NotFoundError(
                f"Market not found: {market_id}", resource="market", resource_id=market_id
            )

        members = await self.store.get_market_members(user_id, market_id)
        overrides = await self.store.get_overrides(user_id, [m.id for m in members])
        effective = merge_overrides(members, overrides.values(), self.config)

        try:
            metrics = aggregate_market(effective, self.config)
        except AggregationError as e:
            e.market_id = market_id
            raise

        snapshot = metrics.to_snapshot(
            user_id=user_id,
            market_id=market_id,
            keyword=market.keyword,
            reason=reason or self.settings.default_recalculation_reason,
        )
        saved = await self.store.upsert_market_snapshot(snapshot)

        logger.info(
            f"Recalculated market '{market.keyword}' ({market_id}): "
            f"grade {saved.market_grade.value}, {len(overrides)} overridden products"
        )
        return saved

    async def refresh_market(
        self,
        user_id: str,
        market_id: str,
        reason: Optional[str] = None,
    ) -> MarketSnapshot:
        """Recalculate one market, commit, then invalidate the dashboard cache."""
        snapshot = await self.recalculate_market(user_id, market_id, reason)
        await self.store.commit()
        await self.dashboards.invalidate(user_id)
        return snapshot

    async def recalculate_affected_markets(
        self,
        user_id: str,
        product_ids: Iterable[str],
        reason: Optional[str] = None,
    ) -> list[MarketSnapshot]:
        """Recalculate every market containing one of the products.

        Markets that cannot be aggregated are skipped. The cache is
        invalidated after all snapshots are committed.
        """
        market_ids = await self.store.find_market_ids(user_id, product_ids)
        recalculation = await self._recompute_markets(user_id, market_ids, reason)
        await self.dashboards.invalidate(user_id)
        return recalculation.snapshots

    async def delete_overrides(self, user_id: str, product_id: Optional[str] = None) -> list[str]:
        """Delete one or all overrides and recalculate the markets they touched.

        Returns:
            Product ids whose override was removed
        """
        removed = await self.store.delete_overrides(user_id, product_id)
        await self.store.commit()
        logger.info(f"Deleted {len(removed)} product overrides for user {user_id}")

        if removed:
            try:
                market_ids = await self.store.find_market_ids(user_id, removed)
                await self._recompute_markets(
                    user_id, market_ids, "Recalculated after product override removal"
                )
            except Exception as e:
                logger.error(f"Recalculation after override removal failed: {e}")
                await self._safe_rollback()

        await self.dashboards.invalidate(user_id)
        return removed

    async def delete_market_snapshots(self, user_id: str, market_id: Optional[str] = None) -> int:
        """Delete one or all market snapshots, restoring research-time values."""
        count = await self.store.delete_market_snapshots(user_id, market_id)
        await self.store.commit()
        logger.info(f"Deleted {count} market snapshots for user {user_id}")

        await self.dashboards.invalidate(user_id)
        return count

    async def list_overrides(self, user_id: str) -> list[ProductOverride]:
        return await self.store.list_overrides(user_id)

    async def list_market_snapshots(self, user_id: str) -> list[MarketSnapshot]:
        return await self.store.list_market_snapshots(user_id)

    async def _recompute_markets(
        self,
        user_id: str,
        market_ids: Sequence[str],
        reason: Optional[str],
        result: Optional[BatchOverrideResult] = None,
    ) -> MarketRecalculation:
        """Recompute markets one at a time, committing each snapshot.

        A market that fails does not stop the others.
        """
        recalculation = MarketRecalculation()

        for market_id in market_ids:
            if result:
                result.advance(RecalcState.RECOMPUTING)

            try:
                snapshot = await self.recalculate_market(user_id, market_id, reason)
                await self.store.commit()
            except AggregationError as e:
                logger.warning(f"Skipping market {market_id}: {e}")
                recalculation.failures[market_id] = str(e)
                continue
            except NotFoundError as e:
                logger.warning(f"Skipping market {market_id}: {e}")
                recalculation.failures[market_id] = str(e)
                continue
            except Exception as e:
                logger.error(f"Failed to recalculate market {market_id}: {e}")
                await self._safe_rollback()
                recalculation.failures[market_id] = str(e)
                recalculation.warning = str(
                    RecalculationFailure(
                        "Market recalculation failed - markets may show outdated aggregated data",
                        cause=e,
                    )
                )
                if result:
                    result.advance(RecalcState.RECOMPUTE_FAILED)
                continue

            recalculation.snapshots.append(snapshot)
            if result:
                result.advance(RecalcState.SNAPSHOT_PERSISTED)

        return recalculation

    async def _safe_rollback(self) -> None:
        try:
            await self.store.rollback()
        except Exception as e:
            logger.error(f"Rollback failed: {e}")
