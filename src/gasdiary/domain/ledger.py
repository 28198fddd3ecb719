"""Ledger merging and the business diary service.

``LedgerService`` owns the merged sale and expense streams. Each stream is
rebuilt by fanning out over its adapters, waiting for all of them, and
merging their outputs. A failed adapter contributes its last successful
result, so a merge always sees a complete snapshot.
"""

import asyncio
import logging
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from gasdiary.config import Settings
from gasdiary.database.base import Database
from gasdiary.database.change_feed import ChangeFeed
from gasdiary.domain.adapters import EXPENSE_ADAPTERS, SALE_ADAPTERS, SourceAdapter
from gasdiary.domain.analytics import AnalyticsEngine
from gasdiary.domain.cache import TwoTierCache
from gasdiary.domain.codec import decode_snapshot, encode_snapshot
from gasdiary.domain.entities import DiaryAnalytics, DiarySnapshot, ExpenseEntry, SaleEntry
from gasdiary.domain.realtime import AsyncioScheduler, RealtimeSynchronizer, Scheduler

logger = logging.getLogger("gasdiary.ledger")

DIARY_CACHE_KEY = "business_diary_data"

SALES_TABLES = ("pos_transactions", "pos_transaction_items", "customer_payments")
EXPENSE_TABLES = (
    "pob_transactions",
    "pob_transaction_items",
    "staff_payments",
    "vehicle_costs",
    "daily_expenses",
)


def _merge(outputs: Iterable[Sequence]) -> list:
    merged = [entry for output in outputs for entry in output]
    # Stable sort: ties keep adapter emission order
    merged.sort(key=lambda entry: entry.timestamp, reverse=True)
    return merged


def merge_sales(outputs: Iterable[Sequence[SaleEntry]]) -> list[SaleEntry]:
    """Concatenate sale adapter outputs, newest first."""
    return _merge(outputs)


def merge_expenses(outputs: Iterable[Sequence[ExpenseEntry]]) -> list[ExpenseEntry]:
    """Concatenate expense adapter outputs, newest first."""
    return _merge(outputs)


def create_diary_cache(store=None, settings: Optional[Settings] = None, **kwargs) -> TwoTierCache:
    """Cache configured with the diary snapshot codec."""
    settings = settings or Settings()
    return TwoTierCache(
        store=store,
        ttl=settings.cache_ttl,
        encode=encode_snapshot,
        decode=decode_snapshot,
        **kwargs,
    )


class RefreshMode(str, Enum):
    SOFT = "soft"
    HARD = "hard"


class LedgerService:
    """Live business diary over the six source adapters.

    Args:
        db: Row-query backend
        cache: Snapshot cache; defaults to a memory-only diary cache
        settings: Fetch policy, limits, TTL and debounce window
        scheduler: Runs background refreshes and debounce timers
        today: Returns the shop-local date used by analytics
    """

    def __init__(
        self,
        db: Database,
        cache: Optional[TwoTierCache] = None,
        settings: Optional[Settings] = None,
        scheduler: Optional[Scheduler] = None,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.settings = settings or Settings()
        self.cache = cache or create_diary_cache(settings=self.settings)
        self.scheduler = scheduler or AsyncioScheduler()
        self.analytics_engine = AnalyticsEngine(today=today)

        policy, limits = self.settings.fetch_policy, self.settings.limits
        self.sale_adapters: list[SourceAdapter] = [cls(db, policy, limits) for cls in SALE_ADAPTERS]
        self.expense_adapters: list[SourceAdapter] = [
            cls(db, policy, limits) for cls in EXPENSE_ADAPTERS
        ]

        self.sales: tuple[SaleEntry, ...] = ()
        self.expenses: tuple[ExpenseEntry, ...] = ()
        self.loading = False
        self.failed_sources: dict[str, tuple[str, ...]] = {"sales": (), "expenses": ()}

        self._last_good: dict[str, tuple] = {}
        self._listeners: list[Callable[["LedgerService"], None]] = []
        self._synchronizer: Optional[RealtimeSynchronizer] = None

    @property
    def stale(self) -> bool:
        """True when the latest cycle of either stream had a failed source."""
        return any(self.failed_sources.values())

    @property
    def analytics(self) -> DiaryAnalytics:
        return self.analytics_engine.compute(self.sales, self.expenses)

    def on_change(self, callback: Callable[["LedgerService"], None]) -> Callable[[], None]:
        """Register a listener called after every completed merge.

        Returns:
            A function removing the listener
        """
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def _collect(self, stream: str, adapters: Sequence[SourceAdapter]) -> list[tuple]:
        results = await asyncio.gather(*(adapter.fetch() for adapter in adapters))
        outputs, failed = [], []
        for result in results:
            if result.ok:
                self._last_good[result.label] = result.entries
            else:
                failed.append(result.label)
            outputs.append(self._last_good.get(result.label, ()))
        self.failed_sources[stream] = tuple(failed)
        if failed:
            logger.warning(f"{stream}: keeping previous data for {', '.join(failed)}")
        return outputs

    async def _fetch_sales(self) -> None:
        outputs = await self._collect("sales", self.sale_adapters)
        self.sales = tuple(merge_sales(outputs))

    async def _fetch_expenses(self) -> None:
        outputs = await self._collect("expenses", self.expense_adapters)
        self.expenses = tuple(merge_expenses(outputs))

    def _commit(self) -> None:
        if self.sales or self.expenses:
            self.cache.set_combined(
                DIARY_CACHE_KEY, DiarySnapshot(sales=self.sales, expenses=self.expenses)
            )
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Diary change listener failed")

    async def refresh_sales(self) -> None:
        await self._fetch_sales()
        self._commit()
        logger.info(f"Sales stream refreshed: {len(self.sales)} entries")

    async def refresh_expenses(self) -> None:
        await self._fetch_expenses()
        self._commit()
        logger.info(f"Expense stream refreshed: {len(self.expenses)} entries")

    async def refetch(self, background: bool = False) -> None:
        """Refresh both streams concurrently.

        Args:
            background: Leave the ``loading`` flag untouched
        """
        if not background:
            self.loading = True
        try:
            await asyncio.gather(self._fetch_sales(), self._fetch_expenses())
        finally:
            if not background:
                self.loading = False
        self._commit()
        logger.info(
            f"Diary refreshed: {len(self.sales)} sales, {len(self.expenses)} expenses"
            + (" (stale sources)" if self.stale else "")
        )

    async def _soft_refresh(self) -> None:
        try:
            await self.refetch(background=True)
        except Exception as e:
            logger.debug(f"Background diary refresh failed: {e}")

    async def mount(self) -> RefreshMode:
        """Paint from cache when possible, otherwise load before returning.

        On a cache hit the streams are served immediately and a background
        refresh is handed to the scheduler. On a miss the refresh runs to
        completion with ``loading`` set.
        """
        cached = self.cache.get_combined(DIARY_CACHE_KEY)
        if cached is not None:
            self.sales = tuple(cached.sales)
            self.expenses = tuple(cached.expenses)
            self.loading = False
            self.scheduler.spawn(self._soft_refresh())
            return RefreshMode.SOFT

        await self.refetch()
        return RefreshMode.HARD

    def activate(self, feed: ChangeFeed, scheduler: Optional[Scheduler] = None) -> RealtimeSynchronizer:
        """Start realtime synchronization of both streams."""
        if self._synchronizer is not None:
            return self._synchronizer
        self._synchronizer = RealtimeSynchronizer(
            feed,
            scheduler or self.scheduler,
            {
                "sales": (SALES_TABLES, self.refresh_sales),
                "expenses": (EXPENSE_TABLES, self.refresh_expenses),
            },
            delay=self.settings.debounce,
        )
        self._synchronizer.start()
        return self._synchronizer

    def deactivate(self) -> None:
        """Cancel subscriptions and any pending debounce timer."""
        if self._synchronizer is not None:
            self._synchronizer.stop()
            self._synchronizer = None

    def clear_cache(self) -> None:
        self.cache.clear(DIARY_CACHE_KEY)
