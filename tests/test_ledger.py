"""Tests for ledger merging and the diary service."""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from gasdiary.domain.codec import encode_snapshot
from gasdiary.domain.entities import DiarySnapshot, SaleType
from gasdiary.domain.ledger import (
    DIARY_CACHE_KEY,
    EXPENSE_TABLES,
    SALES_TABLES,
    LedgerService,
    RefreshMode,
    create_diary_cache,
    merge_expenses,
    merge_sales,
)
from gasdiary.domain.realtime import StreamState

BASE = datetime(2024, 6, 12, 9, 0)


@pytest.fixture
def diary_cache(memory_store, settings, fake_clock):
    return create_diary_cache(store=memory_store, settings=settings, clock=fake_clock)


@pytest.fixture
def ledger(roles, diary_cache, settings, manual_scheduler):
    return LedgerService(roles, cache=diary_cache, settings=settings, scheduler=manual_scheduler)


@pytest.fixture
def seeded(roles):
    """A few rows in every source family."""
    customer_id = roles.create_customer("Rahim Store")
    roles.create_pos_transaction(
        "POS-1",
        Decimal("1450"),
        [{"product_name": "Refill", "quantity": 1, "unit_price": Decimal("1450")}],
        created_by="u-manager",
        customer_id=customer_id,
        created_at=BASE,
    )
    roles.create_pos_transaction(
        "POS-2",
        Decimal("2900"),
        [
            {"product_name": "Refill", "quantity": 1, "unit_price": Decimal("1450")},
            {"product_name": "Refill", "quantity": 1, "unit_price": Decimal("1450")},
        ],
        created_by="u-owner",
        created_at=BASE + timedelta(hours=2),
    )
    roles.create_customer_payment(
        customer_id, Decimal("500"), cylinders_collected=1, created_at=BASE + timedelta(hours=1)
    )
    roles.create_pob_transaction(
        "POB-1",
        Decimal("14000"),
        [{"product_name": "Cylinder", "product_type": "lpg_cylinder", "quantity": 10, "unit_price": Decimal("1400")}],
        created_at=BASE - timedelta(days=1),
    )
    staff_id = roles.create_staff("Rafiq")
    roles.create_staff_payment(staff_id, Decimal("12000"), created_at=BASE + timedelta(hours=3))
    van = roles.create_vehicle("Van")
    roles.create_vehicle_cost(van, Decimal("900"), "fuel", created_at=BASE + timedelta(minutes=30))
    roles.create_daily_expense("Rent", Decimal("8000"), created_at=BASE + timedelta(hours=4))
    return roles


def assert_sorted(entries):
    for newer, older in zip(entries, entries[1:]):
        assert newer.timestamp >= older.timestamp


class TestMerge:
    def test_merge_sorts_newest_first(self, seeded, ledger):
        asyncio.run(ledger.refetch())

        assert len(ledger.sales) == 4
        assert len(ledger.expenses) == 4
        assert_sorted(ledger.sales)
        assert_sorted(ledger.expenses)
        assert ledger.sales[-1].transaction_number == "POS-1"
        assert ledger.expenses[0].category == "Rent"

    def test_ties_keep_adapter_order(self):
        class Entry:
            def __init__(self, name, timestamp):
                self.name = name
                self.timestamp = timestamp

        first = [Entry("a", BASE), Entry("b", BASE)]
        second = [Entry("c", BASE), Entry("d", BASE + timedelta(seconds=1))]

        assert [e.name for e in merge_sales([first, second])] == ["d", "a", "b", "c"]
        assert [e.name for e in merge_expenses([second, first])] == ["d", "c", "a", "b"]

    def test_refetch_is_idempotent(self, seeded, ledger):
        asyncio.run(ledger.refetch())
        first = encode_snapshot(DiarySnapshot(ledger.sales, ledger.expenses))
        asyncio.run(ledger.refetch())
        second = encode_snapshot(DiarySnapshot(ledger.sales, ledger.expenses))

        assert first == second


class TestFailureIsolation:
    def test_failed_source_keeps_last_good_result(self, seeded, ledger, monkeypatch):
        asyncio.run(ledger.refetch())
        assert not ledger.stale

        def boom(limit):
            raise RuntimeError("backend down")

        monkeypatch.setattr(seeded, "list_customer_payments", boom)
        seeded.create_pos_transaction("POS-3", Decimal("100"), [], created_at=BASE + timedelta(hours=5))
        asyncio.run(ledger.refetch())

        assert ledger.stale
        assert ledger.failed_sources["sales"] == ("due_payments",)
        assert ledger.failed_sources["expenses"] == ()
        assert any(e.type == SaleType.PAYMENT for e in ledger.sales)
        assert ledger.sales[0].transaction_number == "POS-3"
        assert_sorted(ledger.sales)

    def test_source_that_never_succeeded_contributes_nothing(self, seeded, ledger, monkeypatch):
        def boom(limit):
            raise RuntimeError("backend down")

        monkeypatch.setattr(seeded, "list_pos_transactions", boom)
        asyncio.run(ledger.refetch())

        assert [e.type for e in ledger.sales] == [SaleType.PAYMENT]
        assert len(ledger.expenses) == 4

    def test_recovery_clears_stale(self, seeded, ledger, monkeypatch):
        monkeypatch.setattr(seeded, "list_daily_expenses", lambda limit: 1 / 0)
        asyncio.run(ledger.refetch())
        assert ledger.stale

        monkeypatch.undo()
        asyncio.run(ledger.refetch())
        assert not ledger.stale


class TestColdStart:
    def test_scenario_e_second_mount_is_served_from_memory(
        self, seeded, diary_cache, settings, manual_scheduler, query_counter
    ):
        first = LedgerService(seeded, cache=diary_cache, settings=settings, scheduler=manual_scheduler)
        assert asyncio.run(first.mount()) == RefreshMode.HARD
        assert not first.loading

        query_counter.reset()
        second = LedgerService(seeded, cache=diary_cache, settings=settings, scheduler=manual_scheduler)
        mode = asyncio.run(second.mount())

        assert mode == RefreshMode.SOFT
        assert query_counter.count == 0
        assert second.sales == first.sales
        assert second.expenses == first.expenses
        # The soft refresh is handed off, not awaited
        assert len(manual_scheduler.spawned) == 1

    def test_soft_refresh_updates_streams_in_background(self, seeded, diary_cache, settings, manual_scheduler):
        asyncio.run(LedgerService(seeded, cache=diary_cache, settings=settings).refetch())
        seeded.create_pos_transaction("POS-9", Decimal("75"), [], created_at=BASE + timedelta(days=1))

        ledger = LedgerService(seeded, cache=diary_cache, settings=settings, scheduler=manual_scheduler)
        asyncio.run(ledger.mount())
        assert all(e.transaction_number != "POS-9" for e in ledger.sales)

        manual_scheduler.run_spawned()
        assert ledger.sales[0].transaction_number == "POS-9"
        assert not ledger.loading

    def test_expired_cache_forces_hard_mount(self, seeded, diary_cache, settings, manual_scheduler, fake_clock):
        asyncio.run(LedgerService(seeded, cache=diary_cache, settings=settings).mount())
        fake_clock.advance(settings.cache_ttl + 1)

        ledger = LedgerService(seeded, cache=diary_cache, settings=settings, scheduler=manual_scheduler)
        assert asyncio.run(ledger.mount()) == RefreshMode.HARD
        assert manual_scheduler.spawned == []

    def test_persisted_tier_survives_a_new_process(self, seeded, memory_store, settings, fake_clock, manual_scheduler):
        writer_cache = create_diary_cache(store=memory_store, settings=settings, clock=fake_clock)
        writer = LedgerService(seeded, cache=writer_cache, settings=settings)
        asyncio.run(writer.refetch())

        reader_cache = create_diary_cache(store=memory_store, settings=settings, clock=fake_clock)
        reader = LedgerService(seeded, cache=reader_cache, settings=settings, scheduler=manual_scheduler)

        assert asyncio.run(reader.mount()) == RefreshMode.SOFT
        assert reader.sales == writer.sales
        assert reader.expenses == writer.expenses

    def test_empty_diary_is_not_cached(self, roles, ledger, memory_store):
        asyncio.run(ledger.refetch())

        assert ledger.cache.get_combined(DIARY_CACHE_KEY) is None
        assert memory_store.keys() == []


class TestListeners:
    def test_on_change_called_after_merge(self, seeded, ledger):
        seen = []
        remove = ledger.on_change(lambda service: seen.append(len(service.sales)))

        asyncio.run(ledger.refetch())
        remove()
        asyncio.run(ledger.refetch())

        assert seen == [4]

    def test_failing_listener_does_not_break_refresh(self, seeded, ledger):
        ledger.on_change(lambda service: 1 / 0)
        asyncio.run(ledger.refetch())
        assert len(ledger.sales) == 4

    def test_analytics_follow_streams(self, seeded, roles, diary_cache, settings):
        ledger = LedgerService(roles, cache=diary_cache, settings=settings, today=lambda: BASE.date())
        asyncio.run(ledger.refetch())

        assert ledger.analytics.today_income == Decimal("4850")
        assert ledger.analytics is ledger.analytics


class TestRealtime:
    def test_burst_across_tables_triggers_one_fetch(self, seeded, ledger, change_feed, manual_scheduler):
        asyncio.run(ledger.refetch())
        synchronizer = ledger.activate(change_feed)

        seeded.create_pos_transaction(
            "POS-4",
            Decimal("50"),
            [{"product_name": "Pipe", "quantity": 1, "unit_price": Decimal("50")}],
            created_at=BASE + timedelta(days=1),
        )
        manual_scheduler.advance(0.5)
        seeded.create_customer_payment(None, Decimal("10"), created_at=BASE + timedelta(days=1, hours=1))
        manual_scheduler.advance(0.5)

        assert synchronizer.state("sales") == StreamState.PENDING_DEBOUNCE
        assert manual_scheduler.spawned == []

        manual_scheduler.advance(0.5)
        assert synchronizer.state("sales") == StreamState.FETCHING
        manual_scheduler.run_spawned()

        assert synchronizer.debouncers["sales"].fetch_count == 1
        assert synchronizer.debouncers["expenses"].fetch_count == 0
        assert synchronizer.state("sales") == StreamState.IDLE
        assert ledger.sales[0].customer_name == "Unknown Customer"
        assert len(ledger.sales) == 6

    def test_expense_tables_feed_expense_stream(self, seeded, ledger, change_feed, manual_scheduler):
        synchronizer = ledger.activate(change_feed)

        seeded.create_daily_expense("Bank", Decimal("50"))
        manual_scheduler.advance(settings_debounce(ledger))
        manual_scheduler.run_spawned()

        assert synchronizer.debouncers["expenses"].fetch_count == 1
        assert synchronizer.debouncers["sales"].fetch_count == 0
        assert any(e.category == "Bank" for e in ledger.expenses)

    def test_deactivate_cancels_timer_and_subscriptions(self, seeded, ledger, change_feed, manual_scheduler):
        ledger.activate(change_feed)
        seeded.create_pos_transaction("POS-5", Decimal("10"), [])
        assert len(manual_scheduler.pending_timers) == 1

        ledger.deactivate()
        manual_scheduler.advance(10)

        assert manual_scheduler.pending_timers == []
        assert manual_scheduler.spawned == []
        for table in SALES_TABLES + EXPENSE_TABLES:
            assert change_feed.subscriber_count(table) == 0


def settings_debounce(ledger):
    return ledger.settings.debounce
