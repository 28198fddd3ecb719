"""Tests for the debounce state machine and change-feed wiring."""

import asyncio
from decimal import Decimal

import pytest

from gasdiary.database.change_feed import ChangeFeed
from gasdiary.domain.realtime import (
    AsyncioScheduler,
    RealtimeSynchronizer,
    StreamDebouncer,
    StreamState,
)


class RecordingFetch:
    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail
        self.during = None

    async def __call__(self):
        self.calls += 1
        if self.during is not None:
            self.during()
        if self.fail:
            raise RuntimeError("fetch failed")


@pytest.fixture
def fetch():
    return RecordingFetch()


@pytest.fixture
def debouncer(fetch, manual_scheduler):
    return StreamDebouncer("sales", fetch, manual_scheduler, delay=1.0)


class TestStreamDebouncer:
    def test_starts_idle(self, debouncer):
        assert debouncer.state == StreamState.IDLE
        assert debouncer.fetch_count == 0

    def test_burst_coalesces_into_one_fetch(self, debouncer, fetch, manual_scheduler):
        for _ in range(10):
            debouncer.notify("pos_transactions")
            manual_scheduler.advance(0.1)

        assert debouncer.state == StreamState.PENDING_DEBOUNCE
        assert len(manual_scheduler.pending_timers) == 1

        manual_scheduler.advance(1.0)
        manual_scheduler.run_spawned()

        assert debouncer.fetch_count == 1
        assert fetch.calls == 1
        assert debouncer.state == StreamState.IDLE

    def test_each_notify_restarts_the_window(self, debouncer, manual_scheduler):
        debouncer.notify()
        manual_scheduler.advance(0.9)
        debouncer.notify()
        manual_scheduler.advance(0.9)

        assert debouncer.fetch_count == 0
        manual_scheduler.advance(0.1)
        assert debouncer.fetch_count == 1
        assert debouncer.state == StreamState.FETCHING

    def test_separate_bursts_fetch_separately(self, debouncer, fetch, manual_scheduler):
        debouncer.notify()
        manual_scheduler.advance(1.0)
        manual_scheduler.run_spawned()
        debouncer.notify()
        manual_scheduler.advance(1.0)
        manual_scheduler.run_spawned()

        assert fetch.calls == 2

    def test_change_during_fetch_rearms_after_completion(self, debouncer, fetch, manual_scheduler):
        fetch.during = lambda: debouncer.notify("customer_payments")

        debouncer.notify()
        manual_scheduler.advance(1.0)
        manual_scheduler.run_spawned()

        # The change seen mid-fetch opens a new window rather than being lost
        assert fetch.calls == 1
        assert debouncer.state == StreamState.PENDING_DEBOUNCE

        fetch.during = None
        manual_scheduler.advance(1.0)
        manual_scheduler.run_spawned()

        assert fetch.calls == 2
        assert debouncer.state == StreamState.IDLE

    def test_failed_fetch_returns_to_idle(self, manual_scheduler):
        fetch = RecordingFetch(fail=True)
        debouncer = StreamDebouncer("expenses", fetch, manual_scheduler)

        debouncer.notify()
        manual_scheduler.advance(1.0)
        manual_scheduler.run_spawned()

        assert debouncer.state == StreamState.IDLE
        assert fetch.calls == 1

    def test_cancel_drops_pending_timer(self, debouncer, fetch, manual_scheduler):
        debouncer.notify()
        debouncer.cancel()
        manual_scheduler.advance(5.0)

        assert manual_scheduler.pending_timers == []
        assert manual_scheduler.spawned == []
        assert debouncer.state == StreamState.IDLE

        debouncer.notify()
        assert manual_scheduler.pending_timers == []


class TestRealtimeSynchronizer:
    def test_tables_route_to_their_stream(self, change_feed, manual_scheduler):
        sales, expenses = RecordingFetch(), RecordingFetch()
        sync = RealtimeSynchronizer(
            change_feed,
            manual_scheduler,
            {
                "sales": (("pos_transactions", "customer_payments"), sales),
                "expenses": (("daily_expenses",), expenses),
            },
        )
        sync.start()

        change_feed.publish("pos_transactions")
        change_feed.publish("customer_payments")
        change_feed.publish("customers")
        manual_scheduler.advance(1.0)
        manual_scheduler.run_spawned()

        assert sales.calls == 1
        assert expenses.calls == 0
        assert sync.state("expenses") == StreamState.IDLE

    def test_start_is_idempotent(self, change_feed, manual_scheduler):
        sync = RealtimeSynchronizer(change_feed, manual_scheduler, {"sales": (("pos_transactions",), RecordingFetch())})
        sync.start()
        sync.start()

        assert sync.active
        assert change_feed.subscriber_count("pos_transactions") == 1

    def test_stop_unsubscribes_and_cancels(self, change_feed, manual_scheduler):
        sales = RecordingFetch()
        sync = RealtimeSynchronizer(change_feed, manual_scheduler, {"sales": (("pos_transactions",), sales)})
        sync.start()
        change_feed.publish("pos_transactions")

        sync.stop()
        manual_scheduler.advance(2.0)
        change_feed.publish("pos_transactions")

        assert not sync.active
        assert change_feed.subscriber_count("pos_transactions") == 0
        assert manual_scheduler.pending_timers == []
        assert sales.calls == 0

    def test_unknown_stream_state_is_idle(self, change_feed, manual_scheduler):
        sync = RealtimeSynchronizer(change_feed, manual_scheduler, {})
        assert sync.state("sales") == StreamState.IDLE


class TestAsyncioScheduler:
    def test_real_loop_debounce(self):
        async def scenario():
            fetch = RecordingFetch()
            scheduler = AsyncioScheduler()
            debouncer = StreamDebouncer("sales", fetch, scheduler, delay=0.01)
            for _ in range(5):
                debouncer.notify()
            await asyncio.sleep(0.05)
            await scheduler.drain()
            return fetch.calls, debouncer.state

        calls, state = asyncio.run(scenario())

        assert calls == 1
        assert state == StreamState.IDLE


class TestChangeFeed:
    def test_failing_subscriber_does_not_block_others(self):
        feed = ChangeFeed()
        seen = []
        feed.subscribe(["vehicle_costs"], lambda table: 1 / 0)
        feed.subscribe(["vehicle_costs"], seen.append)

        feed.publish("vehicle_costs")

        assert seen == ["vehicle_costs"]

    def test_unsubscribe_twice_is_safe(self):
        feed = ChangeFeed()
        subscription = feed.subscribe(["orders"], lambda table: None)
        subscription.unsubscribe()
        subscription.unsubscribe()

        assert feed.subscriber_count("orders") == 0

    def test_database_commits_publish_table_names(self, temp_db, change_feed):
        seen = []
        change_feed.subscribe(["pos_transactions", "pos_transaction_items", "customers"], seen.append)

        temp_db.create_pos_transaction(
            "POS-1",
            Decimal("10"),
            [{"product_name": "Pipe", "quantity": 1, "unit_price": Decimal("10")}],
        )

        assert sorted(seen) == ["pos_transaction_items", "pos_transactions"]

    def test_reads_publish_nothing(self, temp_db, change_feed):
        seen = []
        change_feed.subscribe(["pos_transactions"], seen.append)

        temp_db.list_pos_transactions()

        assert seen == []
