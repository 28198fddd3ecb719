"""In-process change notifications per source table.

A change event carries no payload beyond the table name. Subscribers must
not assume ordering or exactly-once delivery.
"""

import logging
import threading
from typing import Callable, Iterable

logger = logging.getLogger("gasdiary.realtime")

ChangeCallback = Callable[[str], None]


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``."""

    def __init__(self, feed: "ChangeFeed", tables: tuple[str, ...], callback: ChangeCallback):
        self._feed = feed
        self.tables = tables
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if self.active:
            self.active = False
            self._feed._remove(self)


class ChangeFeed:
    """Publish/subscribe hub keyed by table name."""

    def __init__(self):
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, tables: Iterable[str], callback: ChangeCallback) -> Subscription:
        """Call ``callback(table)`` whenever any of ``tables`` changes."""
        subscription = Subscription(self, tuple(tables), callback)
        with self._lock:
            for table in subscription.tables:
                self._subscriptions.setdefault(table, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            for table in subscription.tables:
                subscribers = self._subscriptions.get(table, [])
                if subscription in subscribers:
                    subscribers.remove(subscription)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(table, []))

    def publish(self, table: str) -> None:
        """Notify every subscriber of ``table``.

        A failing subscriber is logged and does not stop delivery to the others.
        """
        with self._lock:
            subscribers = list(self._subscriptions.get(table, []))

        for subscription in subscribers:
            if not subscription.active:
                continue
            try:
                subscription.callback(table)
            except Exception:
                logger.exception(f"Change subscriber failed for table '{table}'")

    def publish_many(self, tables: Iterable[str]) -> None:
        for table in sorted(set(tables)):
            self.publish(table)
