"""Notification engine.

Alerts are derived from inventory, order, customer-due, exchange and
same-day sales sources on every refresh. Each notification id is built from
its triggering entity, so regenerating the list coalesces repeats. Read state
is an id list kept in a key/value store and re-applied after every refresh.
"""

import asyncio
import json
import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Sequence

from gasdiary.config import Settings
from gasdiary.database.base import Database
from gasdiary.database.change_feed import ChangeFeed, Subscription
from gasdiary.database.kv_store import KeyValueStore
from gasdiary.domain.entities import (
    Customer,
    CylinderExchange,
    LpgBrand,
    Notification,
    NotificationAction,
    NotificationPriority,
    NotificationType,
    Order,
    Regulator,
    StaffRole,
    Stove,
)
from gasdiary.domain.errors import NotFoundError, notification_not_found
from gasdiary.domain.realtime import AsyncioScheduler, Scheduler, StreamDebouncer
from gasdiary.utils.amounts import format_taka
from gasdiary.utils.retry import call_with_retry

logger = logging.getLogger("gasdiary.notifications")

READ_IDS_KEY = "universalReadNotifications"
SETTINGS_KEY = "notification-settings"

MAX_CRITICAL_ALERTS = 3
ORDER_WAITING_HOURS = 2
HIGH_DUE_THRESHOLD = Decimal("10000")
CYLINDER_DUE_THRESHOLD = 3
TOTAL_DUE_THRESHOLD = Decimal("50000")
GREAT_SALES_THRESHOLD = Decimal("50000")

NOTIFICATION_TABLES = (
    "lpg_brands",
    "stoves",
    "regulators",
    "orders",
    "customers",
    "customer_payments",
    "cylinder_exchanges",
    "pos_transactions",
)

INVENTORY_ROLES = frozenset({StaffRole.OWNER, StaffRole.MANAGER})
DELIVERY_ROLES = frozenset({StaffRole.OWNER, StaffRole.MANAGER, StaffRole.DRIVER})
OWNER_ONLY = frozenset({StaffRole.OWNER})


# Notification ids


def lpg_stock_id(brand_id: str, stock: int) -> Optional[str]:
    """Id of the stock alert for an LPG brand, or None when stock is healthy.

    The three severities share one brand but never coexist: the id prefix
    changes with the tier the stock falls into.
    """
    if stock == 0:
        return f"out_of_stock_lpg_{brand_id}"
    if stock < 10:
        return f"critical_stock_lpg_{brand_id}"
    if stock < 30:
        return f"low_stock_lpg_{brand_id}"
    return None


def empty_imbalance_id(brand_id: str) -> str:
    return f"empty_imbalance_{brand_id}"


def stove_stock_id(stove_id: str, quantity: int) -> Optional[str]:
    if quantity == 0:
        return f"out_of_stock_stove_{stove_id}"
    if quantity < 5:
        return f"low_stock_stove_{stove_id}"
    return None


def regulator_stock_id(regulator_id: str, quantity: int) -> Optional[str]:
    if quantity == 0:
        return f"out_of_stock_reg_{regulator_id}"
    if quantity < 5:
        return f"low_stock_reg_{regulator_id}"
    return None


def order_alert_id(order_id: str, waiting: bool) -> str:
    """Id of the alert for a pending order.

    A pending order is either new or waiting, decided by elapsed time, so
    ``new_order_<id>`` and ``pending_order_<id>`` can never both exist.
    """
    return f"pending_order_{order_id}" if waiting else f"new_order_{order_id}"


def high_due_id(customer_id: str) -> str:
    return f"high_due_{customer_id}"


def cylinder_due_id(customer_id: str) -> str:
    return f"cylinder_due_{customer_id}"


def credit_limit_id(customer_id: str) -> str:
    return f"credit_limit_{customer_id}"


TOTAL_DUE_SUMMARY_ID = "total_due_summary"


def exchange_pending_id(exchange_id: str) -> str:
    return f"exchange_pending_{exchange_id}"


def great_sales_id(day: datetime) -> str:
    """One celebratory alert per shop-local calendar day."""
    return f"good_sales_{day.date().isoformat()}"


# Rules


def _action(label: str, module_id: str) -> NotificationAction:
    return NotificationAction(label=label, module_id=module_id)


def inventory_alerts(
    brands: Iterable[LpgBrand],
    stoves: Iterable[Stove],
    regulators: Iterable[Regulator],
    now: datetime,
) -> list[Notification]:
    """Stock alerts; LPG tiers (0/10/30) differ from stove and regulator tiers (0/5)."""
    alerts = []
    view_stock = _action("View Stock", "lpg-stock")

    for brand in brands:
        stock = brand.full_cylinders
        info = f"{brand.name} ({brand.size})"
        data = {
            "brandId": brand.id,
            "brandName": brand.name,
            "stock": stock,
            "category": "lpg",
        }
        alert_id = lpg_stock_id(brand.id, stock)
        if stock == 0:
            alerts.append(Notification(
                id=alert_id,
                type=NotificationType.OUT_OF_STOCK,
                priority=NotificationPriority.CRITICAL,
                title="🔴 Out of Stock - Critical!",
                message=f"{info} is completely out of stock. Order immediately.",
                created_at=now, roles=INVENTORY_ROLES,
                module="lpg-stock", action=view_stock, data=data,
            ))
        elif stock < 10:
            alerts.append(Notification(
                id=alert_id,
                type=NotificationType.LOW_STOCK,
                priority=NotificationPriority.HIGH,
                title="🟠 Critical Stock Level",
                message=f"{info} has only {stock} cylinders. Restock urgently.",
                created_at=now, roles=INVENTORY_ROLES,
                module="lpg-stock", action=view_stock, data=data,
            ))
        elif stock < 30:
            alerts.append(Notification(
                id=alert_id,
                type=NotificationType.LOW_STOCK,
                priority=NotificationPriority.MEDIUM,
                title="🟡 Low Stock Alert",
                message=f"{info} has {stock} cylinders remaining.",
                created_at=now, roles=INVENTORY_ROLES,
                module="lpg-stock", action=view_stock, data=data,
            ))

        if brand.empty_cylinder > stock * 1.5:
            alerts.append(Notification(
                id=empty_imbalance_id(brand.id),
                type=NotificationType.SYSTEM_ALERT,
                priority=NotificationPriority.HIGH,
                title="⚠️ Empty Cylinder Imbalance",
                message=(
                    f"{info}: {brand.empty_cylinder} empties vs {stock} full. "
                    "Send empties to plant!"
                ),
                created_at=now, roles=INVENTORY_ROLES,
                module="lpg-stock", action=view_stock,
                data={"brandId": brand.id, "empty": brand.empty_cylinder, "full": stock},
            ))

    view_stoves = _action("View Stoves", "stove-stock")
    for stove in stoves:
        info = f"{stove.brand} ({'Single' if stove.burners == 1 else 'Double'} Burner)"
        data = {"stoveId": stove.id, "stock": stove.quantity, "category": "stove"}
        alert_id = stove_stock_id(stove.id, stove.quantity)
        if stove.quantity == 0:
            alerts.append(Notification(
                id=alert_id,
                type=NotificationType.OUT_OF_STOCK,
                priority=NotificationPriority.HIGH,
                title="🔴 Stove Out of Stock",
                message=f"{info} is out of stock.",
                created_at=now, roles=INVENTORY_ROLES,
                module="stove-stock", action=view_stoves, data=data,
            ))
        elif stove.quantity < 5:
            alerts.append(Notification(
                id=alert_id,
                type=NotificationType.LOW_STOCK,
                priority=NotificationPriority.MEDIUM,
                title="🟡 Low Stove Stock",
                message=f"{info} has only {stove.quantity} units.",
                created_at=now, roles=INVENTORY_ROLES,
                module="stove-stock", action=view_stoves, data=data,
            ))

    view_regulators = _action("View Regulators", "regulators")
    for regulator in regulators:
        info = f"{regulator.brand} ({regulator.type})"
        data = {"regulatorId": regulator.id, "stock": regulator.quantity, "category": "regulator"}
        alert_id = regulator_stock_id(regulator.id, regulator.quantity)
        if regulator.quantity == 0:
            alerts.append(Notification(
                id=alert_id,
                type=NotificationType.OUT_OF_STOCK,
                priority=NotificationPriority.HIGH,
                title="🔴 Regulator Out of Stock",
                message=f"{info} is out of stock.",
                created_at=now, roles=INVENTORY_ROLES,
                module="regulators", action=view_regulators, data=data,
            ))
        elif regulator.quantity < 5:
            alerts.append(Notification(
                id=alert_id,
                type=NotificationType.LOW_STOCK,
                priority=NotificationPriority.MEDIUM,
                title="🟡 Low Regulator Stock",
                message=f"{info} has only {regulator.quantity} units.",
                created_at=now, roles=INVENTORY_ROLES,
                module="regulators", action=view_regulators, data=data,
            ))

    return alerts


def order_alerts(orders: Iterable[Order], now: datetime) -> list[Notification]:
    """Exactly one alert per pending order; processing orders are skipped."""
    alerts = []
    view_orders = _action("View Orders", "orders")
    for order in orders:
        if order.status != "pending":
            continue
        hours = (now - order.created_at).total_seconds() / 3600
        waiting = hours > ORDER_WAITING_HOURS
        data = {"orderId": order.id, "orderNumber": order.order_number}
        if waiting:
            alerts.append(Notification(
                id=order_alert_id(order.id, waiting=True),
                type=NotificationType.NEW_ORDER,
                priority=NotificationPriority.HIGH,
                title="⏰ Order Waiting",
                message=(
                    f"Order #{order.order_number} from {order.customer_name} "
                    f"pending for {int(hours)}h"
                ),
                created_at=order.created_at, roles=DELIVERY_ROLES,
                module="orders", action=view_orders, data=data,
            ))
        else:
            alerts.append(Notification(
                id=order_alert_id(order.id, waiting=False),
                type=NotificationType.NEW_ORDER,
                priority=NotificationPriority.MEDIUM,
                title="🛒 New Order",
                message=(
                    f"Order #{order.order_number} from {order.customer_name} - "
                    f"{format_taka(order.total_amount)}"
                ),
                created_at=order.created_at, roles=DELIVERY_ROLES,
                module="orders", action=view_orders, data=data,
            ))
    return alerts


def customer_alerts(
    customers: Iterable[Customer],
    total_due: Decimal,
    total_cylinders_due: int,
    now: datetime,
) -> list[Notification]:
    """Per-customer due alerts plus the owner-only aggregate summary."""
    alerts = []
    for customer in customers:
        if customer.total_due > HIGH_DUE_THRESHOLD:
            alerts.append(Notification(
                id=high_due_id(customer.id),
                type=NotificationType.PAYMENT_OVERDUE,
                priority=NotificationPriority.HIGH,
                title="💰 High Outstanding Due",
                message=f"{customer.name} owes {format_taka(customer.total_due)}",
                created_at=now, roles=INVENTORY_ROLES,
                module="customers", action=_action("Collect Due", "customers"),
                data={"customerId": customer.id, "due": str(customer.total_due)},
            ))

        if customer.cylinders_due >= CYLINDER_DUE_THRESHOLD:
            alerts.append(Notification(
                id=cylinder_due_id(customer.id),
                type=NotificationType.PAYMENT_OVERDUE,
                priority=NotificationPriority.HIGH,
                title="📦 Cylinder Return Pending",
                message=f"{customer.name} has {customer.cylinders_due} cylinders to return",
                created_at=now, roles=INVENTORY_ROLES,
                module="customers", action=_action("View Customer", "customers"),
                data={"customerId": customer.id, "cylindersDue": customer.cylinders_due},
            ))

        if customer.credit_limit and customer.total_due > customer.credit_limit:
            alerts.append(Notification(
                id=credit_limit_id(customer.id),
                type=NotificationType.CUSTOMER_CREDIT_LIMIT,
                priority=NotificationPriority.CRITICAL,
                title="🚫 Credit Limit Exceeded",
                message=(
                    f"{customer.name} exceeded limit: {format_taka(customer.total_due)} / "
                    f"{format_taka(customer.credit_limit)}"
                ),
                created_at=now, roles=INVENTORY_ROLES,
                module="customers", action=_action("View Customer", "customers"),
                data={
                    "customerId": customer.id,
                    "due": str(customer.total_due),
                    "limit": str(customer.credit_limit),
                },
            ))

    if total_due > TOTAL_DUE_THRESHOLD:
        alerts.append(Notification(
            id=TOTAL_DUE_SUMMARY_ID,
            type=NotificationType.PAYMENT_OVERDUE,
            priority=NotificationPriority.MEDIUM,
            title="📊 Total Dues Summary",
            message=(
                f"Total outstanding: {format_taka(total_due)} | "
                f"{total_cylinders_due} cylinders"
            ),
            created_at=now, roles=OWNER_ONLY,
            module="customers", action=_action("View Customers", "customers"),
            data={"totalDue": str(total_due), "totalCylindersDue": total_cylinders_due},
        ))
    return alerts


def exchange_alerts(exchanges: Iterable[CylinderExchange]) -> list[Notification]:
    return [
        Notification(
            id=exchange_pending_id(exchange.id),
            type=NotificationType.EXCHANGE_PENDING,
            priority=NotificationPriority.MEDIUM,
            title="🔄 Pending Exchange",
            message=f"{exchange.quantity}x {exchange.from_brand} → {exchange.to_brand}",
            created_at=exchange.created_at, roles=DELIVERY_ROLES,
            module="exchange", action=_action("View Exchanges", "exchange"),
            data={"exchangeId": exchange.id},
        )
        for exchange in exchanges
    ]


def sales_alerts(totals: Sequence[Decimal], now: datetime) -> list[Notification]:
    """Celebrate a same-day transaction total above the threshold."""
    total = sum(totals, Decimal("0"))
    if not totals or total <= GREAT_SALES_THRESHOLD:
        return []
    return [
        Notification(
            id=great_sales_id(now),
            type=NotificationType.INFO,
            priority=NotificationPriority.LOW,
            title="🎉 Great Sales Day!",
            message=f"Today's sales: {format_taka(total)} from {len(totals)} transactions",
            created_at=now, roles=INVENTORY_ROLES,
            module="daily-sales", action=_action("View Sales", "daily-sales"),
            data={"totalSales": str(total), "transactionCount": len(totals)},
        )
    ]


def sort_notifications(notifications: Iterable[Notification]) -> list[Notification]:
    """Order by priority (critical first), then newest first."""
    ordered = sorted(notifications, key=lambda n: n.created_at, reverse=True)
    ordered.sort(key=lambda n: n.priority.rank)
    return ordered


class NotificationService:
    """Role-filtered notification feed with persisted read state.

    Args:
        db: Row-query backend
        store: Holds the read-id list and notification settings
        role: Role of the consumer; notifications outside it are hidden
        settings: Fetch policy and source limits
        clock: Returns the current shop-local time
        scheduler: Runs debounce timers once attached to a change feed
    """

    def __init__(
        self,
        db: Database,
        store: KeyValueStore,
        role: StaffRole = StaffRole.DRIVER,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
        scheduler: Optional[Scheduler] = None,
    ):
        self.db = db
        self.store = store
        self.role = role
        self.settings = settings or Settings()
        self.clock = clock
        self.scheduler = scheduler or AsyncioScheduler()
        self.loading = False
        self._all: list[Notification] = []
        self._alert_listeners: list[Callable[[Notification], None]] = []
        self._navigate_listeners: list[Callable[[str], None]] = []
        self._debouncer: Optional[StreamDebouncer] = None
        self._subscription: Optional[Subscription] = None

    # Persisted state
    def _load_json(self, key: str, default: Any) -> Any:
        raw = self.store.get(key)
        if not raw:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable value stored under '{key}'")
            return default

    def read_ids(self) -> list[str]:
        ids = self._load_json(READ_IDS_KEY, [])
        return ids if isinstance(ids, list) else []

    def _save_read_ids(self, ids: list[str]) -> None:
        self.store.set(READ_IDS_KEY, json.dumps(ids))

    def alerts_enabled(self) -> bool:
        settings = self._load_json(SETTINGS_KEY, {})
        return not (isinstance(settings, dict) and settings.get("lowStock") is False)

    # Derivation
    async def _query(self, label: str, fn: Callable[..., Any], *args: Any) -> Any:
        policy = self.settings.fetch_policy
        return await call_with_retry(
            lambda: asyncio.to_thread(fn, *args),
            label=label,
            timeout=policy.timeout,
            attempts=policy.attempts,
            backoff=policy.backoff,
        )

    async def _inventory(self, now: datetime) -> list[Notification]:
        brands, stoves, regulators = await asyncio.gather(
            self._query("lpg_brands", self.db.list_active_lpg_brands),
            self._query("stoves", self.db.list_active_stoves),
            self._query("regulators", self.db.list_active_regulators),
        )
        return inventory_alerts(brands, stoves, regulators, now)

    async def _orders(self, now: datetime) -> list[Notification]:
        orders = await self._query("orders", self.db.list_open_orders, self.settings.limits.open_orders)
        return order_alerts(orders, now)

    async def _customers(self, now: datetime) -> list[Notification]:
        customers, (total_due, total_cylinders) = await asyncio.gather(
            self._query(
                "customers", self.db.list_customers_with_dues, self.settings.limits.due_customers
            ),
            self._query("due_totals", self.db.get_due_totals),
        )
        return customer_alerts(customers, total_due, total_cylinders, now)

    async def _exchanges(self) -> list[Notification]:
        exchanges = await self._query(
            "cylinder_exchanges",
            self.db.list_pending_exchanges,
            self.settings.limits.pending_exchanges,
        )
        return exchange_alerts(exchanges)

    async def _sales(self, now: datetime) -> list[Notification]:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        totals = await self._query("pos_totals", self.db.list_pos_totals_since, midnight)
        return sales_alerts(totals, now)

    async def refresh(self) -> list[Notification]:
        """Regenerate every notification and re-apply read state.

        When a source query fails the previous list is kept.

        Returns:
            The role-filtered list
        """
        now = self.clock()
        self.loading = True
        try:
            groups = await asyncio.gather(
                self._inventory(now),
                self._orders(now),
                self._customers(now),
                self._exchanges(),
                self._sales(now),
            )
        except Exception as e:
            logger.error(f"Error loading notifications: {e}")
            return self.notifications
        finally:
            self.loading = False

        read = set(self.read_ids())
        generated = sort_notifications(n for group in groups for n in group)
        self._all = [replace(n, read=n.id in read) for n in generated]
        logger.info(f"Derived {len(self._all)} notifications ({self.unread_count} unread)")
        self._emit_critical()
        return self.notifications

    def _emit_critical(self) -> None:
        if not self._alert_listeners or not self.alerts_enabled():
            return
        critical = [
            n for n in self._all if n.priority == NotificationPriority.CRITICAL and not n.read
        ]
        for notification in critical[:MAX_CRITICAL_ALERTS]:
            for listener in list(self._alert_listeners):
                try:
                    listener(notification)
                except Exception:
                    logger.exception(f"Alert listener failed for '{notification.id}'")

    # Views
    @property
    def all_notifications(self) -> list[Notification]:
        return list(self._all)

    @property
    def notifications(self) -> list[Notification]:
        return [n for n in self._all if self.role in n.roles]

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    @property
    def critical_count(self) -> int:
        return sum(
            1 for n in self.notifications
            if not n.read and n.priority == NotificationPriority.CRITICAL
        )

    @property
    def high_priority_count(self) -> int:
        urgent = (NotificationPriority.CRITICAL, NotificationPriority.HIGH)
        return sum(1 for n in self.notifications if not n.read and n.priority in urgent)

    def get(self, notification_id: str) -> Notification:
        """Find a visible notification.

        Raises:
            NotFoundError: If no visible notification has this id
        """
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        raise NotFoundError(notification_not_found(notification_id))

    # Read state
    def mark_as_read(self, notification_id: str) -> None:
        self._all = [replace(n, read=True) if n.id == notification_id else n for n in self._all]
        ids = self.read_ids()
        if notification_id not in ids:
            ids.append(notification_id)
            self._save_read_ids(ids)

    def mark_all_as_read(self) -> None:
        self._all = [replace(n, read=True) for n in self._all]
        self._save_read_ids([n.id for n in self._all])

    def clear_notifications(self) -> None:
        self._all = []
        self._save_read_ids([])

    # Listeners
    def on_alert(self, callback: Callable[[Notification], None]) -> None:
        """Receive up to three critical unread notifications per refresh."""
        self._alert_listeners.append(callback)

    def on_navigate(self, callback: Callable[[str], None]) -> None:
        self._navigate_listeners.append(callback)

    def navigate_to_module(self, module_id: str) -> None:
        """Emit a navigation intent; routing is up to the listeners."""
        for listener in list(self._navigate_listeners):
            listener(module_id)

    def open(self, notification_id: str) -> Optional[str]:
        """Mark a notification read and navigate to its action's module.

        Returns:
            The target module id, or None when the notification has no action
        """
        notification = self.get(notification_id)
        self.mark_as_read(notification.id)
        if notification.action is None:
            return None
        self.navigate_to_module(notification.action.module_id)
        return notification.action.module_id

    # Realtime
    def attach(self, feed: ChangeFeed, scheduler: Optional[Scheduler] = None) -> None:
        """Re-derive the list (debounced) whenever a source table changes."""
        if self._subscription is not None:
            return
        self._debouncer = StreamDebouncer(
            "notifications",
            self.refresh,
            scheduler or self.scheduler,
            self.settings.debounce,
        )
        self._subscription = feed.subscribe(NOTIFICATION_TABLES, self._debouncer.notify)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._debouncer is not None:
            self._debouncer.cancel()
            self._debouncer = None
