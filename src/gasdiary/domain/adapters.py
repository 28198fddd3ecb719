"""Source adapters normalizing source rows into diary entries.

Each adapter reads exactly one family of source rows (plus the role
assignments used for attribution) and never writes. Normalization is done
by plain functions so it can be exercised without a database.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from gasdiary.config import FetchPolicy, SourceLimits
from gasdiary.database.base import Database
from gasdiary.domain.categories import (
    DEFAULT_WHY_SPENT,
    WHY_SPENT_BY_CATEGORY,
    ExpenseCategory,
    pob_category,
    vehicle_category,
)
from gasdiary.domain.entities import (
    Customer,
    CustomerPayment,
    DailyExpense,
    ExpenseEntry,
    ExpenseType,
    PaymentStatus,
    PobTransaction,
    PosTransaction,
    ReturnCylinder,
    SaleEntry,
    SaleType,
    StaffPayment,
    StaffRole,
    TransactionType,
    UserRole,
    VehicleCost,
)
from gasdiary.utils.amounts import format_amount, format_taka
from gasdiary.utils.retry import call_with_retry

logger = logging.getLogger("gasdiary.adapters")

WALK_IN_CUSTOMER = "Walk-in Customer"
UNKNOWN_CUSTOMER = "Unknown Customer"
UNKNOWN_PRODUCT = "Unknown Product"

_RETURN_PATTERN = re.compile(r"Return:\s*(.+)$", re.IGNORECASE)
_NAMED_ROLES = {StaffRole.OWNER.value, StaffRole.MANAGER.value, StaffRole.DRIVER.value}


class RoleDirectory:
    """Maps acting users to role-level attribution.

    Staff identity in the diary is deliberately role-level: the displayed
    name is the capitalized role, never an individual's name.
    """

    def __init__(self, roles: Sequence[UserRole] = ()):
        self._roles = {role.user_id: role.role for role in roles}

    def role_for(self, user_id: Optional[str]) -> StaffRole:
        if not user_id or user_id not in self._roles:
            return StaffRole.UNKNOWN
        role = self._roles[user_id]
        if role in _NAMED_ROLES:
            return StaffRole(role)
        return StaffRole.STAFF

    @staticmethod
    def display_name(role: StaffRole) -> str:
        return role.value.capitalize()


def normalize_payment_status(status: Optional[str]) -> PaymentStatus:
    if status in ("completed", "paid"):
        return PaymentStatus.PAID
    if status == "partial":
        return PaymentStatus.PARTIAL
    return PaymentStatus.DUE


def parse_return_cylinders(product_name: str) -> tuple[ReturnCylinder, ...]:
    """Parse a ``Return: <brand>`` suffix from a refill line item name.

    Only refill products carry returns.
    """
    if "refill" not in product_name.lower():
        return ()
    match = _RETURN_PATTERN.search(product_name)
    if match:
        return (ReturnCylinder(brand=match.group(1).strip(), quantity=1, type="empty"),)
    return ()


def pos_transaction_to_entries(
    txn: PosTransaction,
    customers: dict[str, Customer],
    roles: RoleDirectory,
) -> list[SaleEntry]:
    """Expand one POS transaction into sale entries.

    Zero items with a nonzero total yields one summary entry; otherwise
    there is one entry per item, all wholesale when there is more than one.
    """
    customer = customers.get(txn.customer_id) if txn.customer_id else None
    staff_role = roles.role_for(txn.created_by)
    common: dict[str, Any] = dict(
        type=SaleType.POS,
        date=txn.created_at.date(),
        timestamp=txn.created_at,
        staff_name=RoleDirectory.display_name(staff_role),
        staff_role=staff_role,
        staff_id=txn.created_by,
        payment_method=txn.payment_method,
        payment_status=normalize_payment_status(txn.payment_status),
        customer_name=customer.name if customer else WALK_IN_CUSTOMER,
        customer_phone=customer.phone if customer else None,
        customer_id=txn.customer_id,
        transaction_number=txn.transaction_number,
        source="Online Order" if txn.is_online_order else "POS",
        source_id=txn.id,
        is_online_order=txn.is_online_order,
        community_order_id=txn.community_order_id,
    )

    if not txn.items:
        if txn.total == 0:
            return []
        return [
            SaleEntry(
                id=txn.id,
                product_name="POS Sale",
                product_details=f"Total: {format_taka(txn.total)}",
                quantity=1,
                unit_price=txn.total,
                total_amount=txn.total,
                transaction_type=TransactionType.RETAIL,
                **common,
            )
        ]

    transaction_type = (
        TransactionType.WHOLESALE if len(txn.items) > 1 else TransactionType.RETAIL
    )
    return [
        SaleEntry(
            id=item.id,
            product_name=item.product_name or UNKNOWN_PRODUCT,
            product_details=f"{item.quantity} x {format_taka(item.unit_price)}",
            return_cylinders=parse_return_cylinders(item.product_name or ""),
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_amount=item.total_price,
            transaction_type=transaction_type,
            **common,
        )
        for item in txn.items
    ]


def customer_payment_to_entry(payment: CustomerPayment, roles: RoleDirectory) -> SaleEntry:
    staff_role = roles.role_for(payment.created_by)
    details = ""
    if payment.cylinders_collected:
        details = f"+ {payment.cylinders_collected} cylinders returned"
    return SaleEntry(
        id=payment.id,
        type=SaleType.PAYMENT,
        date=payment.payment_date,
        timestamp=payment.created_at,
        staff_name=RoleDirectory.display_name(staff_role),
        staff_role=staff_role,
        staff_id=payment.created_by,
        product_name="Due Payment Received",
        product_details=details,
        quantity=1,
        unit_price=payment.amount,
        total_amount=payment.amount,
        payment_method="cash",
        payment_status=PaymentStatus.PAID,
        customer_name=payment.customer_name or UNKNOWN_CUSTOMER,
        customer_phone=payment.customer_phone,
        customer_id=payment.customer_id,
        transaction_type=TransactionType.RETAIL,
        transaction_number=f"PAY-{payment.id[:8]}",
        source="Customer Payment",
        source_id=payment.id,
    )


def _expense_attribution(created_by: Optional[str], roles: RoleDirectory) -> dict[str, Any]:
    staff_role = roles.role_for(created_by)
    return dict(
        staff_name=RoleDirectory.display_name(staff_role),
        staff_role=staff_role,
        staff_id=created_by,
    )


def pob_transaction_to_entry(txn: PobTransaction, roles: RoleDirectory) -> ExpenseEntry:
    category = pob_category(txn.items[0].product_type if txn.items else None)
    description = ", ".join(f"{item.quantity}x {item.product_name}" for item in txn.items)
    return ExpenseEntry(
        id=txn.id,
        type=ExpenseType.POB,
        date=txn.created_at.date(),
        timestamp=txn.created_at,
        category=category.label,
        category_icon=category.icon,
        category_color=category.color,
        description=description or "Product purchase",
        why_spent="Product bought with POB",
        amount=txn.total,
        source="POB",
        source_id=txn.id,
        supplier_name=txn.supplier_name,
        **_expense_attribution(txn.created_by, roles),
    )


def staff_payment_to_entry(payment: StaffPayment, roles: RoleDirectory) -> ExpenseEntry:
    category = ExpenseCategory.STAFF_SALARY
    return ExpenseEntry(
        id=payment.id,
        type=ExpenseType.SALARY,
        date=payment.payment_date,
        timestamp=payment.created_at,
        category=category.label,
        category_icon=category.icon,
        category_color=category.color,
        description=payment.notes or f"Salary payment to {payment.staff_name or 'Staff'}",
        why_spent="Staff salary payment",
        amount=payment.amount,
        source="Staff Salary",
        source_id=payment.id,
        staff_payee_name=payment.staff_name,
        **_expense_attribution(payment.created_by, roles),
    )


def vehicle_cost_to_entry(cost: VehicleCost, roles: RoleDirectory) -> ExpenseEntry:
    category = vehicle_category(cost.cost_type)
    description = cost.description
    if not description:
        description = f"{cost.cost_type} for {cost.vehicle_name or 'Vehicle'}"
        if cost.liters_filled:
            description += f" ({format_amount(cost.liters_filled)}L)"
    return ExpenseEntry(
        id=cost.id,
        type=ExpenseType.VEHICLE,
        date=cost.cost_date,
        timestamp=cost.created_at,
        category=category.label,
        category_icon=category.icon,
        category_color=category.color,
        description=description,
        why_spent="Vehicle operational cost",
        amount=cost.amount,
        source="Vehicle Cost",
        source_id=cost.id,
        vehicle_name=cost.vehicle_name,
        **_expense_attribution(cost.created_by, roles),
    )


def daily_expense_to_entry(expense: DailyExpense, roles: RoleDirectory) -> ExpenseEntry:
    # Manual entries keep their own category name; only the styling falls back
    category = ExpenseCategory.lookup(expense.category)
    return ExpenseEntry(
        id=expense.id,
        type=ExpenseType.MANUAL,
        date=expense.expense_date,
        timestamp=expense.created_at,
        category=expense.category,
        category_icon=category.icon,
        category_color=category.color,
        description=expense.description or expense.category,
        why_spent=WHY_SPENT_BY_CATEGORY.get(expense.category, DEFAULT_WHY_SPENT),
        amount=expense.amount,
        source="Manual Entry",
        source_id=expense.id,
        **_expense_attribution(expense.created_by, roles),
    )


@dataclass(frozen=True)
class AdapterResult:
    """Outcome of one adapter fetch; ``error`` is set when it failed."""

    label: str
    entries: tuple = ()
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SourceAdapter:
    """Base class for a read-only fetcher over one source family.

    Subclasses implement ``load`` and ``normalize``. ``fetch`` never raises:
    failures are logged and reported through ``AdapterResult.error``.
    """

    label = "source"

    def __init__(
        self,
        db: Database,
        policy: Optional[FetchPolicy] = None,
        limits: Optional[SourceLimits] = None,
    ):
        self.db = db
        self.policy = policy or FetchPolicy()
        self.limits = limits or SourceLimits()

    async def query(self, label: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking row query in a worker thread with timeout and retry."""
        return await call_with_retry(
            lambda: asyncio.to_thread(fn, *args),
            label=label,
            timeout=self.policy.timeout,
            attempts=self.policy.attempts,
            backoff=self.policy.backoff,
        )

    async def load_roles(self) -> RoleDirectory:
        roles = await self.query(f"{self.label}:user_roles", self.db.list_user_roles)
        return RoleDirectory(roles)

    async def load(self) -> tuple[Any, RoleDirectory]:
        raise NotImplementedError

    def normalize(self, rows: Any, roles: RoleDirectory) -> list:
        raise NotImplementedError

    async def fetch(self) -> AdapterResult:
        try:
            rows, roles = await self.load()
            entries = self.normalize(rows, roles)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error fetching {self.label}: {e}")
            return AdapterResult(label=self.label, error=e)
        logger.debug(f"Fetched {len(entries)} {self.label} entries")
        return AdapterResult(label=self.label, entries=tuple(entries))


class PosSalesAdapter(SourceAdapter):
    label = "pos_sales"

    async def load(self):
        transactions, customers, roles = await asyncio.gather(
            self.query(self.label, self.db.list_pos_transactions, self.limits.pos_transactions),
            self.query(f"{self.label}:customers", self.db.list_customers),
            self.load_roles(),
        )
        return (transactions, {c.id: c for c in customers}), roles

    def normalize(self, rows, roles):
        transactions, customers = rows
        entries: list[SaleEntry] = []
        for txn in transactions:
            entries.extend(pos_transaction_to_entries(txn, customers, roles))
        return entries


class DuePaymentAdapter(SourceAdapter):
    label = "due_payments"

    async def load(self):
        return await asyncio.gather(
            self.query(self.label, self.db.list_customer_payments, self.limits.customer_payments),
            self.load_roles(),
        )

    def normalize(self, rows, roles):
        return [customer_payment_to_entry(payment, roles) for payment in rows]


class PobExpenseAdapter(SourceAdapter):
    label = "pob_purchases"

    async def load(self):
        return await asyncio.gather(
            self.query(self.label, self.db.list_pob_transactions, self.limits.pob_transactions),
            self.load_roles(),
        )

    def normalize(self, rows, roles):
        return [pob_transaction_to_entry(txn, roles) for txn in rows]


class SalaryExpenseAdapter(SourceAdapter):
    label = "staff_salaries"

    async def load(self):
        return await asyncio.gather(
            self.query(self.label, self.db.list_staff_payments, self.limits.staff_payments),
            self.load_roles(),
        )

    def normalize(self, rows, roles):
        return [staff_payment_to_entry(payment, roles) for payment in rows]


class VehicleExpenseAdapter(SourceAdapter):
    label = "vehicle_costs"

    async def load(self):
        return await asyncio.gather(
            self.query(self.label, self.db.list_vehicle_costs, self.limits.vehicle_costs),
            self.load_roles(),
        )

    def normalize(self, rows, roles):
        return [vehicle_cost_to_entry(cost, roles) for cost in rows]


class ManualExpenseAdapter(SourceAdapter):
    label = "manual_expenses"

    async def load(self):
        return await asyncio.gather(
            self.query(self.label, self.db.list_daily_expenses, self.limits.daily_expenses),
            self.load_roles(),
        )

    def normalize(self, rows, roles):
        return [daily_expense_to_entry(expense, roles) for expense in rows]


SALE_ADAPTERS = (PosSalesAdapter, DuePaymentAdapter)
EXPENSE_ADAPTERS = (
    PobExpenseAdapter,
    SalaryExpenseAdapter,
    VehicleExpenseAdapter,
    ManualExpenseAdapter,
)
