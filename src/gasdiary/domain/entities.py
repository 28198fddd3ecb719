"""Domain model entities for gasdiary.

These are pure data classes representing business concepts, independent of
database schema. Source rows mirror what the CRUD modules store; diary
entries are derived from them on every fetch and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class StaffRole(str, Enum):
    """Role of the user who recorded a source row."""

    OWNER = "owner"
    MANAGER = "manager"
    DRIVER = "driver"
    STAFF = "staff"
    UNKNOWN = "unknown"


class SaleType(str, Enum):
    """Origin of a sale entry."""

    POS = "pos"
    PAYMENT = "payment"


class ExpenseType(str, Enum):
    """Origin of an expense entry."""

    POB = "pob"
    SALARY = "salary"
    VEHICLE = "vehicle"
    MANUAL = "manual"


class PaymentStatus(str, Enum):
    PAID = "paid"
    DUE = "due"
    PARTIAL = "partial"


class TransactionType(str, Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"


class NotificationPriority(str, Enum):
    """Notification priority, declared from most to least urgent."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.CRITICAL: 0,
    NotificationPriority.HIGH: 1,
    NotificationPriority.MEDIUM: 2,
    NotificationPriority.LOW: 3,
}


class NotificationType(str, Enum):
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    NEW_ORDER = "new_order"
    PAYMENT_OVERDUE = "payment_overdue"
    CUSTOMER_CREDIT_LIMIT = "customer_credit_limit"
    EXCHANGE_PENDING = "exchange_pending"
    SYSTEM_ALERT = "system_alert"
    INFO = "info"


# Source rows


@dataclass(frozen=True)
class UserRole:
    """Role assignment for a user."""

    user_id: str
    role: str


@dataclass(frozen=True)
class Customer:
    """Customer with outstanding balances."""

    id: str
    name: str
    phone: Optional[str]
    total_due: Decimal = Decimal("0")
    cylinders_due: int = 0
    credit_limit: Optional[Decimal] = None


@dataclass(frozen=True)
class PosTransactionItem:
    id: str
    product_name: Optional[str]
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class PosTransaction:
    """Point-of-sale transaction with its line items."""

    id: str
    transaction_number: str
    created_at: datetime
    created_by: Optional[str]
    total: Decimal
    payment_method: str
    payment_status: str
    customer_id: Optional[str]
    is_online_order: bool = False
    community_order_id: Optional[str] = None
    items: tuple[PosTransactionItem, ...] = ()


@dataclass(frozen=True)
class CustomerPayment:
    """Due-collection payment; customer fields are None when unresolvable."""

    id: str
    customer_id: Optional[str]
    amount: Decimal
    cylinders_collected: int
    payment_date: date
    notes: Optional[str]
    created_at: datetime
    created_by: Optional[str]
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None


@dataclass(frozen=True)
class PobTransactionItem:
    id: str
    product_name: str
    product_type: Optional[str]
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class PobTransaction:
    """Purchase-order-bought stock purchase."""

    id: str
    transaction_number: str
    created_at: datetime
    created_by: Optional[str]
    total: Decimal
    supplier_name: Optional[str]
    payment_method: Optional[str]
    items: tuple[PobTransactionItem, ...] = ()


@dataclass(frozen=True)
class StaffPayment:
    id: str
    staff_id: str
    amount: Decimal
    payment_date: date
    notes: Optional[str]
    created_at: datetime
    created_by: Optional[str]
    staff_name: Optional[str] = None
    staff_role: Optional[str] = None


@dataclass(frozen=True)
class VehicleCost:
    id: str
    vehicle_id: str
    amount: Decimal
    cost_type: str
    cost_date: date
    description: Optional[str]
    liters_filled: Optional[Decimal]
    created_at: datetime
    created_by: Optional[str]
    vehicle_name: Optional[str] = None


@dataclass(frozen=True)
class DailyExpense:
    """Manually entered expense."""

    id: str
    category: str
    description: Optional[str]
    amount: Decimal
    expense_date: date
    created_at: datetime
    created_by: Optional[str]


@dataclass(frozen=True)
class LpgBrand:
    id: str
    name: str
    size: str
    package_cylinder: int
    refill_cylinder: int
    empty_cylinder: int

    @property
    def full_cylinders(self) -> int:
        return self.package_cylinder + self.refill_cylinder


@dataclass(frozen=True)
class Stove:
    id: str
    brand: str
    burners: int
    quantity: int


@dataclass(frozen=True)
class Regulator:
    id: str
    brand: str
    type: str
    quantity: int


@dataclass(frozen=True)
class Order:
    """Marketplace delivery order."""

    id: str
    order_number: str
    customer_name: str
    total_amount: Decimal
    status: str
    created_at: datetime


@dataclass(frozen=True)
class CylinderExchange:
    id: str
    from_brand: str
    to_brand: str
    quantity: int
    status: str
    created_at: datetime


# Diary entries


@dataclass(frozen=True)
class ReturnCylinder:
    brand: str
    quantity: int
    type: str = "empty"


@dataclass(frozen=True)
class SaleEntry:
    """Normalized unit of incoming value."""

    id: str
    type: SaleType
    date: date
    timestamp: datetime
    staff_name: str
    staff_role: StaffRole
    staff_id: Optional[str]
    product_name: str
    product_details: str
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    payment_method: str
    payment_status: PaymentStatus
    customer_name: str
    customer_phone: Optional[str]
    customer_id: Optional[str]
    transaction_type: TransactionType
    transaction_number: str
    source: str
    source_id: str
    return_cylinders: tuple[ReturnCylinder, ...] = ()
    is_online_order: bool = False
    community_order_id: Optional[str] = None


@dataclass(frozen=True)
class ExpenseEntry:
    """Normalized unit of outgoing value."""

    id: str
    type: ExpenseType
    date: date
    timestamp: datetime
    staff_name: str
    staff_role: StaffRole
    staff_id: Optional[str]
    category: str
    category_icon: str
    category_color: str
    description: str
    why_spent: str
    amount: Decimal
    source: str
    source_id: str
    supplier_name: Optional[str] = None
    vehicle_name: Optional[str] = None
    staff_payee_name: Optional[str] = None


@dataclass(frozen=True)
class DiarySnapshot:
    """Both merged streams, as cached together."""

    sales: tuple[SaleEntry, ...] = ()
    expenses: tuple[ExpenseEntry, ...] = ()


# Analytics


@dataclass(frozen=True)
class ProductTotal:
    name: str
    amount: Decimal
    count: int


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    amount: Decimal
    icon: str
    color: str


@dataclass(frozen=True)
class PaymentMethodTotal:
    method: str
    amount: Decimal


@dataclass(frozen=True)
class DiaryAnalytics:
    """Rolling aggregates over the merged diary streams."""

    today_income: Decimal
    today_expenses: Decimal
    today_profit: Decimal
    weekly_income: Decimal
    weekly_expenses: Decimal
    weekly_profit: Decimal
    monthly_income: Decimal
    monthly_expenses: Decimal
    monthly_profit: Decimal
    yearly_income: Decimal
    yearly_expenses: Decimal
    yearly_profit: Decimal
    last_month_income: Decimal
    last_month_expenses: Decimal
    income_growth: float
    expense_growth: float
    profit_margin: float
    top_products: tuple[ProductTotal, ...] = ()
    top_expense_categories: tuple[CategoryTotal, ...] = ()
    payment_breakdown: tuple[PaymentMethodTotal, ...] = ()


# Notifications


@dataclass(frozen=True)
class NotificationAction:
    label: str
    module_id: str


@dataclass(frozen=True)
class Notification:
    """Derived alert; read state comes from the persisted id list."""

    id: str
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    created_at: datetime
    roles: frozenset[StaffRole]
    read: bool = False
    module: Optional[str] = None
    action: Optional[NotificationAction] = None
    data: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
