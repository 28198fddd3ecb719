"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from gasdiary.domain.entities import (
    UserRole,
    Customer,
    PosTransaction,
    CustomerPayment,
    PobTransaction,
    StaffPayment,
    VehicleCost,
    DailyExpense,
    LpgBrand,
    Stove,
    Regulator,
    Order,
    CylinderExchange,
)


class Database(ABC):
    """Abstract database interface for gasdiary.

    The read operations are the row-query contract the diary and the
    notification engine depend on. The write operations belong to the CRUD
    modules; they are here so the same backend can be seeded and tested.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Role operations
    @abstractmethod
    def list_user_roles(self) -> list[UserRole]:
        """List every user role assignment."""
        pass

    @abstractmethod
    def get_user_role(self, user_id: str) -> Optional[str]:
        """Get the role assigned to a user, or None."""
        pass

    # Sales sources
    @abstractmethod
    def list_pos_transactions(self, limit: int = 500) -> list[PosTransaction]:
        """List non-voided POS transactions with items, newest first."""
        pass

    @abstractmethod
    def list_customer_payments(self, limit: int = 200) -> list[CustomerPayment]:
        """List due-collection payments with customer details, newest first."""
        pass

    @abstractmethod
    def list_customers(self) -> list[Customer]:
        """List all customers."""
        pass

    # Expense sources
    @abstractmethod
    def list_pob_transactions(self, limit: int = 300) -> list[PobTransaction]:
        """List non-voided POB transactions with items, newest first."""
        pass

    @abstractmethod
    def list_staff_payments(self, limit: int = 200) -> list[StaffPayment]:
        """List staff payments with payee details, newest first."""
        pass

    @abstractmethod
    def list_vehicle_costs(self, limit: int = 200) -> list[VehicleCost]:
        """List vehicle costs with vehicle details, newest first."""
        pass

    @abstractmethod
    def list_daily_expenses(self, limit: int = 300) -> list[DailyExpense]:
        """List manual expenses, most recent expense date first."""
        pass

    # Notification sources
    @abstractmethod
    def list_active_lpg_brands(self) -> list[LpgBrand]:
        pass

    @abstractmethod
    def list_active_stoves(self) -> list[Stove]:
        pass

    @abstractmethod
    def list_active_regulators(self) -> list[Regulator]:
        pass

    @abstractmethod
    def list_open_orders(self, limit: int = 10) -> list[Order]:
        """List pending or processing orders, newest first."""
        pass

    @abstractmethod
    def list_customers_with_dues(self, limit: int = 10) -> list[Customer]:
        """List customers owing money or cylinders, largest due first."""
        pass

    @abstractmethod
    def get_due_totals(self) -> tuple[Decimal, int]:
        """Get (total money due, total cylinders due) across all customers."""
        pass

    @abstractmethod
    def list_pending_exchanges(self, limit: int = 5) -> list[CylinderExchange]:
        """List pending cylinder exchanges, newest first."""
        pass

    @abstractmethod
    def list_pos_totals_since(self, since: datetime) -> list[Decimal]:
        """List totals of POS transactions created at or after ``since``."""
        pass

    # Collaborator writes
    @abstractmethod
    def assign_user_role(self, user_id: str, role: str) -> None:
        """Assign (or replace) a user's role."""
        pass

    @abstractmethod
    def create_customer(
        self,
        name: str,
        phone: Optional[str] = None,
        total_due: Decimal = Decimal("0"),
        cylinders_due: int = 0,
        credit_limit: Optional[Decimal] = None,
    ) -> str:
        """Create a customer. Returns customer ID."""
        pass

    @abstractmethod
    def create_pos_transaction(
        self,
        transaction_number: str,
        total: Decimal,
        items: Sequence[dict],
        created_by: Optional[str] = None,
        customer_id: Optional[str] = None,
        payment_method: str = "cash",
        payment_status: str = "completed",
        created_at: Optional[datetime] = None,
        is_online_order: bool = False,
        community_order_id: Optional[str] = None,
    ) -> str:
        """Create a POS transaction with line items. Returns transaction ID.

        Each item is a dict with product_name, quantity, unit_price and
        optionally total_price (defaults to quantity * unit_price).
        """
        pass

    @abstractmethod
    def void_pos_transaction(self, transaction_id: str) -> None:
        """Mark a POS transaction as voided."""
        pass

    @abstractmethod
    def create_customer_payment(
        self,
        customer_id: Optional[str],
        amount: Decimal,
        cylinders_collected: int = 0,
        payment_date: Optional[date] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        """Record a due-collection payment. Returns payment ID."""
        pass

    @abstractmethod
    def create_pob_transaction(
        self,
        transaction_number: str,
        total: Decimal,
        items: Sequence[dict],
        supplier_name: Optional[str] = None,
        created_by: Optional[str] = None,
        payment_method: Optional[str] = "cash",
        created_at: Optional[datetime] = None,
    ) -> str:
        """Record a stock purchase with items. Returns transaction ID."""
        pass

    @abstractmethod
    def create_staff(self, name: str, role: Optional[str] = None) -> str:
        """Create a staff member. Returns staff ID."""
        pass

    @abstractmethod
    def create_staff_payment(
        self,
        staff_id: str,
        amount: Decimal,
        payment_date: Optional[date] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        """Record a salary payment. Returns payment ID."""
        pass

    @abstractmethod
    def create_vehicle(self, name: str, license_plate: Optional[str] = None) -> str:
        """Create a vehicle. Returns vehicle ID."""
        pass

    @abstractmethod
    def create_vehicle_cost(
        self,
        vehicle_id: str,
        amount: Decimal,
        cost_type: str,
        cost_date: Optional[date] = None,
        description: Optional[str] = None,
        liters_filled: Optional[Decimal] = None,
        created_by: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        """Record a vehicle cost. Returns cost ID."""
        pass

    @abstractmethod
    def create_daily_expense(
        self,
        category: str,
        amount: Decimal,
        description: Optional[str] = None,
        expense_date: Optional[date] = None,
        created_by: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        """Record a manual expense. Returns expense ID."""
        pass

    @abstractmethod
    def create_lpg_brand(
        self,
        name: str,
        size: str,
        package_cylinder: int = 0,
        refill_cylinder: int = 0,
        empty_cylinder: int = 0,
    ) -> str:
        """Create an LPG brand stock row. Returns brand ID."""
        pass

    @abstractmethod
    def update_lpg_stock(
        self,
        brand_id: str,
        package_cylinder: Optional[int] = None,
        refill_cylinder: Optional[int] = None,
        empty_cylinder: Optional[int] = None,
    ) -> None:
        """Update cylinder counts for an LPG brand."""
        pass

    @abstractmethod
    def create_stove(self, brand: str, burners: int = 1, quantity: int = 0) -> str:
        """Create a stove stock row. Returns stove ID."""
        pass

    @abstractmethod
    def create_regulator(self, brand: str, type: str, quantity: int = 0) -> str:
        """Create a regulator stock row. Returns regulator ID."""
        pass

    @abstractmethod
    def create_order(
        self,
        order_number: str,
        customer_name: str,
        total_amount: Decimal,
        status: str = "pending",
        created_at: Optional[datetime] = None,
    ) -> str:
        """Create a marketplace order. Returns order ID."""
        pass

    @abstractmethod
    def create_cylinder_exchange(
        self,
        from_brand: str,
        to_brand: str,
        quantity: int = 1,
        status: str = "pending",
        created_at: Optional[datetime] = None,
    ) -> str:
        """Create a cylinder exchange request. Returns exchange ID."""
        pass
