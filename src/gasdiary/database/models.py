"""SQLAlchemy models for the gasdiary source tables."""

import uuid
from datetime import datetime, date
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    # Shop-local wall clock; diary days follow the shop's calendar
    return datetime.now()


class UserRole(Base):
    """Role assignment for an application user."""

    __tablename__ = "user_roles"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, unique=True)
    role = Column(String, nullable=False)


class Customer(Base):
    """Customer model with running dues."""

    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    total_due = Column(Numeric(12, 2), default=0, nullable=False)
    cylinders_due = Column(Integer, default=0, nullable=False)
    credit_limit = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    payments = relationship("CustomerPayment", back_populates="customer")


class PosTransaction(Base):
    """Point-of-sale transaction model."""

    __tablename__ = "pos_transactions"

    id = Column(String, primary_key=True, default=_new_id)
    transaction_number = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    created_by = Column(String, nullable=True)
    total = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String, default="cash", nullable=False)
    payment_status = Column(String, default="completed", nullable=False)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=True)
    is_voided = Column(Boolean, default=False, nullable=False)
    is_online_order = Column(Boolean, default=False, nullable=False)
    community_order_id = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "PosTransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="PosTransactionItem.position",
    )


class PosTransactionItem(Base):
    """POS line item model."""

    __tablename__ = "pos_transaction_items"

    id = Column(String, primary_key=True, default=_new_id)
    transaction_id = Column(String, ForeignKey("pos_transactions.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    product_name = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    transaction = relationship("PosTransaction", back_populates="items")


class CustomerPayment(Base):
    """Due-collection payment model."""

    __tablename__ = "customer_payments"

    id = Column(String, primary_key=True, default=_new_id)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    cylinders_collected = Column(Integer, default=0, nullable=False)
    payment_date = Column(Date, default=date.today, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    created_by = Column(String, nullable=True)

    customer = relationship("Customer", back_populates="payments")


class PobTransaction(Base):
    """Purchase-order-bought transaction model."""

    __tablename__ = "pob_transactions"

    id = Column(String, primary_key=True, default=_new_id)
    transaction_number = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    created_by = Column(String, nullable=True)
    total = Column(Numeric(12, 2), nullable=False)
    supplier_name = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    is_voided = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)

    items = relationship(
        "PobTransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="PobTransactionItem.position",
    )


class PobTransactionItem(Base):
    """POB line item model."""

    __tablename__ = "pob_transaction_items"

    id = Column(String, primary_key=True, default=_new_id)
    transaction_id = Column(String, ForeignKey("pob_transactions.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    product_name = Column(String, nullable=False)
    product_type = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    transaction = relationship("PobTransaction", back_populates="items")


class Staff(Base):
    """Staff member on the payroll."""

    __tablename__ = "staff"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    role = Column(String, nullable=True)

    payments = relationship("StaffPayment", back_populates="staff")


class StaffPayment(Base):
    """Staff salary payment model."""

    __tablename__ = "staff_payments"

    id = Column(String, primary_key=True, default=_new_id)
    staff_id = Column(String, ForeignKey("staff.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(Date, default=date.today, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    created_by = Column(String, nullable=True)

    staff = relationship("Staff", back_populates="payments")


class Vehicle(Base):
    """Delivery vehicle."""

    __tablename__ = "vehicles"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    license_plate = Column(String, nullable=True)

    costs = relationship("VehicleCost", back_populates="vehicle")


class VehicleCost(Base):
    """Vehicle running cost model."""

    __tablename__ = "vehicle_costs"

    id = Column(String, primary_key=True, default=_new_id)
    vehicle_id = Column(String, ForeignKey("vehicles.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    cost_type = Column(String, nullable=False)
    cost_date = Column(Date, default=date.today, nullable=False)
    description = Column(Text, nullable=True)
    liters_filled = Column(Numeric(10, 2), nullable=True)
    odometer_reading = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    created_by = Column(String, nullable=True)

    vehicle = relationship("Vehicle", back_populates="costs")


class DailyExpense(Base):
    """Manually entered expense model."""

    __tablename__ = "daily_expenses"

    id = Column(String, primary_key=True, default=_new_id)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(Date, default=date.today, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    created_by = Column(String, nullable=True)


class LpgBrand(Base):
    """LPG cylinder stock per brand and size."""

    __tablename__ = "lpg_brands"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    size = Column(String, nullable=False)
    package_cylinder = Column(Integer, default=0, nullable=False)
    refill_cylinder = Column(Integer, default=0, nullable=False)
    empty_cylinder = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Stove(Base):
    """Gas stove stock."""

    __tablename__ = "stoves"

    id = Column(String, primary_key=True, default=_new_id)
    brand = Column(String, nullable=False)
    burners = Column(Integer, default=1, nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Regulator(Base):
    """Regulator stock."""

    __tablename__ = "regulators"

    id = Column(String, primary_key=True, default=_new_id)
    brand = Column(String, nullable=False)
    type = Column(String, nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Order(Base):
    """Marketplace delivery order."""

    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=_new_id)
    order_number = Column(String, nullable=False)
    customer_name = Column(String, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, default="pending", nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class CylinderExchange(Base):
    """Brand-for-brand cylinder exchange request."""

    __tablename__ = "cylinder_exchanges"

    id = Column(String, primary_key=True, default=_new_id)
    from_brand = Column(String, nullable=False)
    to_brand = Column(String, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    status = Column(String, default="pending", nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class KeyValueEntry(Base):
    """Persisted key/value pair backing caches and read state."""

    __tablename__ = "kv_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Adapter fetches run in worker threads, each with its own session
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
