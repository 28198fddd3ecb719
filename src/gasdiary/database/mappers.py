"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic, so the adapters only ever see
domain rows regardless of how the tables are laid out.
"""

from decimal import Decimal
from typing import Optional

from gasdiary.domain import entities as domain
from gasdiary.database.models import (
    UserRole as ORMUserRole,
    Customer as ORMCustomer,
    PosTransaction as ORMPosTransaction,
    PosTransactionItem as ORMPosTransactionItem,
    CustomerPayment as ORMCustomerPayment,
    PobTransaction as ORMPobTransaction,
    PobTransactionItem as ORMPobTransactionItem,
    StaffPayment as ORMStaffPayment,
    VehicleCost as ORMVehicleCost,
    DailyExpense as ORMDailyExpense,
    LpgBrand as ORMLpgBrand,
    Stove as ORMStove,
    Regulator as ORMRegulator,
    Order as ORMOrder,
    CylinderExchange as ORMCylinderExchange,
)


def _decimal(value) -> Decimal:
    return Decimal(value) if value is not None else Decimal("0")


def _optional_decimal(value) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


def user_role_to_domain(orm_role: ORMUserRole) -> domain.UserRole:
    """Convert SQLAlchemy UserRole model to domain UserRole entity."""
    return domain.UserRole(user_id=orm_role.user_id, role=orm_role.role)


def customer_to_domain(orm_customer: ORMCustomer) -> domain.Customer:
    """Convert SQLAlchemy Customer model to domain Customer entity."""
    return domain.Customer(
        id=orm_customer.id,
        name=orm_customer.name,
        phone=orm_customer.phone,
        total_due=_decimal(orm_customer.total_due),
        cylinders_due=orm_customer.cylinders_due or 0,
        credit_limit=_optional_decimal(orm_customer.credit_limit),
    )


def pos_item_to_domain(orm_item: ORMPosTransactionItem) -> domain.PosTransactionItem:
    return domain.PosTransactionItem(
        id=orm_item.id,
        product_name=orm_item.product_name,
        quantity=orm_item.quantity,
        unit_price=_decimal(orm_item.unit_price),
        total_price=_decimal(orm_item.total_price),
    )


def pos_transaction_to_domain(orm_txn: ORMPosTransaction) -> domain.PosTransaction:
    """Convert SQLAlchemy PosTransaction (with items) to domain entity."""
    return domain.PosTransaction(
        id=orm_txn.id,
        transaction_number=orm_txn.transaction_number,
        created_at=orm_txn.created_at,
        created_by=orm_txn.created_by,
        total=_decimal(orm_txn.total),
        payment_method=orm_txn.payment_method,
        payment_status=orm_txn.payment_status,
        customer_id=orm_txn.customer_id,
        is_online_order=bool(orm_txn.is_online_order),
        community_order_id=orm_txn.community_order_id,
        items=tuple(pos_item_to_domain(item) for item in orm_txn.items),
    )


def customer_payment_to_domain(orm_payment: ORMCustomerPayment) -> domain.CustomerPayment:
    """Convert SQLAlchemy CustomerPayment to domain entity.

    The customer relation may be missing; name and phone are then None.
    """
    customer = orm_payment.customer
    return domain.CustomerPayment(
        id=orm_payment.id,
        customer_id=orm_payment.customer_id,
        amount=_decimal(orm_payment.amount),
        cylinders_collected=orm_payment.cylinders_collected or 0,
        payment_date=orm_payment.payment_date,
        notes=orm_payment.notes,
        created_at=orm_payment.created_at,
        created_by=orm_payment.created_by,
        customer_name=customer.name if customer is not None else None,
        customer_phone=customer.phone if customer is not None else None,
    )


def pob_item_to_domain(orm_item: ORMPobTransactionItem) -> domain.PobTransactionItem:
    return domain.PobTransactionItem(
        id=orm_item.id,
        product_name=orm_item.product_name,
        product_type=orm_item.product_type,
        quantity=orm_item.quantity,
        unit_price=_decimal(orm_item.unit_price),
        total_price=_decimal(orm_item.total_price),
    )


def pob_transaction_to_domain(orm_txn: ORMPobTransaction) -> domain.PobTransaction:
    """Convert SQLAlchemy PobTransaction (with items) to domain entity."""
    return domain.PobTransaction(
        id=orm_txn.id,
        transaction_number=orm_txn.transaction_number,
        created_at=orm_txn.created_at,
        created_by=orm_txn.created_by,
        total=_decimal(orm_txn.total),
        supplier_name=orm_txn.supplier_name,
        payment_method=orm_txn.payment_method,
        items=tuple(pob_item_to_domain(item) for item in orm_txn.items),
    )


def staff_payment_to_domain(orm_payment: ORMStaffPayment) -> domain.StaffPayment:
    staff = orm_payment.staff
    return domain.StaffPayment(
        id=orm_payment.id,
        staff_id=orm_payment.staff_id,
        amount=_decimal(orm_payment.amount),
        payment_date=orm_payment.payment_date,
        notes=orm_payment.notes,
        created_at=orm_payment.created_at,
        created_by=orm_payment.created_by,
        staff_name=staff.name if staff is not None else None,
        staff_role=staff.role if staff is not None else None,
    )


def vehicle_cost_to_domain(orm_cost: ORMVehicleCost) -> domain.VehicleCost:
    vehicle = orm_cost.vehicle
    return domain.VehicleCost(
        id=orm_cost.id,
        vehicle_id=orm_cost.vehicle_id,
        amount=_decimal(orm_cost.amount),
        cost_type=orm_cost.cost_type,
        cost_date=orm_cost.cost_date,
        description=orm_cost.description,
        liters_filled=_optional_decimal(orm_cost.liters_filled),
        created_at=orm_cost.created_at,
        created_by=orm_cost.created_by,
        vehicle_name=vehicle.name if vehicle is not None else None,
    )


def daily_expense_to_domain(orm_expense: ORMDailyExpense) -> domain.DailyExpense:
    return domain.DailyExpense(
        id=orm_expense.id,
        category=orm_expense.category,
        description=orm_expense.description,
        amount=_decimal(orm_expense.amount),
        expense_date=orm_expense.expense_date,
        created_at=orm_expense.created_at,
        created_by=orm_expense.created_by,
    )


def lpg_brand_to_domain(orm_brand: ORMLpgBrand) -> domain.LpgBrand:
    return domain.LpgBrand(
        id=orm_brand.id,
        name=orm_brand.name,
        size=orm_brand.size,
        package_cylinder=orm_brand.package_cylinder or 0,
        refill_cylinder=orm_brand.refill_cylinder or 0,
        empty_cylinder=orm_brand.empty_cylinder or 0,
    )


def stove_to_domain(orm_stove: ORMStove) -> domain.Stove:
    return domain.Stove(
        id=orm_stove.id,
        brand=orm_stove.brand,
        burners=orm_stove.burners,
        quantity=orm_stove.quantity or 0,
    )


def regulator_to_domain(orm_regulator: ORMRegulator) -> domain.Regulator:
    return domain.Regulator(
        id=orm_regulator.id,
        brand=orm_regulator.brand,
        type=orm_regulator.type,
        quantity=orm_regulator.quantity or 0,
    )


def order_to_domain(orm_order: ORMOrder) -> domain.Order:
    return domain.Order(
        id=orm_order.id,
        order_number=orm_order.order_number,
        customer_name=orm_order.customer_name,
        total_amount=_decimal(orm_order.total_amount),
        status=orm_order.status,
        created_at=orm_order.created_at,
    )


def cylinder_exchange_to_domain(orm_exchange: ORMCylinderExchange) -> domain.CylinderExchange:
    return domain.CylinderExchange(
        id=orm_exchange.id,
        from_brand=orm_exchange.from_brand,
        to_brand=orm_exchange.to_brand,
        quantity=orm_exchange.quantity,
        status=orm_exchange.status,
        created_at=orm_exchange.created_at,
    )
