"""JSON codec for diary snapshots kept in the persisted cache tier."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from gasdiary.domain.entities import (
    DiarySnapshot,
    ExpenseEntry,
    ExpenseType,
    PaymentStatus,
    ReturnCylinder,
    SaleEntry,
    SaleType,
    StaffRole,
    TransactionType,
)


def sale_to_dict(entry: SaleEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "type": entry.type.value,
        "date": entry.date.isoformat(),
        "timestamp": entry.timestamp.isoformat(),
        "staffName": entry.staff_name,
        "staffRole": entry.staff_role.value,
        "staffId": entry.staff_id,
        "productName": entry.product_name,
        "productDetails": entry.product_details,
        "quantity": entry.quantity,
        "unitPrice": str(entry.unit_price),
        "totalAmount": str(entry.total_amount),
        "paymentMethod": entry.payment_method,
        "paymentStatus": entry.payment_status.value,
        "customerName": entry.customer_name,
        "customerPhone": entry.customer_phone,
        "customerId": entry.customer_id,
        "transactionType": entry.transaction_type.value,
        "transactionNumber": entry.transaction_number,
        "source": entry.source,
        "sourceId": entry.source_id,
        "returnCylinders": [
            {"brand": r.brand, "quantity": r.quantity, "type": r.type}
            for r in entry.return_cylinders
        ],
        "isOnlineOrder": entry.is_online_order,
        "communityOrderId": entry.community_order_id,
    }


def sale_from_dict(raw: dict[str, Any]) -> SaleEntry:
    return SaleEntry(
        id=raw["id"],
        type=SaleType(raw["type"]),
        date=date.fromisoformat(raw["date"]),
        timestamp=datetime.fromisoformat(raw["timestamp"]),
        staff_name=raw["staffName"],
        staff_role=StaffRole(raw["staffRole"]),
        staff_id=raw.get("staffId"),
        product_name=raw["productName"],
        product_details=raw["productDetails"],
        quantity=raw["quantity"],
        unit_price=Decimal(raw["unitPrice"]),
        total_amount=Decimal(raw["totalAmount"]),
        payment_method=raw["paymentMethod"],
        payment_status=PaymentStatus(raw["paymentStatus"]),
        customer_name=raw["customerName"],
        customer_phone=raw.get("customerPhone"),
        customer_id=raw.get("customerId"),
        transaction_type=TransactionType(raw["transactionType"]),
        transaction_number=raw["transactionNumber"],
        source=raw["source"],
        source_id=raw["sourceId"],
        return_cylinders=tuple(
            ReturnCylinder(brand=r["brand"], quantity=r["quantity"], type=r.get("type", "empty"))
            for r in raw.get("returnCylinders", [])
        ),
        is_online_order=raw.get("isOnlineOrder", False),
        community_order_id=raw.get("communityOrderId"),
    )


def expense_to_dict(entry: ExpenseEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "type": entry.type.value,
        "date": entry.date.isoformat(),
        "timestamp": entry.timestamp.isoformat(),
        "staffName": entry.staff_name,
        "staffRole": entry.staff_role.value,
        "staffId": entry.staff_id,
        "category": entry.category,
        "categoryIcon": entry.category_icon,
        "categoryColor": entry.category_color,
        "description": entry.description,
        "whySpent": entry.why_spent,
        "amount": str(entry.amount),
        "source": entry.source,
        "sourceId": entry.source_id,
        "supplierName": entry.supplier_name,
        "vehicleName": entry.vehicle_name,
        "staffPayeeName": entry.staff_payee_name,
    }


def expense_from_dict(raw: dict[str, Any]) -> ExpenseEntry:
    return ExpenseEntry(
        id=raw["id"],
        type=ExpenseType(raw["type"]),
        date=date.fromisoformat(raw["date"]),
        timestamp=datetime.fromisoformat(raw["timestamp"]),
        staff_name=raw["staffName"],
        staff_role=StaffRole(raw["staffRole"]),
        staff_id=raw.get("staffId"),
        category=raw["category"],
        category_icon=raw["categoryIcon"],
        category_color=raw["categoryColor"],
        description=raw["description"],
        why_spent=raw["whySpent"],
        amount=Decimal(raw["amount"]),
        source=raw["source"],
        source_id=raw["sourceId"],
        supplier_name=raw.get("supplierName"),
        vehicle_name=raw.get("vehicleName"),
        staff_payee_name=raw.get("staffPayeeName"),
    )


def encode_snapshot(snapshot: DiarySnapshot) -> dict[str, Any]:
    return {
        "sales": [sale_to_dict(entry) for entry in snapshot.sales],
        "expenses": [expense_to_dict(entry) for entry in snapshot.expenses],
    }


def decode_snapshot(raw: dict[str, Any]) -> DiarySnapshot:
    """Rebuild a snapshot; malformed payloads raise KeyError or ValueError."""
    return DiarySnapshot(
        sales=tuple(sale_from_dict(item) for item in raw.get("sales", [])),
        expenses=tuple(expense_from_dict(item) for item in raw.get("expenses", [])),
    )
