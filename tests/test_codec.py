"""Tests for the diary snapshot codec."""

import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from gasdiary.domain.codec import decode_snapshot, encode_snapshot, sale_to_dict
from gasdiary.domain.entities import (
    DiarySnapshot,
    PaymentStatus,
    ReturnCylinder,
    SaleEntry,
    SaleType,
    StaffRole,
    TransactionType,
)


@pytest.fixture
def refill_sale():
    return SaleEntry(
        id="i1",
        type=SaleType.POS,
        date=date(2024, 6, 12),
        timestamp=datetime(2024, 6, 12, 10, 5, 30),
        staff_name="Manager",
        staff_role=StaffRole.MANAGER,
        staff_id="u-manager",
        product_name="Bashundhara 12kg Refill - Return: Omera",
        product_details="1 x ৳1,450.50",
        quantity=1,
        unit_price=Decimal("1450.50"),
        total_amount=Decimal("1450.50"),
        payment_method="cash",
        payment_status=PaymentStatus.PAID,
        customer_name="Rahim Store",
        customer_phone=None,
        customer_id="c1",
        transaction_type=TransactionType.RETAIL,
        transaction_number="POS-1",
        source="POS System",
        source_id="t1",
        return_cylinders=(ReturnCylinder(brand="Omera", quantity=1, type="empty"),),
    )


def test_sale_uses_camel_case_json_values(refill_sale):
    raw = sale_to_dict(refill_sale)

    assert raw["totalAmount"] == "1450.50"
    assert raw["staffRole"] == "manager"
    assert raw["returnCylinders"] == [{"brand": "Omera", "quantity": 1, "type": "empty"}]
    assert json.loads(json.dumps(raw)) == raw


def test_snapshot_survives_json(refill_sale):
    snapshot = DiarySnapshot(sales=(refill_sale,), expenses=())
    decoded = decode_snapshot(json.loads(json.dumps(encode_snapshot(snapshot))))

    assert decoded == snapshot
    assert decoded.sales[0].unit_price == Decimal("1450.50")


def test_malformed_payload_raises(refill_sale):
    raw = encode_snapshot(DiarySnapshot(sales=(refill_sale,)))
    del raw["sales"][0]["staffRole"]

    with pytest.raises(KeyError):
        decode_snapshot(raw)
