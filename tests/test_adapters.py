"""Tests for source adapters and their normalizers."""

import asyncio
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from gasdiary.domain.adapters import (
    DuePaymentAdapter,
    ManualExpenseAdapter,
    PobExpenseAdapter,
    PosSalesAdapter,
    RoleDirectory,
    SalaryExpenseAdapter,
    VehicleExpenseAdapter,
    customer_payment_to_entry,
    normalize_payment_status,
    parse_return_cylinders,
    pos_transaction_to_entries,
)
from gasdiary.domain.entities import (
    CustomerPayment,
    ExpenseType,
    PaymentStatus,
    PosTransaction,
    PosTransactionItem,
    ReturnCylinder,
    SaleType,
    StaffRole,
    TransactionType,
    UserRole,
)
from gasdiary.domain.errors import FetchError


def fetch(adapter):
    return asyncio.run(adapter.fetch())


def _txn(items=(), total=Decimal("0"), **kwargs):
    defaults = dict(
        id="txn-1",
        transaction_number="POS-1",
        created_at=datetime(2024, 6, 12, 10, 0),
        created_by=None,
        total=total,
        payment_method="cash",
        payment_status="completed",
        customer_id=None,
        items=tuple(items),
    )
    defaults.update(kwargs)
    return PosTransaction(**defaults)


def _item(item_id, name, quantity, unit_price):
    unit_price = Decimal(unit_price)
    return PosTransactionItem(
        id=item_id,
        product_name=name,
        quantity=quantity,
        unit_price=unit_price,
        total_price=unit_price * quantity,
    )


class TestRoleDirectory:
    """Tests for role-level staff attribution."""

    def test_named_roles(self):
        roles = RoleDirectory([UserRole("a", "owner"), UserRole("b", "manager"), UserRole("c", "driver")])
        assert roles.role_for("a") == StaffRole.OWNER
        assert roles.role_for("b") == StaffRole.MANAGER
        assert roles.role_for("c") == StaffRole.DRIVER

    def test_other_known_role_is_staff(self):
        roles = RoleDirectory([UserRole("a", "cashier")])
        assert roles.role_for("a") == StaffRole.STAFF

    def test_absent_or_null_is_unknown(self):
        roles = RoleDirectory([UserRole("a", "owner")])
        assert roles.role_for("missing") == StaffRole.UNKNOWN
        assert roles.role_for(None) == StaffRole.UNKNOWN

    def test_display_name_is_capitalized_role(self):
        assert RoleDirectory.display_name(StaffRole.MANAGER) == "Manager"
        assert RoleDirectory.display_name(StaffRole.UNKNOWN) == "Unknown"


class TestNormalizers:
    """Tests for pure row normalizers."""

    def test_payment_status(self):
        assert normalize_payment_status("completed") == PaymentStatus.PAID
        assert normalize_payment_status("paid") == PaymentStatus.PAID
        assert normalize_payment_status("partial") == PaymentStatus.PARTIAL
        assert normalize_payment_status("pending") == PaymentStatus.DUE
        assert normalize_payment_status(None) == PaymentStatus.DUE

    def test_return_cylinder_only_for_refills(self):
        assert parse_return_cylinders("Bashundhara 12kg REFILL - Return: Omera") == (
            ReturnCylinder(brand="Omera", quantity=1, type="empty"),
        )
        assert parse_return_cylinders("Bashundhara 12kg Package - Return: Omera") == ()
        assert parse_return_cylinders("Bashundhara 12kg Refill") == ()

    def test_scenario_a_three_items_are_wholesale(self):
        txn = _txn(
            items=[_item("i1", "Refill", 1, "100"), _item("i2", "Stove", 1, "200"), _item("i3", "Pipe", 1, "50")],
            total=Decimal("350"),
        )
        entries = pos_transaction_to_entries(txn, {}, RoleDirectory())

        assert len(entries) == 3
        assert all(e.transaction_type == TransactionType.WHOLESALE for e in entries)
        assert sum(e.total_amount for e in entries) == Decimal("350")

    def test_single_item_is_retail(self):
        txn = _txn(items=[_item("i1", "Refill", 2, "1450")], total=Decimal("2900"))
        (entry,) = pos_transaction_to_entries(txn, {}, RoleDirectory())

        assert entry.transaction_type == TransactionType.RETAIL
        assert entry.total_amount == entry.quantity * entry.unit_price
        assert entry.product_details == "2 x ৳1,450"
        assert entry.customer_name == "Walk-in Customer"

    def test_itemless_transaction_yields_summary_entry(self):
        (entry,) = pos_transaction_to_entries(_txn(total=Decimal("1500")), {}, RoleDirectory())

        assert entry.product_name == "POS Sale"
        assert entry.quantity == 1
        assert entry.total_amount == Decimal("1500")
        assert entry.product_details == "Total: ৳1,500"

    def test_itemless_zero_total_yields_nothing(self):
        assert pos_transaction_to_entries(_txn(), {}, RoleDirectory()) == []

    def test_missing_product_name_uses_placeholder(self):
        txn = _txn(items=[_item("i1", None, 1, "10")], total=Decimal("10"))
        (entry,) = pos_transaction_to_entries(txn, {}, RoleDirectory())
        assert entry.product_name == "Unknown Product"

    def test_payment_without_customer_uses_placeholder(self):
        payment = CustomerPayment(
            id="abcdef1234567890",
            customer_id=None,
            amount=Decimal("300"),
            cylinders_collected=0,
            payment_date=date(2024, 6, 12),
            notes=None,
            created_at=datetime(2024, 6, 12, 9, 0),
            created_by=None,
        )
        entry = customer_payment_to_entry(payment, RoleDirectory())

        assert entry.customer_name == "Unknown Customer"
        assert entry.transaction_number == "PAY-abcdef12"
        assert entry.product_details == ""


class TestPosSalesAdapter:
    """Tests for the POS adapter against the database."""

    def test_fetch_pos_sales(self, roles, settings):
        customer_id = roles.create_customer("Rahim Store", phone="0171")
        roles.create_pos_transaction(
            "POS-1",
            Decimal("350"),
            [
                {"product_name": "Refill", "quantity": 1, "unit_price": Decimal("100")},
                {"product_name": "Stove", "quantity": 1, "unit_price": Decimal("200")},
                {"product_name": "Pipe", "quantity": 1, "unit_price": Decimal("50")},
            ],
            created_by="u-manager",
            customer_id=customer_id,
            payment_status="partial",
            is_online_order=True,
            community_order_id="CO-1",
        )

        result = fetch(PosSalesAdapter(roles, settings.fetch_policy))

        assert result.ok
        assert len(result.entries) == 3
        entry = result.entries[0]
        assert entry.type == SaleType.POS
        assert entry.staff_role == StaffRole.MANAGER
        assert entry.staff_name == "Manager"
        assert entry.customer_name == "Rahim Store"
        assert entry.customer_phone == "0171"
        assert entry.payment_status == PaymentStatus.PARTIAL
        assert entry.source == "Online Order"
        assert entry.community_order_id == "CO-1"
        assert [e.product_name for e in result.entries] == ["Refill", "Stove", "Pipe"]

    def test_voided_transactions_are_skipped(self, roles, settings):
        txn_id = roles.create_pos_transaction("POS-1", Decimal("100"), [])
        roles.void_pos_transaction(txn_id)

        assert fetch(PosSalesAdapter(roles, settings.fetch_policy)).entries == ()

    def test_failure_is_reported_not_raised(self, roles, settings, monkeypatch):
        def boom(limit):
            raise RuntimeError("backend down")

        monkeypatch.setattr(roles, "list_pos_transactions", boom)
        result = fetch(PosSalesAdapter(roles, settings.fetch_policy))

        assert not result.ok
        assert isinstance(result.error, FetchError)
        assert result.entries == ()


class TestDuePaymentAdapter:
    def test_scenario_b_due_payment(self, roles, settings):
        customer_id = roles.create_customer("Karim Hotel")
        payment_id = roles.create_customer_payment(
            customer_id, Decimal("500"), cylinders_collected=2, created_by="u-driver"
        )

        (entry,) = fetch(DuePaymentAdapter(roles, settings.fetch_policy)).entries

        assert entry.type == SaleType.PAYMENT
        assert entry.payment_status == PaymentStatus.PAID
        assert entry.quantity == 1
        assert entry.total_amount == Decimal("500")
        assert "2" in entry.product_details
        assert entry.product_name == "Due Payment Received"
        assert entry.transaction_number == f"PAY-{payment_id[:8]}"
        assert entry.customer_name == "Karim Hotel"
        assert entry.staff_name == "Driver"


class TestExpenseAdapters:
    def test_pob_purchase(self, roles, settings):
        roles.create_pob_transaction(
            "POB-1",
            Decimal("14000"),
            [
                {"product_name": "Bashundhara 12kg", "product_type": "lpg_cylinder", "quantity": 10, "unit_price": Decimal("1400")},
            ],
            supplier_name="Depot",
            created_by="u-owner",
        )

        (entry,) = fetch(PobExpenseAdapter(roles, settings.fetch_policy)).entries

        assert entry.type == ExpenseType.POB
        assert entry.category == "LPG Purchase"
        assert entry.category_icon == "🛢️"
        assert entry.description == "10x Bashundhara 12kg"
        assert entry.why_spent == "Product bought with POB"
        assert entry.supplier_name == "Depot"
        assert entry.staff_name == "Owner"

    def test_salary(self, roles, settings):
        staff_id = roles.create_staff("Rafiq", role="driver")
        roles.create_staff_payment(staff_id, Decimal("12000"))

        (entry,) = fetch(SalaryExpenseAdapter(roles, settings.fetch_policy)).entries

        assert entry.category == "Staff Salary"
        assert entry.description == "Salary payment to Rafiq"
        assert entry.staff_payee_name == "Rafiq"
        assert entry.staff_role == StaffRole.UNKNOWN

    def test_vehicle_cost_categories(self, roles, settings):
        van = roles.create_vehicle("Van")
        now = datetime(2024, 6, 12, 10, 0)
        roles.create_vehicle_cost(van, Decimal("1200"), "fuel", liters_filled=Decimal("10"), created_at=now)
        roles.create_vehicle_cost(
            van, Decimal("800"), "repair", description="Brake pads", created_at=now - timedelta(hours=1)
        )

        fuel, repair = fetch(VehicleExpenseAdapter(roles, settings.fetch_policy)).entries

        assert fuel.category == "Vehicle Fuel"
        assert fuel.description == "fuel for Van (10L)"
        assert fuel.vehicle_name == "Van"
        assert repair.category == "Vehicle Maintenance"
        assert repair.description == "Brake pads"

    def test_manual_expense_unknown_category_falls_back_to_other(self, roles, settings):
        roles.create_daily_expense("Tea & Snacks", Decimal("120"))
        roles.create_daily_expense("Utilities", Decimal("2500"), description="Electricity")

        entries = fetch(ManualExpenseAdapter(roles, settings.fetch_policy)).entries
        by_category = {e.category: e for e in entries}

        tea = by_category["Tea & Snacks"]
        assert tea.category_icon == "📦"
        assert tea.category_color == "#6b7280"
        assert tea.why_spent == "General expense"
        assert by_category["Utilities"].why_spent == "Utility bill payment"


@pytest.mark.parametrize(
    "adapter_cls, method",
    [
        (DuePaymentAdapter, "list_customer_payments"),
        (PobExpenseAdapter, "list_pob_transactions"),
        (SalaryExpenseAdapter, "list_staff_payments"),
        (VehicleExpenseAdapter, "list_vehicle_costs"),
        (ManualExpenseAdapter, "list_daily_expenses"),
    ],
)
def test_adapters_never_raise(roles, settings, monkeypatch, adapter_cls, method):
    def boom(*args):
        raise RuntimeError("backend down")

    monkeypatch.setattr(roles, method, boom)
    result = fetch(adapter_cls(roles, settings.fetch_policy))

    assert not result.ok
    assert result.entries == ()
