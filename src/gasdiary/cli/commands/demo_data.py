"""Seed demo source rows."""

from datetime import datetime, timedelta
from decimal import Decimal

import click
from gasdiary.database.base import Database


# (user id, role)
DEMO_USERS = [
    ("user-owner", "owner"),
    ("user-manager", "manager"),
    ("user-driver", "driver"),
    ("user-cashier", "cashier"),
]

# (name, size, package, refill, empty)
DEMO_BRANDS = [
    ("Bashundhara", "12kg", 20, 25, 15),
    ("Omera", "12kg", 2, 5, 14),
    ("Jamuna", "35kg", 0, 0, 4),
]


def seed_demo_data(db: Database, now: datetime) -> dict[str, int]:
    """Write a small, realistic set of source rows relative to ``now``.

    Returns:
        Number of rows created per kind
    """
    counts: dict[str, int] = {}

    def bump(kind: str, n: int = 1) -> None:
        counts[kind] = counts.get(kind, 0) + n

    for user_id, role in DEMO_USERS:
        db.assign_user_role(user_id, role)
        bump("user roles")

    rahim = db.create_customer("Rahim Store", phone="01711000001", total_due=Decimal("12500"),
                               cylinders_due=1, credit_limit=Decimal("10000"))
    karim = db.create_customer("Karim Hotel", phone="01711000002", total_due=Decimal("3000"),
                               cylinders_due=4)
    db.create_customer("Salma Begum", phone="01711000003")
    bump("customers", 3)

    db.create_pos_transaction(
        "POS-1001", Decimal("1450"),
        [{"product_name": "Bashundhara 12kg Refill - Return: Omera", "quantity": 1,
          "unit_price": Decimal("1450")}],
        created_by="user-cashier", customer_id=rahim,
        created_at=now - timedelta(hours=1),
    )
    db.create_pos_transaction(
        "POS-1002", Decimal("5450"),
        [
            {"product_name": "Bashundhara 12kg Refill", "quantity": 3, "unit_price": Decimal("1450")},
            {"product_name": "Double Burner Stove", "quantity": 1, "unit_price": Decimal("950")},
            {"product_name": "Regulator 22mm", "quantity": 1, "unit_price": Decimal("150")},
        ],
        created_by="user-manager", customer_id=karim, payment_status="partial",
        created_at=now - timedelta(hours=3),
    )
    db.create_pos_transaction(
        "POS-1003", Decimal("1500"), [],
        created_by="user-driver", payment_method="bkash", is_online_order=True,
        community_order_id="CO-77", created_at=now - timedelta(days=1),
    )
    db.create_pos_transaction(
        "POS-0950", Decimal("8700"),
        [{"product_name": "Omera 12kg Package", "quantity": 3, "unit_price": Decimal("2900")}],
        created_by="user-owner", created_at=now - timedelta(days=32),
    )
    bump("POS sales", 4)

    db.create_customer_payment(karim, Decimal("2000"), cylinders_collected=2,
                               created_by="user-driver", created_at=now - timedelta(hours=2))
    bump("due payments")

    db.create_pob_transaction(
        "POB-501", Decimal("42000"),
        [{"product_name": "Bashundhara 12kg", "product_type": "lpg_cylinder", "quantity": 30,
          "unit_price": Decimal("1400")}],
        supplier_name="Bashundhara Depot", created_by="user-owner",
        created_at=now - timedelta(days=2),
    )
    bump("POB purchases")

    rafiq = db.create_staff("Rafiq", role="driver")
    db.create_staff_payment(rafiq, Decimal("12000"), created_by="user-owner",
                            created_at=now - timedelta(days=3))
    bump("staff payments")

    van = db.create_vehicle("Delivery Van", license_plate="DHA-11-2233")
    db.create_vehicle_cost(van, Decimal("1200"), "fuel", liters_filled=Decimal("10"),
                           created_by="user-driver", created_at=now - timedelta(hours=5))
    db.create_vehicle_cost(van, Decimal("800"), "repair", description="Brake pad change",
                           created_by="user-manager", created_at=now - timedelta(days=6))
    bump("vehicle costs", 2)

    db.create_daily_expense("Utilities", Decimal("2500"), description="Electricity bill",
                            created_by="user-manager", created_at=now - timedelta(days=1))
    db.create_daily_expense("Tea & Snacks", Decimal("120"), created_by="user-cashier",
                            created_at=now - timedelta(hours=4))
    bump("manual expenses", 2)

    for name, size, package, refill, empty in DEMO_BRANDS:
        db.create_lpg_brand(name, size, package_cylinder=package, refill_cylinder=refill,
                            empty_cylinder=empty)
    db.create_stove("Walton", burners=2, quantity=3)
    db.create_regulator("Navana", "22mm", quantity=0)
    bump("inventory rows", len(DEMO_BRANDS) + 2)

    db.create_order("ORD-301", "Nasrin Akter", Decimal("1450"), created_at=now - timedelta(hours=4))
    db.create_order("ORD-302", "Tanvir Hasan", Decimal("2900"), created_at=now - timedelta(minutes=20))
    db.create_order("ORD-303", "Mita Das", Decimal("1450"), status="processing",
                    created_at=now - timedelta(hours=6))
    bump("orders", 3)

    db.create_cylinder_exchange("Omera", "Bashundhara", quantity=2, created_at=now - timedelta(hours=8))
    bump("exchanges")

    return counts


@click.command("demo-data")
@click.pass_context
def demo_data(ctx):
    """Seed demo users, sales, expenses, inventory and orders."""
    db = ctx.obj["db"]

    click.echo("Creating demo data...")
    counts = seed_demo_data(db, datetime.now())
    for kind, count in counts.items():
        click.echo(f"  {kind}: {count}")
    click.echo(f"Successfully created {sum(counts.values())} rows.")


def register_commands(cli):
    """Register demo-data command with main CLI."""
    cli.add_command(demo_data)
